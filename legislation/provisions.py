"""
Provision lookup for a resolved document.

Matching is an ordered pipeline of strategies; the first strategy that
returns rows wins. Two pipelines are built from the same matchers:

- lookup_provisions() (get_provision): provision_ref exact, then section
  exact, then section/provision_ref substring for partial labels.
- find_cited_provision() (citations, currency, foreign basis): exact
  matchers only, so an unmatched reference such as "13(2)" stays unresolved.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .document_resolver import resolve_document_id
from .metadata import tool_response

PROVISION_COLUMNS = "id, document_id, provision_ref, chapter, section, title, content"


@dataclass(frozen=True)
class Matcher:
    """One lookup strategy: a WHERE fragment applied to the provisions table."""

    name: str
    where: str

    def params(self, value: str) -> tuple[str, ...]:
        return (value,) * self.where.count("?")

    def run(self, conn, document_id: str, value: str) -> list[dict]:
        rows = conn.execute(
            f"SELECT {PROVISION_COLUMNS} FROM provisions "
            f"WHERE document_id = ? AND ({self.where}) ORDER BY id",
            (document_id, *self.params(value)),
        ).fetchall()
        return [dict(r) for r in rows]


PROVISION_REF_EXACT = Matcher("provision_ref", "provision_ref = ?")
PROVISION_REF_PREFIXED = Matcher("provision_ref_prefixed", "provision_ref = 's' || ? OR provision_ref = 'art' || ?")
SECTION_EXACT = Matcher("section", "section = ?")
SECTION_SUBSTRING = Matcher(
    "section_substring",
    "instr(LOWER(section), LOWER(?)) > 0 OR instr(LOWER(provision_ref), LOWER(?)) > 0",
)

# Exact-only chain used when a citation names a section.
CITATION_MATCHERS = (PROVISION_REF_EXACT, PROVISION_REF_PREFIXED, SECTION_EXACT)


def run_pipeline(conn, document_id: str, steps: list[tuple[Matcher, str]]) -> tuple[list[dict], str | None]:
    """Try (matcher, value) steps in order; return the first non-empty hit."""
    for matcher, value in steps:
        rows = matcher.run(conn, document_id, value)
        if rows:
            return rows, matcher.name
    return [], None


def lookup_provisions(
    conn,
    document_id: str,
    provision_ref: str | None = None,
    section: str | None = None,
) -> tuple[list[dict], str | None]:
    """Matching provisions for an already-resolved document ID."""
    provision_ref = (provision_ref or "").strip() or None
    section = (section or "").strip() or None

    if not provision_ref and not section:
        rows = conn.execute(
            f"SELECT {PROVISION_COLUMNS} FROM provisions WHERE document_id = ? ORDER BY id",
            (document_id,),
        ).fetchall()
        return [dict(r) for r in rows], "all"

    steps: list[tuple[Matcher, str]] = []
    if provision_ref:
        steps.append((PROVISION_REF_EXACT, provision_ref))
    if section:
        steps.append((SECTION_EXACT, section))
        steps.append((SECTION_SUBSTRING, section))
    return run_pipeline(conn, document_id, steps)


def find_cited_provision(conn, document_id: str, reference: str) -> dict | None:
    """Exact-only lookup of a cited section or provision_ref."""
    reference = (reference or "").strip()
    if not reference:
        return None
    rows, _ = run_pipeline(conn, document_id, [(m, reference) for m in CITATION_MATCHERS])
    return rows[0] if rows else None


def load_document(conn, document_id: str) -> dict | None:
    row = conn.execute(
        "SELECT id, type, title, title_en, short_name, status, issued_date, "
        "in_force_date, url, description FROM documents WHERE id = ?",
        (document_id,),
    ).fetchone()
    return dict(row) if row else None


def _format_provision(row: dict, document: dict) -> dict[str, Any]:
    result = {
        "document_id": document["id"],
        "document_title": document["title"],
        "document_status": document["status"],
        "provision_ref": row["provision_ref"],
        "chapter": row["chapter"],
        "section": row["section"],
        "title": row["title"],
        "content": row["content"],
    }
    if document.get("url"):
        result["url"] = document["url"]
    return result


def get_provision(
    conn,
    document_id: str,
    provision_ref: str | None = None,
    section: str | None = None,
) -> dict:
    """get_provision tool: one, many or zero provisions of a document."""
    resolved = resolve_document_id(conn, document_id)
    if not resolved:
        return tool_response(conn, [], note=f"Document not found: {document_id!r}")

    document = load_document(conn, resolved)
    if document is None:
        return tool_response(
            conn, [],
            note=f"Document {resolved!r} resolved but no document record exists.",
        )

    rows, _strategy = lookup_provisions(conn, resolved, provision_ref, section)
    if not rows:
        wanted = provision_ref or section
        return tool_response(
            conn, [],
            note=f"Provision {wanted!r} not found in {document['title']}.",
        )

    return tool_response(conn, [_format_provision(r, document) for r in rows])
