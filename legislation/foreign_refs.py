"""
Cross-jurisdiction reference tools.

All four tools are gated on the foreign_references capability; without
the foreign tables they answer with an empty result and an upgrade note
instead of querying.
"""
from __future__ import annotations

from typing import Any, Iterable

from .capabilities import FOREIGN_REFERENCES, Capabilities, detect_capabilities, upgrade_message
from .document_resolver import escape_like, resolve_document_id
from .metadata import tool_response
from .provisions import find_cited_provision, load_document

DEFAULT_FOREIGN_SEARCH_LIMIT = 20
MAX_FOREIGN_SEARCH_LIMIT = 100

# Higher rank = less certain; an aggregate takes the least certain status.
IMPLEMENTATION_STATUS_RANK = {"complete": 0, "partial": 1, "unknown": 2}


def foreign_capability_missing(conn, capabilities: Capabilities | None) -> dict | None:
    """Envelope to return when the foreign tables are absent, else None."""
    caps = capabilities or detect_capabilities(conn)
    if caps.has(FOREIGN_REFERENCES):
        return None
    return tool_response(conn, [], note=upgrade_message(FOREIGN_REFERENCES))


def aggregate_status(statuses: Iterable[str | None]) -> str:
    worst = "complete"
    seen = False
    for status in statuses:
        seen = True
        normalized = status if status in IMPLEMENTATION_STATUS_RANK else "unknown"
        if IMPLEMENTATION_STATUS_RANK[normalized] > IMPLEMENTATION_STATUS_RANK[worst]:
            worst = normalized
    return worst if seen else "unknown"


def _group_references(rows: list[dict], key: str, fields: tuple[str, ...], include_articles: bool) -> list[dict]:
    """Collapse reference rows sharing `key` into one entry, preserving order."""
    grouped: dict[str, dict[str, Any]] = {}
    for row in rows:
        entry = grouped.get(row[key])
        if entry is None:
            entry = {f: row[f] for f in fields}
            entry.update({"reference_types": [], "_statuses": [], "_articles": [], "is_primary": False})
            grouped[row[key]] = entry
        if row["reference_type"] and row["reference_type"] not in entry["reference_types"]:
            entry["reference_types"].append(row["reference_type"])
        entry["_statuses"].append(row["implementation_status"])
        if row["foreign_article"] and row["foreign_article"] not in entry["_articles"]:
            entry["_articles"].append(row["foreign_article"])
        entry["is_primary"] = entry["is_primary"] or bool(row["is_primary"])

    results = []
    for entry in grouped.values():
        statuses = entry.pop("_statuses")
        articles = entry.pop("_articles")
        entry["implementation_status"] = aggregate_status(statuses)
        entry["reference_count"] = len(statuses)
        if include_articles:
            entry["articles"] = sorted(articles, key=_article_sort_key)
        results.append(entry)
    return results


def _article_sort_key(article: str) -> tuple[int, str]:
    digits = "".join(ch for ch in article if ch.isdigit())
    return (int(digits) if digits else 0, article)


def get_foreign_basis(
    conn,
    document_id: str,
    include_articles: bool = False,
    reference_types: list[str] | None = None,
    capabilities: Capabilities | None = None,
) -> dict:
    """get_foreign_basis tool: foreign instruments a statute references or implements."""
    missing = foreign_capability_missing(conn, capabilities)
    if missing:
        return missing

    resolved = resolve_document_id(conn, document_id)
    document = load_document(conn, resolved) if resolved else None
    if document is None:
        return tool_response(conn, [], note=f"Document not found: {document_id!r}")

    sql = """
        SELECT fi.id AS foreign_instrument_id, fi.type, fi.year, fi.number,
               fi.title, fi.short_name, fr.reference_type,
               fr.implementation_status, fr.foreign_article, fr.is_primary
        FROM foreign_references fr
        JOIN foreign_instruments fi ON fi.id = fr.foreign_instrument_id
        WHERE fr.document_id = ?
    """
    params: list[Any] = [document["id"]]
    if reference_types:
        sql += f" AND fr.reference_type IN ({', '.join('?' for _ in reference_types)})"
        params.extend(reference_types)
    sql += " ORDER BY fi.year, fi.id, fr.id"

    rows = [dict(r) for r in conn.execute(sql, params).fetchall()]
    results = _group_references(
        rows,
        key="foreign_instrument_id",
        fields=("foreign_instrument_id", "type", "year", "number", "title", "short_name"),
        include_articles=include_articles,
    )
    note = None if results else f"No foreign references recorded for {document['title']}."
    return tool_response(conn, results, note=note)


def get_foreign_implementations(
    conn,
    foreign_instrument_id: str,
    primary_only: bool = False,
    in_force_only: bool = False,
    capabilities: Capabilities | None = None,
) -> dict:
    """get_foreign_implementations tool: domestic statutes tied to one foreign instrument."""
    missing = foreign_capability_missing(conn, capabilities)
    if missing:
        return missing

    instrument = conn.execute(
        "SELECT id, type, year, number, title, short_name FROM foreign_instruments WHERE id = ?",
        ((foreign_instrument_id or "").strip(),),
    ).fetchone()
    if not instrument:
        return tool_response(conn, [], note=f"Foreign instrument not found: {foreign_instrument_id!r}")

    sql = """
        SELECT d.id AS document_id, d.title AS document_title, d.short_name,
               d.status, fr.reference_type, fr.implementation_status,
               fr.foreign_article, fr.is_primary
        FROM foreign_references fr
        JOIN documents d ON d.id = fr.document_id
        WHERE fr.foreign_instrument_id = ?
    """
    if primary_only:
        sql += " AND fr.is_primary = 1"
    if in_force_only:
        sql += " AND d.status = 'in_force'"
    sql += " ORDER BY d.id, fr.id"

    rows = [dict(r) for r in conn.execute(sql, (instrument["id"],)).fetchall()]
    results = _group_references(
        rows,
        key="document_id",
        fields=("document_id", "document_title", "short_name", "status"),
        include_articles=True,
    )
    return tool_response(conn, results, foreign_instrument=dict(instrument))


def search_foreign_implementations(
    conn,
    query: str | None = None,
    type: str | None = None,
    year_from: int | None = None,
    year_to: int | None = None,
    has_domestic_implementation: bool | None = None,
    limit: int = DEFAULT_FOREIGN_SEARCH_LIMIT,
    capabilities: Capabilities | None = None,
) -> dict:
    """search_foreign_implementations tool: find foreign instruments with domestic counts."""
    missing = foreign_capability_missing(conn, capabilities)
    if missing:
        return missing

    try:
        limit = max(1, min(int(limit), MAX_FOREIGN_SEARCH_LIMIT))
    except (TypeError, ValueError):
        limit = DEFAULT_FOREIGN_SEARCH_LIMIT

    filters: list[str] = []
    params: list[Any] = []
    q = (query or "").strip()
    if q:
        filters.append(
            "(LOWER(fi.id) LIKE ? ESCAPE '\\' OR LOWER(fi.title) LIKE ? ESCAPE '\\' "
            "OR LOWER(fi.short_name) LIKE ? ESCAPE '\\' OR LOWER(fi.description) LIKE ? ESCAPE '\\')"
        )
        params.extend([f"%{escape_like(q.lower())}%"] * 4)
    if type:
        filters.append("fi.type = ?")
        params.append(type.lower())
    if year_from is not None:
        filters.append("fi.year >= ?")
        params.append(year_from)
    if year_to is not None:
        filters.append("fi.year <= ?")
        params.append(year_to)

    where = ("WHERE " + " AND ".join(filters)) if filters else ""
    having = ""
    if has_domestic_implementation is True:
        having = "HAVING domestic_document_count > 0"
    elif has_domestic_implementation is False:
        having = "HAVING domestic_document_count = 0"

    rows = conn.execute(
        f"""
        SELECT fi.id AS foreign_instrument_id, fi.type, fi.year, fi.number,
               fi.title, fi.short_name, fi.description,
               COUNT(DISTINCT fr.document_id) AS domestic_document_count
        FROM foreign_instruments fi
        LEFT JOIN foreign_references fr ON fr.foreign_instrument_id = fi.id
        {where}
        GROUP BY fi.id
        {having}
        ORDER BY domestic_document_count DESC, fi.year DESC, fi.id
        LIMIT ?
        """,
        params + [limit],
    ).fetchall()
    return tool_response(conn, [dict(r) for r in rows])


def get_provision_foreign_basis(
    conn,
    document_id: str,
    provision_ref: str,
    capabilities: Capabilities | None = None,
) -> dict:
    """get_provision_foreign_basis tool: foreign references attached to one provision."""
    missing = foreign_capability_missing(conn, capabilities)
    if missing:
        return missing

    resolved = resolve_document_id(conn, document_id)
    document = load_document(conn, resolved) if resolved else None
    if document is None:
        return tool_response(conn, [], note=f"Document not found: {document_id!r}")

    provision = find_cited_provision(conn, document["id"], provision_ref)
    if provision is None:
        return tool_response(
            conn, [],
            note=f"Provision {provision_ref!r} not found in {document['title']}.",
        )

    rows = conn.execute(
        """
        SELECT fi.id AS foreign_instrument_id, fi.type, fi.year, fi.number,
               fi.title, fi.short_name, fr.foreign_article, fr.reference_type,
               fr.implementation_status, fr.reference_context, fr.full_citation,
               fr.is_primary
        FROM foreign_references fr
        JOIN foreign_instruments fi ON fi.id = fr.foreign_instrument_id
        WHERE fr.provision_id = ?
        ORDER BY fr.id
        """,
        (provision["id"],),
    ).fetchall()

    results = []
    for r in rows:
        item = dict(r)
        item["is_primary"] = bool(item["is_primary"])
        results.append(item)
    return tool_response(
        conn, results,
        provision={
            "document_id": document["id"],
            "provision_ref": provision["provision_ref"],
            "section": provision["section"],
            "title": provision["title"],
        },
    )
