"""
Full-text provision search (search_legislation, build_legal_stance).

Both tools run the FTS5 variants from fts_query in order and keep the
first variant that matches; parser rejections fall through silently.
"""
from __future__ import annotations

import logging
import sqlite3

from .capabilities import list_tables
from .citations import display_citation
from .document_resolver import resolve_document_id
from .fts_query import build_fts_query_variants, run_fts_variants, sanitize_fts_input
from .metadata import tool_response

logger = logging.getLogger("legislation.search")

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 50
DEFAULT_STANCE_LIMIT = 5
MAX_STANCE_LIMIT = 20

SNIPPET_TOKENS = 32


def clamp_limit(limit, default: int, maximum: int) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return default
    return max(1, min(value, maximum))


def _search_sql(columns: str, document_filter: bool, status_filter: bool) -> str:
    filters = ""
    if document_filter:
        filters += " AND p.document_id = ?"
    if status_filter:
        filters += " AND d.status = ?"
    return f"""
        SELECT
            p.document_id,
            d.title AS document_title,
            {columns},
            snippet(provisions_fts, 0, '>>>', '<<<', '...', {SNIPPET_TOKENS}) AS snippet,
            bm25(provisions_fts) AS bm25_score
        FROM provisions_fts
        JOIN provisions p ON p.id = provisions_fts.rowid
        JOIN documents d ON d.id = p.document_id
        WHERE provisions_fts MATCH ?{filters}
        ORDER BY bm25_score ASC
        LIMIT ?
    """


def _relevance(row: dict) -> float:
    try:
        return round(-float(row.get("bm25_score") or 0.0), 4)
    except (TypeError, ValueError):
        return 0.0


def _run_search(conn, query, document_id, status, limit, columns):
    """Shared variant loop. Returns (rows, note)."""
    variants = build_fts_query_variants(query)
    if not variants:
        return [], None

    resolved = None
    if document_id:
        resolved = resolve_document_id(conn, document_id)
        if not resolved:
            return [], f"Document not found: {document_id!r}"

    sql = _search_sql(columns, resolved is not None, bool(status))
    extra: list = []
    if resolved:
        extra.append(resolved)
    if status:
        extra.append(status)

    rows, variant = run_fts_variants(
        conn, sql, variants, lambda match: [match, *extra, limit],
    )
    if variant is not None:
        logger.debug("Search %r matched with variant %r (%d rows)", query, variant, len(rows))
    return rows, None


def search_legislation(
    conn,
    query: str,
    document_id: str | None = None,
    status: str | None = None,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> dict:
    """search_legislation tool: ranked provision matches with snippets."""
    limit = clamp_limit(limit, DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT)
    rows, note = _run_search(
        conn, query, document_id, status, limit,
        "p.provision_ref, p.chapter, p.section, p.title",
    )

    results = [
        {
            "document_id": r["document_id"],
            "document_title": r["document_title"],
            "provision_ref": r["provision_ref"],
            "chapter": r.get("chapter"),
            "section": r["section"],
            "title": r.get("title"),
            "snippet": r.get("snippet"),
            "relevance": _relevance(r),
        }
        for r in rows
    ]
    return tool_response(conn, results, note=note)


def _related_definitions(conn, query: str, document_ids: list[str]) -> list[dict]:
    if not document_ids or "definitions" not in list_tables(conn):
        return []
    cleaned = sanitize_fts_input(query).lower()
    placeholders = ", ".join("?" for _ in document_ids)
    try:
        rows = conn.execute(
            f"SELECT document_id, term, definition FROM definitions "
            f"WHERE document_id IN ({placeholders}) ORDER BY id",
            document_ids,
        ).fetchall()
    except sqlite3.Error as e:
        logger.debug("Definitions lookup skipped: %s", e)
        return []
    return [
        dict(r) for r in rows
        if r["term"] and r["term"].lower() in cleaned
    ]


def build_legal_stance(
    conn,
    query: str,
    document_id: str | None = None,
    limit: int = DEFAULT_STANCE_LIMIT,
) -> dict:
    """build_legal_stance tool: full provision text for the best matches."""
    limit = clamp_limit(limit, DEFAULT_STANCE_LIMIT, MAX_STANCE_LIMIT)
    rows, note = _run_search(
        conn, query, document_id, None, limit,
        "d.status AS document_status, p.provision_ref, p.section, p.title, p.content",
    )

    results = [
        {
            "document_id": r["document_id"],
            "document_title": r["document_title"],
            "document_status": r.get("document_status"),
            "provision_ref": r["provision_ref"],
            "section": r["section"],
            "title": r.get("title"),
            "citation": display_citation(r["document_title"], r["section"]),
            "content": r.get("content"),
            "snippet": r.get("snippet"),
            "relevance": _relevance(r),
        }
        for r in rows
    ]

    doc_ids = list(dict.fromkeys(r["document_id"] for r in results))
    definitions = _related_definitions(conn, query, doc_ids) if results else []
    return tool_response(
        conn, results, note=note,
        related_definitions=definitions or None,
    )
