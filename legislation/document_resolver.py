"""
Resolve a user-supplied document reference to one canonical document ID.

Lookup order, first hit wins:
    1. exact canonical ID
    2. case-insensitive native title
    3. case-insensitive English title
    4. case-insensitive partial match on ID, titles or short name

Explicit identifiers are never shadowed by a fuzzy hit, and the native
(Spanish) title outranks its translation.
"""
from __future__ import annotations

_RESOLUTION_QUERIES = (
    "SELECT id FROM documents WHERE id = ? LIMIT 1",
    "SELECT id FROM documents WHERE LOWER(title) = LOWER(?) ORDER BY rowid LIMIT 1",
    "SELECT id FROM documents WHERE LOWER(title_en) = LOWER(?) ORDER BY rowid LIMIT 1",
)

_PARTIAL_QUERY = """
    SELECT id FROM documents
    WHERE LOWER(id) LIKE LOWER(?) ESCAPE '\\'
       OR LOWER(title) LIKE LOWER(?) ESCAPE '\\'
       OR LOWER(title_en) LIKE LOWER(?) ESCAPE '\\'
       OR LOWER(short_name) = LOWER(?)
    ORDER BY rowid
    LIMIT 1
"""


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def resolve_document_id(conn, reference: str | None) -> str | None:
    """Return the canonical document ID for `reference`, or None."""
    ref = (reference or "").strip()
    if not ref:
        return None

    for sql in _RESOLUTION_QUERIES:
        row = conn.execute(sql, (ref,)).fetchone()
        if row:
            return row[0]

    pattern = f"%{escape_like(ref)}%"
    row = conn.execute(_PARTIAL_QUERY, (pattern, pattern, pattern, ref)).fetchone()
    if row:
        return row[0]
    return None
