"""
FTS5 query construction for provision search.

User input is sanitized, then expanded into progressively looser MATCH
variants:

    1 short token      -> ["ab"]
    1 token            -> ["abc", "abc*"]
    several tokens     -> ['"a b"', "a AND b", "a AND b*"]

run_fts_variants() tries each variant in order. FTS5 can still reject a
sanitized variant (reserved words such as NEAR or a bare AND), so a
malformed-query failure falls through to the next variant instead of
reaching the caller.
"""
from __future__ import annotations

import logging
import re
import sqlite3
from typing import Any, Callable, Sequence

logger = logging.getLogger("legislation.fts_query")

# FTS5 barewords only accept word characters; all punctuation becomes a separator.
_FTS_SPECIAL = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

MIN_PREFIX_TOKEN_LEN = 3


def sanitize_fts_input(query: str | None) -> str:
    """Replace FTS syntax characters with spaces and collapse whitespace."""
    cleaned = _FTS_SPECIAL.sub(" ", query or "")
    return _WHITESPACE.sub(" ", cleaned).strip()


def build_fts_query_variants(query: str | None) -> list[str]:
    """Ordered MATCH expressions for `query`, strictest first."""
    tokens = sanitize_fts_input(query).split()
    if not tokens:
        return []

    if len(tokens) == 1:
        token = tokens[0]
        if len(token) < MIN_PREFIX_TOKEN_LEN:
            return [token]
        return [token, f"{token}*"]

    return [
        f'"{" ".join(tokens)}"',
        " AND ".join(tokens),
        " AND ".join(tokens[:-1] + [f"{tokens[-1]}*"]),
    ]


def run_fts_variants(
    conn,
    sql: str,
    variants: Sequence[str],
    params: Callable[[str], Sequence[Any]],
) -> tuple[list[dict], str | None]:
    """
    Execute `sql` once per variant until one returns rows.

    `params` builds the bound parameters for a given MATCH expression.
    Returns (rows, variant_used). Variants rejected by the FTS parser are
    skipped; if every variant fails or matches nothing the result is empty.
    """
    for variant in variants:
        try:
            rows = conn.execute(sql, list(params(variant))).fetchall()
        except sqlite3.OperationalError as e:
            logger.info("FTS query failed, trying fallback variant: %s (%s)", _truncate(variant, 120), e)
            continue
        if rows:
            return [dict(r) for r in rows], variant
    return [], None


def _truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."
