"""Response metadata envelope attached to every tool response."""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

logger = logging.getLogger("legislation.metadata")

SERVER_NAME = "chilean-law-mcp"
JURISDICTION = "CL"
DATA_SOURCE_NAME = "LeyChile"
DATA_SOURCE_AUTHORITY = "Biblioteca del Congreso Nacional de Chile"
DATA_SOURCE_URL = "https://www.bcn.cl/leychile"
DATA_SOURCE = f"{DATA_SOURCE_NAME} ({DATA_SOURCE_AUTHORITY}) - {DATA_SOURCE_URL}"
DISCLAIMER = (
    "This dataset is sourced from Chile's official LeyChile service. "
    "Always verify citations against the official portal."
)


def read_freshness(conn) -> str | None:
    """Build timestamp from metadata.built_at, or None when unreadable."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'built_at'"
        ).fetchone()
    except sqlite3.Error as e:
        logger.debug("Freshness unavailable: %s", e)
        return None
    if not row or not row[0]:
        return None
    return str(row[0])


def response_metadata(conn, note: str | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "data_source": DATA_SOURCE,
        "jurisdiction": JURISDICTION,
        "disclaimer": DISCLAIMER,
    }
    freshness = read_freshness(conn)
    if freshness:
        meta["freshness"] = freshness
    if note:
        meta["note"] = note
    return meta


def tool_response(conn, results: Any, note: str | None = None, **extra: Any) -> dict[str, Any]:
    """Wrap tool results in the standard {results, _metadata} envelope."""
    response: dict[str, Any] = {"results": results}
    response.update({k: v for k, v in extra.items() if v is not None})
    response["_metadata"] = response_metadata(conn, note=note)
    return response
