"""Corpus provenance and statistics (list_sources, about)."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from .capabilities import FOREIGN_REFERENCES, Capabilities, detect_capabilities, read_db_metadata
from .metadata import (
    DATA_SOURCE_AUTHORITY,
    DATA_SOURCE_NAME,
    DATA_SOURCE_URL,
    JURISDICTION,
    SERVER_NAME,
    tool_response,
)

logger = logging.getLogger("legislation.sources")

SOURCES = [
    {
        "name": DATA_SOURCE_NAME,
        "authority": DATA_SOURCE_AUTHORITY,
        "url": DATA_SOURCE_URL,
        "retrieval_method": "LeyChile JSON service (latest consolidated version)",
        "jurisdiction": JURISDICTION,
        "license": "Public legislative text; verify against the official portal.",
    },
]


@dataclass(frozen=True)
class ServerContext:
    """Build facts computed once at server startup."""

    version: str
    fingerprint: str
    db_built: str | None = None


def count_rows(conn, table: str) -> int:
    """Row count for `table`, or 0 when the table cannot be read."""
    try:
        row = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    except sqlite3.Error as e:
        logger.debug("Count of %s unavailable: %s", table, e)
        return 0
    if not row or row[0] is None:
        return 0
    return int(row[0])


def list_sources(conn, capabilities: Capabilities | None = None) -> dict:
    """list_sources tool."""
    caps = capabilities or detect_capabilities(conn)
    meta = read_db_metadata(conn)

    database = {
        "tier": meta.tier,
        "schema_version": meta.schema_version,
        "built_at": meta.built_at,
        "document_count": count_rows(conn, "documents"),
        "provision_count": count_rows(conn, "provisions"),
    }
    if caps.has_table("definitions"):
        database["definition_count"] = count_rows(conn, "definitions")
    if caps.has(FOREIGN_REFERENCES):
        database["foreign_instrument_count"] = count_rows(conn, "foreign_instruments")
        database["foreign_reference_count"] = count_rows(conn, "foreign_references")

    return tool_response(conn, {
        "sources": SOURCES,
        "database": database,
        "capabilities": caps.as_list(),
    })


def about(conn, context: ServerContext, capabilities: Capabilities | None = None) -> dict:
    """about tool: server identity, provenance and corpus size."""
    caps = capabilities or detect_capabilities(conn)
    meta = read_db_metadata(conn)

    statistics = {
        "documents": count_rows(conn, "documents"),
        "provisions": count_rows(conn, "provisions"),
        "definitions": count_rows(conn, "definitions") if caps.has_table("definitions") else 0,
    }
    if caps.has(FOREIGN_REFERENCES):
        statistics["foreign_references"] = count_rows(conn, "foreign_references")

    return {
        "server": SERVER_NAME,
        "version": context.version,
        "data_source": {
            "name": DATA_SOURCE_NAME,
            "authority": DATA_SOURCE_AUTHORITY,
            "url": DATA_SOURCE_URL,
            "jurisdiction": JURISDICTION,
        },
        "statistics": statistics,
        "database": {
            "fingerprint": context.fingerprint,
            "built": context.db_built or meta.built_at,
            "tier": meta.tier,
            "schema_version": meta.schema_version,
        },
        "capabilities": caps.as_list(),
    }
