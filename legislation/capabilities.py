"""
Capability detection for the legislation store.

Optional feature areas exist only when their backing tables do. The
detector inspects sqlite_master once per connection and returns an
immutable Capabilities value that callers pass into the tools, so the
tools degrade to a "not available" note instead of querying absent tables.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, fields, replace

logger = logging.getLogger("legislation.capabilities")

CORE_LEGISLATION = "core_legislation"
FOREIGN_REFERENCES = "foreign_references"
CASE_LAW = "case_law"
PREPARATORY_WORKS = "preparatory_works"

# Feature -> tables that must all exist for the feature to be reported.
OPTIONAL_FEATURE_TABLES: dict[str, tuple[str, ...]] = {
    FOREIGN_REFERENCES: ("foreign_instruments", "foreign_references"),
    CASE_LAW: ("case_law",),
    PREPARATORY_WORKS: ("preparatory_works",),
}


@dataclass(frozen=True)
class Capabilities:
    features: frozenset[str]
    tables: frozenset[str]

    def has(self, feature: str) -> bool:
        return feature in self.features

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def as_list(self) -> list[str]:
        return sorted(self.features)


@dataclass(frozen=True)
class DbMetadata:
    """Corpus provenance with the documented defaults for absent keys."""

    tier: str = "free"
    schema_version: str = "1.0"
    built_at: str | None = None
    builder: str | None = None


def list_tables(conn) -> frozenset[str]:
    """Names of all tables and virtual tables in the store, empty on failure."""
    try:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
        ).fetchall()
    except sqlite3.Error as e:
        logger.debug("Schema inspection failed: %s", e)
        return frozenset()
    return frozenset(row[0] for row in rows)


def detect_capabilities(conn) -> Capabilities:
    """Report which feature areas the store supports. Never raises."""
    tables = list_tables(conn)
    features = {CORE_LEGISLATION}
    for feature, required in OPTIONAL_FEATURE_TABLES.items():
        if all(t in tables for t in required):
            features.add(feature)
    return Capabilities(features=frozenset(features), tables=tables)


def read_db_metadata(conn) -> DbMetadata:
    """Merge whatever metadata rows exist over the DbMetadata defaults."""
    defaults = DbMetadata()
    try:
        rows = conn.execute("SELECT key, value FROM metadata").fetchall()
    except sqlite3.Error as e:
        logger.debug("Metadata read failed, using defaults: %s", e)
        return defaults

    known = {f.name for f in fields(DbMetadata)}
    values: dict[str, str] = {}
    for row in rows:
        key, value = row[0], row[1]
        if key in known and value is not None:
            values[key] = str(value)
    return replace(defaults, **values)


def upgrade_message(feature: str) -> str:
    return (
        f"The '{feature}' data is not available in this database tier. "
        f"Rebuild or upgrade the database with the {feature} tables to enable this tool."
    )
