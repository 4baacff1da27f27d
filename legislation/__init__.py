"""
Resolution and retrieval engine for the Chilean legislation store.

This package provides:
- capability detection and metadata defaults for the SQLite store
- document identity resolution (ID, Spanish title, English title, partial)
- FTS5 query variants with malformed-query fallback
- provision lookup, citation parsing/validation/formatting
- cross-jurisdiction reference tools and compliance classification
"""

from .capabilities import Capabilities, DbMetadata, detect_capabilities, read_db_metadata
from .citations import format_citation, parse_citation, validate_citation
from .compliance import ComplianceStatus, classify_references, validate_compliance
from .currency import check_currency, normalize_as_of_date
from .document_resolver import resolve_document_id
from .foreign_refs import (
    get_foreign_basis,
    get_foreign_implementations,
    get_provision_foreign_basis,
    search_foreign_implementations,
)
from .fts_query import build_fts_query_variants, sanitize_fts_input
from .provisions import get_provision
from .search import build_legal_stance, search_legislation
from .sources import ServerContext, about, list_sources

__version__ = "1.0.0"

__all__ = [
    "Capabilities",
    "ComplianceStatus",
    "DbMetadata",
    "ServerContext",
    "about",
    "build_fts_query_variants",
    "build_legal_stance",
    "check_currency",
    "classify_references",
    "detect_capabilities",
    "format_citation",
    "get_foreign_basis",
    "get_foreign_implementations",
    "get_provision",
    "get_provision_foreign_basis",
    "list_sources",
    "normalize_as_of_date",
    "parse_citation",
    "read_db_metadata",
    "resolve_document_id",
    "sanitize_fts_input",
    "search_foreign_implementations",
    "search_legislation",
    "validate_citation",
    "validate_compliance",
]
