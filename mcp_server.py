"""
Chilean Law MCP Server
======================

Local MCP server for querying Chilean legislation.
Runs over stdio, reads a local SQLite + FTS5 database built from LeyChile.

Architecture:
    LeyChile (Biblioteca del Congreso Nacional de Chile)
        ↓ ingestion (separate pipeline)
    ~/.chilean-law-mcp/database.db  (SQLite + FTS5, read-only here)
        ↓ queries via MCP stdio
    Claude / Cursor / any MCP client

Installation:
    pip install -e .

Usage with Claude Desktop:
    claude mcp add chilean-law -- chilean-law-mcp

Tools exposed:
    search_legislation   — Full-text search over provisions with snippets.
    get_provision        — Fetch provisions by document and section/ref.
    validate_citation    — Check a citation against the database.
    format_citation      — Restyle a citation (full, short, pinpoint).
    check_currency       — In-force / amended / repealed status.
    build_legal_stance   — Full provision text for the best matches.
    get_foreign_basis, get_foreign_implementations,
    search_foreign_implementations, get_provision_foreign_basis,
    validate_compliance  — Cross-jurisdiction tools (when the foreign
                           reference tables are present).
    list_sources, about  — Provenance and corpus statistics.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool
from pydantic import BaseModel, Field, ValidationError

# Add repo root to path so db_schema and legislation import from any directory
sys.path.insert(0, str(Path(__file__).parent))
from legislation import __version__
from legislation.capabilities import Capabilities, detect_capabilities, read_db_metadata
from legislation.citations import format_citation, validate_citation
from legislation.compliance import validate_compliance
from legislation.currency import check_currency
from legislation.foreign_refs import (
    DEFAULT_FOREIGN_SEARCH_LIMIT,
    get_foreign_basis,
    get_foreign_implementations,
    get_provision_foreign_basis,
    search_foreign_implementations,
)
from legislation.metadata import SERVER_NAME
from legislation.provisions import get_provision
from legislation.search import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_STANCE_LIMIT,
    build_legal_stance,
    search_legislation,
)
from legislation.sources import ServerContext, about, list_sources

logging.basicConfig(
    level=os.environ.get("CHILEAN_LAW_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
    stream=sys.stderr,  # MCP uses stdout for protocol, logs go to stderr
)
logger = logging.getLogger(SERVER_NAME)

# ── Configuration ─────────────────────────────────────────────
DATA_DIR = Path(os.environ.get(
    "CHILEAN_LAW_DIR",
    Path.home() / ".chilean-law-mcp",
))
DB_PATH = Path(os.environ.get("CHILEAN_LAW_DB", DATA_DIR / "database.db"))

MAX_RESPONSE_CHARS = 200_000
MAX_FIELD_CHARS = 50_000

DocumentStatus = Literal["in_force", "amended", "repealed", "not_yet_in_force"]


# ── Database ──────────────────────────────────────────────────

def get_db() -> sqlite3.Connection:
    """Open a read-only connection to the local SQLite database."""
    if not DB_PATH.exists():
        raise FileNotFoundError(
            f"Database not found at {DB_PATH}. "
            f"Set CHILEAN_LAW_DB to the path of a built database."
        )
    conn = sqlite3.connect(f"file:{DB_PATH}?mode=ro", uri=True, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA query_only = ON")  # read-only for safety
    return conn


def db_fingerprint(path: Path) -> str:
    """Short SHA-256 of the database file, identifies the exact build."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()[:12]


def load_server_context() -> ServerContext | None:
    """Build facts for the about tool; None when no database is present."""
    if not DB_PATH.exists():
        return None
    conn = get_db()
    try:
        built = read_db_metadata(conn).built_at
    finally:
        conn.close()
    return ServerContext(version=__version__, fingerprint=db_fingerprint(DB_PATH), db_built=built)


# ── Tool arguments ────────────────────────────────────────────

class SearchLegislationArgs(BaseModel):
    query: str = Field(
        ...,
        description=(
            "Search query, usually Spanish legal terms. Examples:\n"
            "- datos personales\n"
            "- firma electrónica\n"
            "- ciberseguridad"
        ),
    )
    document_id: Optional[str] = Field(
        None, description="Restrict to one statute (ID, Spanish title or English title)",
    )
    status: Optional[DocumentStatus] = Field(None, description="Filter by statute status")
    limit: int = Field(DEFAULT_SEARCH_LIMIT, description="Max results (default 10, max 50)")


class GetProvisionArgs(BaseModel):
    document_id: str = Field(
        ..., description="Statute ID (e.g. cl-ley-19628-datos-personales), Spanish or English title",
    )
    provision_ref: Optional[str] = Field(None, description="Provision reference, e.g. art1")
    section: Optional[str] = Field(None, description="Article/section number, e.g. 2 or 15 bis")


class ValidateCitationArgs(BaseModel):
    citation: str = Field(
        ..., description="Citation, e.g. 'Section 1 Ley 19628' or 'Ley 19628, s 1'",
    )


class FormatCitationArgs(BaseModel):
    citation: str = Field(..., description="Citation to reformat")
    format: Literal["full", "short", "pinpoint"] = Field("full", description="Output style")


class CheckCurrencyArgs(BaseModel):
    document_id: str = Field(..., description="Statute ID or title")
    provision_ref: Optional[str] = Field(None, description="Optional provision to check")
    as_of_date: Optional[str] = Field(None, description="Reference date (YYYY-MM-DD)")


class BuildLegalStanceArgs(BaseModel):
    query: str = Field(..., description="Legal question or topic")
    document_id: Optional[str] = Field(None, description="Restrict to one statute")
    limit: int = Field(DEFAULT_STANCE_LIMIT, description="Max provisions (default 5, max 20)")


class GetForeignBasisArgs(BaseModel):
    document_id: str = Field(..., description="Statute ID or title")
    include_articles: bool = Field(False, description="Include referenced foreign articles")
    reference_types: Optional[list[Literal["references", "implements"]]] = Field(
        None, description="Restrict to these reference types",
    )


class GetForeignImplementationsArgs(BaseModel):
    foreign_instrument_id: str = Field(
        ..., description="Foreign instrument ID, e.g. regulation:2016/679",
    )
    primary_only: bool = Field(False, description="Only primary implementing statutes")
    in_force_only: bool = Field(False, description="Only statutes currently in force")


class SearchForeignImplementationsArgs(BaseModel):
    query: Optional[str] = Field(None, description="Text matched against instrument ID, title, short name")
    type: Optional[str] = Field(None, description="Instrument type, e.g. regulation or directive")
    year_from: Optional[int] = Field(None, description="Earliest instrument year")
    year_to: Optional[int] = Field(None, description="Latest instrument year")
    has_domestic_implementation: Optional[bool] = Field(
        None, description="true: only instruments with Chilean references; false: only without",
    )
    limit: int = Field(DEFAULT_FOREIGN_SEARCH_LIMIT, description="Max results (default 20, max 100)")


class GetProvisionForeignBasisArgs(BaseModel):
    document_id: str = Field(..., description="Statute ID or title")
    provision_ref: str = Field(..., description="Provision reference or section number")


class ValidateComplianceArgs(BaseModel):
    document_id: str = Field(..., description="Statute ID or title")
    foreign_instrument_id: Optional[str] = Field(
        None, description="Restrict the check to one foreign instrument",
    )


class NoArgs(BaseModel):
    pass


# ── Tool registry ─────────────────────────────────────────────

@dataclass(frozen=True)
class ToolEnv:
    capabilities: Capabilities
    context: ServerContext | None


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: Callable[[sqlite3.Connection, Any, ToolEnv], Any]
    needs_context: bool = False


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        "search_legislation",
        "Full-text search across Chilean statutes. Returns matching provisions "
        "with highlighted snippets, ranked by relevance. Malformed queries degrade "
        "to looser matching instead of failing.",
        SearchLegislationArgs,
        lambda conn, a, env: search_legislation(conn, a.query, a.document_id, a.status, a.limit),
    ),
    ToolSpec(
        "get_provision",
        "Retrieve provisions of a statute. Look up by provision_ref or section; "
        "omit both to list every provision of the statute.",
        GetProvisionArgs,
        lambda conn, a, env: get_provision(conn, a.document_id, a.provision_ref, a.section),
    ),
    ToolSpec(
        "validate_citation",
        "Validate a legal citation against the database. Never fabricates: "
        "reports invalid when the statute or section is not stored.",
        ValidateCitationArgs,
        lambda conn, a, env: validate_citation(conn, a.citation),
    ),
    ToolSpec(
        "format_citation",
        "Format a citation in full ('Section 13, Title'), short ('Title s 13') "
        "or pinpoint ('s 13') style.",
        FormatCitationArgs,
        lambda conn, a, env: format_citation(a.citation, a.format),
    ),
    ToolSpec(
        "check_currency",
        "Check whether a statute is in force, amended, repealed or not yet in force.",
        CheckCurrencyArgs,
        lambda conn, a, env: check_currency(conn, a.document_id, a.provision_ref, a.as_of_date),
    ),
    ToolSpec(
        "build_legal_stance",
        "Collect the full text of the provisions most relevant to a legal question, "
        "with citations and related definitions.",
        BuildLegalStanceArgs,
        lambda conn, a, env: build_legal_stance(conn, a.query, a.document_id, a.limit),
    ),
    ToolSpec(
        "get_foreign_basis",
        "List foreign instruments (e.g. EU regulations) that a Chilean statute "
        "references or implements.",
        GetForeignBasisArgs,
        lambda conn, a, env: get_foreign_basis(
            conn, a.document_id, a.include_articles, a.reference_types, env.capabilities,
        ),
    ),
    ToolSpec(
        "get_foreign_implementations",
        "List Chilean statutes that reference or implement a foreign instrument.",
        GetForeignImplementationsArgs,
        lambda conn, a, env: get_foreign_implementations(
            conn, a.foreign_instrument_id, a.primary_only, a.in_force_only, env.capabilities,
        ),
    ),
    ToolSpec(
        "search_foreign_implementations",
        "Search foreign instruments by text, type and year, with counts of "
        "referencing Chilean statutes.",
        SearchForeignImplementationsArgs,
        lambda conn, a, env: search_foreign_implementations(
            conn, a.query, a.type, a.year_from, a.year_to,
            a.has_domestic_implementation, a.limit, env.capabilities,
        ),
    ),
    ToolSpec(
        "get_provision_foreign_basis",
        "List foreign references attached to a single provision.",
        GetProvisionForeignBasisArgs,
        lambda conn, a, env: get_provision_foreign_basis(
            conn, a.document_id, a.provision_ref, env.capabilities,
        ),
    ),
    ToolSpec(
        "validate_compliance",
        "Classify a statute's cross-jurisdiction implementation as compliant, "
        "partial, unclear or not_applicable, with warnings and recommendations.",
        ValidateComplianceArgs,
        lambda conn, a, env: validate_compliance(
            conn, a.document_id, a.foreign_instrument_id, env.capabilities,
        ),
    ),
    ToolSpec(
        "list_sources",
        "Describe the data sources, database tier, build time and corpus counts.",
        NoArgs,
        lambda conn, a, env: list_sources(conn, env.capabilities),
    ),
    ToolSpec(
        "about",
        "Server identity, version, database fingerprint and corpus statistics.",
        NoArgs,
        lambda conn, a, env: about(conn, env.context, env.capabilities),
        needs_context=True,
    ),
)

TOOLS_BY_NAME = {spec.name: spec for spec in TOOL_SPECS}


def build_tools(context: ServerContext | None = None) -> list[Tool]:
    """Tool listing; `about` is only offered when a server context exists."""
    return [
        Tool(
            name=spec.name,
            description=spec.description,
            inputSchema=spec.args_model.model_json_schema(),
        )
        for spec in TOOL_SPECS
        if context is not None or not spec.needs_context
    ]


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def _clip_strings(value: Any) -> Any:
    if isinstance(value, str):
        if len(value) <= MAX_FIELD_CHARS:
            return value
        return value[:MAX_FIELD_CHARS] + " ... (truncated)"
    if isinstance(value, dict):
        return {k: _clip_strings(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clip_strings(v) for v in value]
    return value


def fit_payload(payload: Any) -> str:
    """
    Serialize `payload` within MAX_RESPONSE_CHARS, always as valid JSON.

    Long text fields are clipped first; if the envelope is still too large,
    trailing entries of `results` are dropped and `_metadata.note` says so.
    """
    text = _dumps(payload)
    if len(text) <= MAX_RESPONSE_CHARS:
        return text

    payload = _clip_strings(payload)
    text = _dumps(payload)
    results = payload.get("results") if isinstance(payload, dict) else None
    if len(text) <= MAX_RESPONSE_CHARS or not isinstance(results, list):
        return text

    total = len(results)
    kept = results
    while kept and len(text) > MAX_RESPONSE_CHARS:
        keep = min(len(kept) - 1, int(len(kept) * MAX_RESPONSE_CHARS / len(text)))
        kept = kept[:max(keep, 0)]
        note = (
            f"Response truncated: showing {len(kept)} of {total} results. "
            f"Narrow the request (e.g. provision_ref or section) to see the rest."
        )
        meta = dict(payload.get("_metadata") or {})
        meta["note"] = f"{meta['note']} {note}" if meta.get("note") else note
        trimmed = dict(payload, results=kept)
        trimmed["_metadata"] = meta
        text = _dumps(trimmed)
    logger.info("Response trimmed to %d of %d results", len(kept), total)
    return text


def _text_result(payload: Any, is_error: bool = False) -> CallToolResult:
    text = fit_payload(payload)
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def error_result(code: str, message: str) -> CallToolResult:
    return _text_result({"error": code, "message": message}, is_error=True)


def execute_tool(
    conn: sqlite3.Connection,
    name: str,
    arguments: dict | None,
    context: ServerContext | None = None,
) -> CallToolResult:
    """Validate arguments, run one tool against `conn`, wrap the outcome."""
    spec = TOOLS_BY_NAME.get(name)
    if spec is None:
        return error_result("unknown_tool", f"Unknown tool: {name}")
    if spec.needs_context and context is None:
        return error_result(
            "capability_unavailable",
            f"Tool '{name}' is not available: server context was not initialised.",
        )

    try:
        args = spec.args_model.model_validate(arguments or {})
    except ValidationError as e:
        return error_result("invalid_arguments", str(e))

    try:
        conn.execute("SELECT 1").fetchone()
        env = ToolEnv(capabilities=detect_capabilities(conn), context=context)
        payload = spec.handler(conn, args, env)
    except Exception as e:
        logger.error("Tool error %s: %s", name, e, exc_info=True)
        return error_result("tool_execution_failed", f"{type(e).__name__}: {e}")

    return _text_result(payload)


# ── MCP Server ────────────────────────────────────────────────

server = Server(SERVER_NAME)
_server_context: ServerContext | None = None


@server.list_tools()
async def handle_list_tools() -> list[Tool]:
    return build_tools(_server_context)


@server.call_tool()
async def handle_call_tool(name: str, arguments: dict) -> CallToolResult:
    try:
        conn = get_db()
    except FileNotFoundError as e:
        return error_result("database_not_found", str(e))
    try:
        return execute_tool(conn, name, arguments, _server_context)
    finally:
        conn.close()


# ── Main ──────────────────────────────────────────────────────

async def main():
    global _server_context

    logger.info("Chilean Law MCP Server starting")
    logger.info("Database: %s", DB_PATH)

    _server_context = load_server_context()
    if _server_context is not None:
        logger.info(
            "Database loaded: fingerprint %s, built %s",
            _server_context.fingerprint,
            _server_context.db_built or "?",
        )
    else:
        logger.info("No database found. Set CHILEAN_LAW_DB to a built database.")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run():
    import asyncio
    asyncio.run(main())


if __name__ == "__main__":
    run()
