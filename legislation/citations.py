"""
Legal citation parsing, validation and formatting.

Accepted shapes (keywords are case-insensitive; a comma or semicolon
between the parts is optional):

    Section 13 Ley de Datos        Section 13, Ley de Datos
    Ley de Datos s 13              Ley de Datos, s. 13
    Ley de Datos Section 13        Ley de Datos; Section 13
    Ley de Datos                   (document only)

Shapes are tried in that order and the first structural match wins. The
section token accepts parenthesized sub-references such as "13(2)"; those
parse fine but only validate when they equal a stored provision_ref or
section exactly.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from .currency import status_warnings
from .document_resolver import resolve_document_id
from .metadata import tool_response
from .provisions import find_cited_provision, load_document

_SECTION_TOKEN = r"(?P<section>[0-9A-Za-z()]+)"
_SEPARATOR = r"\s*[,;]?\s+"

CITATION_SHAPES = (
    re.compile(rf"^section\s+{_SECTION_TOKEN}{_SEPARATOR}(?P<document>.+)$", re.IGNORECASE),
    re.compile(rf"^(?P<document>.+?){_SEPARATOR}s\.?\s+{_SECTION_TOKEN}$", re.IGNORECASE),
    re.compile(rf"^(?P<document>.+?){_SEPARATOR}section\s+{_SECTION_TOKEN}$", re.IGNORECASE),
)

CITATION_FORMATS = ("full", "short", "pinpoint")


@dataclass(frozen=True)
class ParsedCitation:
    document_ref: str
    section_ref: str | None = None


def parse_citation(citation: str | None) -> ParsedCitation | None:
    """Split a citation into (document reference, section reference)."""
    text = (citation or "").strip()
    if not text:
        return None

    for shape in CITATION_SHAPES:
        m = shape.match(text)
        if m:
            return ParsedCitation(
                document_ref=m.group("document").strip(),
                section_ref=m.group("section"),
            )
    return ParsedCitation(document_ref=text)


def display_citation(title: str, section: str | None) -> str:
    if section:
        return f"Section {section}, {title}"
    return title


def validate_citation(conn, citation: str) -> dict:
    """validate_citation tool: is this citation backed by the database?"""
    parsed = parse_citation(citation)
    if parsed is None:
        return tool_response(conn, {
            "valid": False,
            "citation": citation,
            "warnings": ["Could not parse citation format"],
        })

    doc_id = resolve_document_id(conn, parsed.document_ref)
    document = load_document(conn, doc_id) if doc_id else None
    if document is None:
        return tool_response(conn, {
            "valid": False,
            "citation": citation,
            "warnings": [f'Document not found: "{parsed.document_ref}"'],
        })

    warnings = status_warnings(document["status"])
    result = {
        "valid": True,
        "citation": citation,
        "normalized": document["title"],
        "document_id": document["id"],
        "document_title": document["title"],
        "status": document["status"],
        "warnings": warnings,
    }

    if parsed.section_ref:
        provision = find_cited_provision(conn, document["id"], parsed.section_ref)
        if provision is None:
            return tool_response(conn, {
                "valid": False,
                "citation": citation,
                "document_id": document["id"],
                "document_title": document["title"],
                "warnings": warnings + [
                    f'Provision "Section {parsed.section_ref}" not found in {document["title"]}'
                ],
            })
        result["normalized"] = display_citation(document["title"], parsed.section_ref)
        result["provision_ref"] = provision["provision_ref"]

    return tool_response(conn, result)


def format_citation(citation: str, format: str = "full") -> dict:
    """format_citation tool: restyle a citation without touching the store."""
    style = format if format in CITATION_FORMATS else "full"
    parsed = parse_citation(citation)

    if parsed is None:
        formatted = (citation or "").strip()
    elif not parsed.section_ref:
        formatted = parsed.document_ref
    elif style == "short":
        formatted = f"{parsed.document_ref} s {parsed.section_ref}"
    elif style == "pinpoint":
        formatted = f"s {parsed.section_ref}"
    else:
        formatted = display_citation(parsed.document_ref, parsed.section_ref)

    return {"original": citation, "formatted": formatted, "format": style}
