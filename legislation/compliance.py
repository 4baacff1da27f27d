"""
Compliance classification from cross-jurisdiction reference rows.

Verdicts are evaluated in a fixed order:

    no document / no capability      -> not_applicable
    zero reference rows              -> not_applicable
    any row with status "unknown"    -> unclear
    every row "complete"             -> compliant
    otherwise                        -> partial

A repealed statute always gets a repeal warning, whatever the verdict.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from .capabilities import FOREIGN_REFERENCES, Capabilities, detect_capabilities, upgrade_message
from .document_resolver import resolve_document_id
from .metadata import tool_response
from .provisions import load_document


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIAL = "partial"
    UNCLEAR = "unclear"
    NOT_APPLICABLE = "not_applicable"


def classify_references(rows: list[dict]) -> ComplianceStatus:
    """Verdict for a non-empty-or-empty set of reference rows."""
    if not rows:
        return ComplianceStatus.NOT_APPLICABLE
    statuses = [r.get("implementation_status") for r in rows]
    if any(s == "unknown" for s in statuses):
        return ComplianceStatus.UNCLEAR
    if all(s == "complete" for s in statuses):
        return ComplianceStatus.COMPLIANT
    return ComplianceStatus.PARTIAL


def _describe(row: dict) -> str:
    label = row.get("full_citation") or row["foreign_instrument_id"]
    if row.get("foreign_article") and not row.get("full_citation"):
        label += f" Article {row['foreign_article']}"
    return label


def _recommendations(status: ComplianceStatus, rows: list[dict]) -> list[str]:
    if status is ComplianceStatus.NOT_APPLICABLE:
        return [
            "No foreign cross-references found for this document. "
            "Consider adding cross-references if it implements or relies on foreign law."
        ]
    if status is ComplianceStatus.UNCLEAR:
        return [
            f"Clarify the implementation status of {_describe(r)} (currently unknown)."
            for r in rows if r.get("implementation_status") == "unknown"
        ]
    if status is ComplianceStatus.PARTIAL:
        return [
            f"Review partial implementation of {_describe(r)}."
            for r in rows if r.get("implementation_status") != "complete"
        ]
    return []


def _result(document_id, instrument_id, status: ComplianceStatus, count: int,
            warnings: list[str], recommendations: list[str]) -> dict[str, Any]:
    result: dict[str, Any] = {"document_id": document_id}
    if instrument_id:
        result["foreign_instrument_id"] = instrument_id
    result.update({
        "compliance_status": status.value,
        "references_checked": count,
        "warnings": warnings,
        "recommendations": recommendations,
    })
    return result


def validate_compliance(
    conn,
    document_id: str,
    foreign_instrument_id: str | None = None,
    capabilities: Capabilities | None = None,
) -> dict:
    """validate_compliance tool."""
    caps = capabilities or detect_capabilities(conn)
    na = ComplianceStatus.NOT_APPLICABLE
    if not caps.has(FOREIGN_REFERENCES):
        return tool_response(conn, _result(
            document_id, foreign_instrument_id, na, 0,
            [upgrade_message(FOREIGN_REFERENCES)], [],
        ))

    resolved = resolve_document_id(conn, document_id)
    document = load_document(conn, resolved) if resolved else None
    if document is None:
        return tool_response(conn, _result(
            document_id, foreign_instrument_id, na, 0,
            [f"Document not found: {document_id!r}"], [],
        ))

    sql = """
        SELECT foreign_instrument_id, foreign_article, reference_type,
               implementation_status, full_citation, is_primary
        FROM foreign_references
        WHERE document_id = ?
    """
    params: list[Any] = [document["id"]]
    if foreign_instrument_id:
        sql += " AND foreign_instrument_id = ?"
        params.append(foreign_instrument_id)
    sql += " ORDER BY id"
    rows = [dict(r) for r in conn.execute(sql, params).fetchall()]

    status = classify_references(rows)
    warnings: list[str] = []
    if document["status"] == "repealed":
        warnings.append(
            f"WARNING: {document['title']} has been repealed; "
            "its cross-references may no longer reflect current law."
        )

    return tool_response(conn, _result(
        document["id"], foreign_instrument_id, status, len(rows),
        warnings, _recommendations(status, rows),
    ))
