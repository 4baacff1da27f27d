"""Currency checks: is a statute (or one of its provisions) in force?"""
from __future__ import annotations

from datetime import date, datetime

from .document_resolver import resolve_document_id
from .metadata import tool_response
from .provisions import find_cited_provision, load_document

CURRENT_STATUSES = {"in_force", "amended"}

REPEALED_WARNING = "WARNING: This statute has been repealed."
NOT_YET_IN_FORCE_WARNING = "This statute has not yet entered into force."
AMENDED_WARNING = (
    "Note: This statute has been amended. "
    "Verify you are referencing the current version."
)


def status_warnings(status: str | None) -> list[str]:
    """Warnings derived from the stored status; clean statutes get none."""
    if status == "repealed":
        return [REPEALED_WARNING]
    if status == "not_yet_in_force":
        return [NOT_YET_IN_FORCE_WARNING]
    if status == "amended":
        return [AMENDED_WARNING]
    return []


def normalize_as_of_date(value: str | None) -> str | None:
    """'2026-01-02' or '2026-01-02T12:34:56Z' -> '2026-01-02'; junk -> None."""
    raw = (value or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10]).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return None


def check_currency(
    conn,
    document_id: str,
    provision_ref: str | None = None,
    as_of_date: str | None = None,
) -> dict:
    """check_currency tool."""
    resolved = resolve_document_id(conn, document_id)
    document = load_document(conn, resolved) if resolved else None
    if document is None:
        return tool_response(conn, {
            "document_id": document_id,
            "status": "not_found",
            "warnings": [f"Document not found: {document_id!r}"],
        })

    status = document["status"]
    warnings = status_warnings(status)
    result = {
        "document_id": document["id"],
        "title": document["title"],
        "status": status,
        "issued_date": document["issued_date"],
        "in_force_date": document["in_force_date"],
        "is_current": status in CURRENT_STATUSES,
        "warnings": warnings,
    }

    as_of = normalize_as_of_date(as_of_date)
    if as_of:
        result["as_of_date"] = as_of
        in_force = document["in_force_date"]
        if in_force and as_of < in_force[:10]:
            warnings.append(
                f"This statute was not yet in force on {as_of} (in force from {in_force[:10]})."
            )

    if provision_ref:
        provision = find_cited_provision(conn, document["id"], provision_ref)
        result["provision_ref"] = provision_ref
        result["provision_exists"] = provision is not None
        if provision is None:
            warnings.append(f"Provision {provision_ref!r} not found in {document['title']}.")

    return tool_response(conn, result)
