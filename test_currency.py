import pytest

from legislation.currency import check_currency, normalize_as_of_date, status_warnings


def test_amended_statute_is_current(core_conn):
    result = check_currency(core_conn, "Ley de Datos")["results"]
    assert result["document_id"] == "doc-data"
    assert result["status"] == "amended"
    assert result["is_current"] is True
    assert any("amended" in w for w in result["warnings"])


def test_repealed_statute(core_conn):
    result = check_currency(core_conn, "doc-repealed")["results"]
    assert result["is_current"] is False
    assert any("repealed" in w for w in result["warnings"])


def test_not_yet_in_force_statute(core_conn):
    result = check_currency(core_conn, "doc-future")["results"]
    assert result["is_current"] is False
    assert "not yet entered" in result["warnings"][0]


def test_in_force_statute_has_no_warnings(core_conn):
    result = check_currency(core_conn, "doc-complete")["results"]
    assert result["is_current"] is True
    assert result["warnings"] == []


def test_unknown_document(core_conn):
    result = check_currency(core_conn, "Ley Fantasma")["results"]
    assert result["status"] == "not_found"
    assert result["document_id"] == "Ley Fantasma"


def test_as_of_date_before_entry_into_force(core_conn):
    result = check_currency(core_conn, "doc-future", as_of_date="2026-06-01T10:00:00Z")["results"]
    assert result["as_of_date"] == "2026-06-01"
    assert any("not yet in force on 2026-06-01" in w for w in result["warnings"])


def test_as_of_date_after_entry_into_force(core_conn):
    result = check_currency(core_conn, "doc-data", as_of_date="2020-01-01")["results"]
    assert not any("not yet in force on" in w for w in result["warnings"])


def test_provision_existence(core_conn):
    found = check_currency(core_conn, "doc-data", provision_ref="art1")["results"]
    assert found["provision_exists"] is True

    missing = check_currency(core_conn, "doc-data", provision_ref="art99")["results"]
    assert missing["provision_exists"] is False
    assert any("art99" in w for w in missing["warnings"])


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2026-01-02", "2026-01-02"),
        ("2026-01-02T12:34:56Z", "2026-01-02"),
        (" 2026-01-02 ", "2026-01-02"),
        ("02/01/2026", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_as_of_date(value, expected):
    assert normalize_as_of_date(value) == expected


def test_status_warnings_for_clean_statute():
    assert status_warnings("in_force") == []
    assert status_warnings(None) == []
