from unittest.mock import patch

from legislation.provisions import find_cited_provision, get_provision, lookup_provisions


def test_get_provision_by_ref(core_conn):
    results = get_provision(core_conn, "doc-data", provision_ref="art1")["results"]
    assert len(results) == 1
    assert results[0]["section"] == "1"
    assert results[0]["document_title"] == "Ley de Datos"
    assert results[0]["url"].startswith("https://www.bcn.cl/")


def test_get_provision_by_section(core_conn):
    results = get_provision(core_conn, "doc-data", section="2")["results"]
    assert [r["provision_ref"] for r in results] == ["s2"]


def test_get_provision_section_substring_fallback(core_conn):
    results = get_provision(core_conn, "doc-data", section="rt1")["results"]
    assert [r["provision_ref"] for r in results] == ["art1"]


def test_get_provision_by_english_title(core_conn):
    results = get_provision(core_conn, "Data Law", section="1")["results"]
    assert [r["provision_ref"] for r in results] == ["art1"]


def test_get_provision_without_hints_lists_all(core_conn):
    response = get_provision(core_conn, "doc-data")
    assert [r["provision_ref"] for r in response["results"]] == ["art1", "s2"]
    assert "note" not in response["_metadata"]


def test_get_provision_missing_section(core_conn):
    response = get_provision(core_conn, "doc-data", section="999")
    assert response["results"] == []
    assert "not found in Ley de Datos" in response["_metadata"]["note"]


def test_get_provision_unknown_document(core_conn):
    response = get_provision(core_conn, "Ley Fantasma", section="1")
    assert response["results"] == []
    assert "Document not found" in response["_metadata"]["note"]


def test_get_provision_omits_missing_url(core_conn):
    results = get_provision(core_conn, "doc-nourl")["results"]
    assert len(results) == 1
    assert "url" not in results[0]


def test_get_provision_resolved_id_without_record(core_conn):
    with patch("legislation.provisions.load_document", return_value=None):
        response = get_provision(core_conn, "doc-data", section="1")
    assert response["results"] == []
    assert "no document record" in response["_metadata"]["note"]


def test_ref_hint_takes_precedence_over_section(core_conn):
    rows, strategy = lookup_provisions(core_conn, "doc-data", provision_ref="s2", section="1")
    assert [r["provision_ref"] for r in rows] == ["s2"]
    assert strategy == "provision_ref"


def test_cited_provision_accepts_bare_number(core_conn):
    assert find_cited_provision(core_conn, "doc-data", "1")["provision_ref"] == "art1"
    assert find_cited_provision(core_conn, "doc-data", "2")["provision_ref"] == "s2"


def test_cited_provision_is_exact_only(core_conn):
    assert find_cited_provision(core_conn, "doc-data", "rt1") is None
    assert find_cited_provision(core_conn, "doc-data", "1(2)") is None
    assert find_cited_provision(core_conn, "doc-data", "") is None
