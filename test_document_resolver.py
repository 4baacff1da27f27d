import sqlite3

import pytest

from db_schema import INSERT_DOCUMENT_SQL, SCHEMA_SQL
from legislation.document_resolver import resolve_document_id


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("doc-data", "doc-data"),
        ("  doc-data  ", "doc-data"),
        ("ley de datos", "doc-data"),
        ("LEY DE DATOS", "doc-data"),
        ("data law", "doc-data"),
        ("Datos", "doc-data"),
        ("lpd", "doc-data"),
        ("Derogada", "doc-repealed"),
    ],
)
def test_resolves_known_references(core_conn, reference, expected):
    assert resolve_document_id(core_conn, reference) == expected


@pytest.mark.parametrize("reference", [None, "", "   ", "Ley Fantasma", "%", "_"])
def test_unresolvable_references(core_conn, reference):
    assert resolve_document_id(core_conn, reference) is None


def _doc(doc_id, title, title_en=None):
    return (doc_id, "statute", title, title_en, None, "in_force", None, None, None, None)


def test_exact_id_beats_title_match():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA_SQL)
    conn.execute(INSERT_DOCUMENT_SQL, _doc("ley-2", "ley-1"))
    conn.execute(INSERT_DOCUMENT_SQL, _doc("ley-1", "Ley Uno"))
    assert resolve_document_id(conn, "ley-1") == "ley-1"


def test_native_title_beats_english_title():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA_SQL)
    conn.execute(INSERT_DOCUMENT_SQL, _doc("translated", "Ley de Privacidad", "Privacy Act"))
    conn.execute(INSERT_DOCUMENT_SQL, _doc("native", "Privacy Act"))
    assert resolve_document_id(conn, "privacy act") == "native"


def test_partial_match_is_deterministic():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA_SQL)
    conn.execute(INSERT_DOCUMENT_SQL, _doc("b-law", "Ley de Aguas Subterráneas"))
    conn.execute(INSERT_DOCUMENT_SQL, _doc("a-law", "Ley de Aguas"))
    # first inserted wins, not alphabetical order
    assert resolve_document_id(conn, "aguas") == "b-law"
