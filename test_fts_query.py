import sqlite3

import pytest

from legislation.fts_query import build_fts_query_variants, run_fts_variants, sanitize_fts_input


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('datos "personales" (art:1)*', "datos personales art 1"),
        ("  firma   electrónica ", "firma electrónica"),
        ("[a]{b}^c+d", "a b c d"),
        ("it's", "it s"),
        ("19.628", "19 628"),
        ("ciber-seguridad", "ciber seguridad"),
        ("ley,", "ley"),
        ("¿qué dice la ley 21.719?", "qué dice la ley 21 719"),
        ("a/b; c! d@e", "a b c d e"),
        (None, ""),
    ],
)
def test_sanitize_fts_input(raw, expected):
    assert sanitize_fts_input(raw) == expected


def test_variants_statute_number_become_phrase():
    assert build_fts_query_variants("19.628") == ['"19 628"', "19 AND 628", "19 AND 628*"]


def test_variants_single_short_token():
    assert build_fts_query_variants("ab") == ["ab"]


def test_variants_single_token_adds_prefix():
    assert build_fts_query_variants("datos") == ["datos", "datos*"]


def test_variants_multi_token_phrase_then_and_then_prefix():
    assert build_fts_query_variants("datos personales") == [
        '"datos personales"',
        "datos AND personales",
        "datos AND personales*",
    ]


@pytest.mark.parametrize("raw", ["", "   ", '"()"', "***"])
def test_variants_empty_input(raw):
    assert build_fts_query_variants(raw) == []


class _Cursor:
    def __init__(self, rows):
        self._rows = rows

    def fetchall(self):
        return self._rows


class _ScriptedConnection:
    """Fails or answers per MATCH expression."""

    def __init__(self, answers):
        self.answers = answers
        self.seen = []

    def execute(self, sql, params):
        match = params[0]
        self.seen.append(match)
        answer = self.answers.get(match, [])
        if isinstance(answer, Exception):
            raise answer
        return _Cursor(answer)


def test_malformed_variant_falls_through_to_next():
    conn = _ScriptedConnection({
        '"a b"': sqlite3.OperationalError("fts5: syntax error"),
        "a AND b": [{"id": 7}],
    })
    rows, variant = run_fts_variants(conn, "SQL", ['"a b"', "a AND b", "a AND b*"], lambda m: [m, 10])
    assert rows == [{"id": 7}]
    assert variant == "a AND b"
    assert conn.seen == ['"a b"', "a AND b"]


def test_all_variants_failing_returns_empty():
    err = sqlite3.OperationalError("fts5: syntax error near AND")
    conn = _ScriptedConnection({"x": err, "x*": err})
    assert run_fts_variants(conn, "SQL", ["x", "x*"], lambda m: [m]) == ([], None)


def test_empty_variant_results_keep_trying():
    conn = _ScriptedConnection({"x*": [{"id": 1}]})
    rows, variant = run_fts_variants(conn, "SQL", ["x", "x*"], lambda m: [m])
    assert variant == "x*"
    assert rows == [{"id": 1}]


def test_real_fts_parser_error_is_absorbed(core_conn):
    sql = "SELECT rowid FROM provisions_fts WHERE provisions_fts MATCH ?"
    rows, variant = run_fts_variants(
        core_conn, sql, ["datos AND AND", "datos"], lambda m: [m],
    )
    assert variant == "datos"
    assert rows
