import sqlite3
from pathlib import Path

import pytest

from db_schema import (
    DOCUMENT_COLUMNS,
    FOREIGN_INSTRUMENT_COLUMNS,
    FOREIGN_REFERENCE_COLUMNS,
    FOREIGN_SCHEMA_SQL,
    INSERT_DOCUMENT_SQL,
    INSERT_FOREIGN_INSTRUMENT_SQL,
    INSERT_FOREIGN_REFERENCE_SQL,
    INSERT_PROVISION_SQL,
    PROVISION_COLUMNS,
    SCHEMA_SQL,
)

BUILT_AT = "2026-02-21T20:00:00.000Z"


def _document(**overrides):
    row = {col: None for col in DOCUMENT_COLUMNS}
    row.update({"type": "statute", "status": "in_force"})
    row.update(overrides)
    return row


DOCUMENTS = [
    _document(
        id="doc-data",
        title="Ley de Datos",
        title_en="Data Law",
        short_name="LPD",
        status="amended",
        issued_date="2018-06-01",
        in_force_date="2018-12-01",
        url="https://www.bcn.cl/leychile/navegar?idNorma=141599",
        description="Protección de la vida privada y datos personales.",
    ),
    _document(
        id="doc-repealed",
        title="Ley Derogada",
        status="repealed",
        issued_date="2002-04-12",
        in_force_date="2002-04-12",
        url="https://www.bcn.cl/leychile/navegar?idNorma=196640",
    ),
    _document(
        id="doc-future",
        title="Ley Futura",
        status="not_yet_in_force",
        issued_date="2025-12-01",
        in_force_date="2027-01-01",
        url="https://www.bcn.cl/leychile/navegar?idNorma=999001",
    ),
    _document(id="doc-complete", title="Ley Completa", url="https://www.bcn.cl/leychile/navegar?idNorma=999002"),
    _document(id="doc-unknown", title="Ley Incierta", url="https://www.bcn.cl/leychile/navegar?idNorma=999003"),
    _document(id="doc-noeu", title="Ley Sin EU", url="https://www.bcn.cl/leychile/navegar?idNorma=999004"),
    _document(id="doc-nourl", title="Ley Sin URL"),
]

# Insertion order fixes provision ids 1..5.
PROVISIONS = [
    ("doc-data", "art1", "Título I", "1", "Objeto",
     "Esta ley regula el tratamiento de los datos personales en registros o bancos de datos."),
    ("doc-data", "s2", "Título I", "2", "Definiciones",
     "Para los efectos de esta ley se entiende por datos personales cualquier "
     "información relativa a personas naturales identificadas o identificables."),
    ("doc-repealed", "art1", None, "1", "Firma",
     "Esta ley sobre firma electrónica queda sin efecto."),
    ("doc-complete", "art32", None, "32", "Seguridad",
     "El responsable adoptará medidas de seguridad del tratamiento."),
    ("doc-nourl", "art1", None, "1", None, "Texto de una norma sin enlace oficial."),
]

DEFINITIONS = [
    ("doc-data", "datos personales",
     "Los relativos a cualquier información concerniente a personas naturales."),
]

METADATA = [
    ("tier", "free"),
    ("schema_version", "2"),
    ("built_at", BUILT_AT),
    ("builder", "unit-test"),
]

FOREIGN_INSTRUMENTS = [
    ("regulation:2016/679", "regulation", 2016, 679,
     "General Data Protection Regulation", "GDPR", "Protection of natural persons."),
    ("directive:2022/2555", "directive", 2022, 2555,
     "Network and Information Security Directive", "NIS2", "Cybersecurity across the Union."),
    ("directive:1995/46", "directive", 1995, 46,
     "Data Protection Directive", "DPD", "Replaced in 2018."),
]

FOREIGN_REFERENCES = [
    ("doc-data", 1, "regulation:2016/679", "5", "references", "complete",
     "Principios del tratamiento", "GDPR Article 5", 0),
    ("doc-data", 2, "regulation:2016/679", "6", "implements", "partial",
     "Licitud del tratamiento", "GDPR Article 6", 1),
    ("doc-repealed", None, "directive:2022/2555", None, "implements", "partial",
     None, None, 1),
    ("doc-complete", None, "regulation:2016/679", "32", "implements", "complete",
     None, None, 1),
    ("doc-unknown", None, "regulation:2016/679", None, "references", "unknown",
     None, None, 0),
]


def build_test_db(path: Path, with_foreign: bool) -> None:
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA_SQL)
    for doc in DOCUMENTS:
        conn.execute(INSERT_DOCUMENT_SQL, tuple(doc[col] for col in DOCUMENT_COLUMNS))
    for row in PROVISIONS:
        assert len(row) == len(PROVISION_COLUMNS)
        conn.execute(INSERT_PROVISION_SQL, row)
    conn.executemany(
        "INSERT INTO definitions (document_id, term, definition) VALUES (?, ?, ?)",
        DEFINITIONS,
    )
    conn.executemany("INSERT INTO metadata (key, value) VALUES (?, ?)", METADATA)
    if with_foreign:
        conn.executescript(FOREIGN_SCHEMA_SQL)
        for row in FOREIGN_INSTRUMENTS:
            assert len(row) == len(FOREIGN_INSTRUMENT_COLUMNS)
            conn.execute(INSERT_FOREIGN_INSTRUMENT_SQL, row)
        for row in FOREIGN_REFERENCES:
            assert len(row) == len(FOREIGN_REFERENCE_COLUMNS)
            conn.execute(INSERT_FOREIGN_REFERENCE_SQL, row)
    conn.commit()
    conn.close()


def _open(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA query_only = ON")
    return conn


@pytest.fixture()
def core_db_path(tmp_path: Path) -> Path:
    path = tmp_path / "core.db"
    build_test_db(path, with_foreign=False)
    return path


@pytest.fixture()
def foreign_db_path(tmp_path: Path) -> Path:
    path = tmp_path / "foreign.db"
    build_test_db(path, with_foreign=True)
    return path


@pytest.fixture()
def core_conn(core_db_path):
    conn = _open(core_db_path)
    yield conn
    conn.close()


@pytest.fixture()
def foreign_conn(foreign_db_path):
    conn = _open(foreign_db_path)
    yield conn
    conn.close()


class BrokenConnection:
    """Connection stand-in whose every statement fails."""

    def execute(self, sql, params=()):
        raise sqlite3.OperationalError("disk I/O error")

    def close(self):
        pass


@pytest.fixture()
def broken_conn():
    return BrokenConnection()
