"""
Canonical SQLite schema for the Chilean legislation store.

Shared between the test fixtures and anyone assembling a database for
mcp_server.py. Single source of truth for the read surface the engine
depends on; edit here and every consumer picks it up.

The core tables are always present. FOREIGN_SCHEMA_SQL adds the optional
cross-jurisdiction tables that enable the foreign-reference tools.
"""

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL DEFAULT 'statute',
        title TEXT NOT NULL,
        title_en TEXT,
        short_name TEXT,
        status TEXT NOT NULL DEFAULT 'in_force',
        issued_date TEXT,
        in_force_date TEXT,
        url TEXT,
        description TEXT
    );

    CREATE TABLE IF NOT EXISTS provisions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        document_id TEXT NOT NULL REFERENCES documents(id),
        provision_ref TEXT NOT NULL,
        chapter TEXT,
        section TEXT NOT NULL,
        title TEXT,
        content TEXT NOT NULL,
        UNIQUE (document_id, provision_ref)
    );

    CREATE INDEX IF NOT EXISTS idx_provisions_document ON provisions(document_id);
    CREATE INDEX IF NOT EXISTS idx_provisions_section ON provisions(document_id, section);

    CREATE VIRTUAL TABLE IF NOT EXISTS provisions_fts USING fts5(
        content,
        title,
        content=provisions,
        content_rowid=id,
        tokenize='unicode61 remove_diacritics 2'
    );

    -- Triggers to keep FTS in sync
    CREATE TRIGGER IF NOT EXISTS provisions_ai AFTER INSERT ON provisions BEGIN
        INSERT INTO provisions_fts(rowid, content, title)
        VALUES (new.id, new.content, new.title);
    END;

    CREATE TRIGGER IF NOT EXISTS provisions_ad AFTER DELETE ON provisions BEGIN
        INSERT INTO provisions_fts(provisions_fts, rowid, content, title)
        VALUES ('delete', old.id, old.content, old.title);
    END;

    CREATE TRIGGER IF NOT EXISTS provisions_au AFTER UPDATE ON provisions BEGIN
        INSERT INTO provisions_fts(provisions_fts, rowid, content, title)
        VALUES ('delete', old.id, old.content, old.title);
        INSERT INTO provisions_fts(rowid, content, title)
        VALUES (new.id, new.content, new.title);
    END;

    CREATE TABLE IF NOT EXISTS definitions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        document_id TEXT NOT NULL REFERENCES documents(id),
        term TEXT NOT NULL,
        definition TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
"""

FOREIGN_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS foreign_instruments (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        year INTEGER NOT NULL,
        number INTEGER NOT NULL,
        title TEXT,
        short_name TEXT,
        description TEXT
    );

    CREATE TABLE IF NOT EXISTS foreign_references (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        document_id TEXT NOT NULL REFERENCES documents(id),
        provision_id INTEGER REFERENCES provisions(id),
        foreign_instrument_id TEXT NOT NULL REFERENCES foreign_instruments(id),
        foreign_article TEXT,
        reference_type TEXT NOT NULL DEFAULT 'references',
        implementation_status TEXT NOT NULL DEFAULT 'unknown',
        reference_context TEXT,
        full_citation TEXT,
        is_primary INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_foreign_refs_document
        ON foreign_references(document_id);
    CREATE INDEX IF NOT EXISTS idx_foreign_refs_instrument
        ON foreign_references(foreign_instrument_id);
"""

# Column order for INSERT statements (must match the table definitions above)
DOCUMENT_COLUMNS = (
    "id", "type", "title", "title_en", "short_name", "status",
    "issued_date", "in_force_date", "url", "description",
)

PROVISION_COLUMNS = (
    "document_id", "provision_ref", "chapter", "section", "title", "content",
)

FOREIGN_INSTRUMENT_COLUMNS = (
    "id", "type", "year", "number", "title", "short_name", "description",
)

FOREIGN_REFERENCE_COLUMNS = (
    "document_id", "provision_id", "foreign_instrument_id", "foreign_article",
    "reference_type", "implementation_status", "reference_context",
    "full_citation", "is_primary",
)


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})"
    )


INSERT_DOCUMENT_SQL = _insert_sql("documents", DOCUMENT_COLUMNS)
INSERT_PROVISION_SQL = _insert_sql("provisions", PROVISION_COLUMNS)
INSERT_FOREIGN_INSTRUMENT_SQL = _insert_sql("foreign_instruments", FOREIGN_INSTRUMENT_COLUMNS)
INSERT_FOREIGN_REFERENCE_SQL = _insert_sql("foreign_references", FOREIGN_REFERENCE_COLUMNS)
