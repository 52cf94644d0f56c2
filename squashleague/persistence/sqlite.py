"""
SQLite backend: a file database opened per operation.
Schema comes from sql/sqlite/*.sql, applied when the store is opened.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from squashleague.errors import BackendUnavailableError
from squashleague.persistence.migrations import LEDGER_TABLE, apply_migrations, default_migrations_dir
from squashleague.persistence.sql_store import SQLStore

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class SQLiteDialect:
    name = "sqlite"
    integrity_error = sqlite3.IntegrityError
    connection_error = sqlite3.Error

    def __init__(self, db_path: str | Path) -> None:
        path = str(db_path)
        if not path or path == ":memory:" or path.startswith("file::memory:"):
            # every operation opens a fresh connection, so an in-memory database would vanish
            raise BackendUnavailableError("sqlite: a file path is required")
        self.db_path = Path(path)

    def connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def sql(self, query: str) -> str:
        return query

    def apply_script(self, conn: sqlite3.Connection, script: str, filename: str, applied_at: str) -> None:
        """
        Run script and its ledger row as one transaction.
        executescript() commits any open transaction first, so BEGIN/COMMIT
        are part of the script text.
        """
        ledger_row = (
            f"INSERT INTO {LEDGER_TABLE} (filename, applied_at) "
            f"VALUES ({_quote(filename)}, {_quote(applied_at)});"
        )
        body = script if script.strip() else ""
        try:
            conn.executescript(f"BEGIN;\n{body}\n;\n{ledger_row}\nCOMMIT;")
        except sqlite3.Error:
            if conn.in_transaction:
                conn.rollback()
            raise


def open_sqlite_store(db_path: str | Path, migrations_dir: str | Path | None = None) -> SQLStore:
    """Open (creating if needed) a SQLite database, migrate it, return the store."""
    dialect = SQLiteDialect(db_path)
    directory = migrations_dir or default_migrations_dir(dialect.name)
    try:
        applied = apply_migrations(dialect, directory)
    except sqlite3.Error as e:
        raise BackendUnavailableError(f"sqlite: {e}") from e
    logger.info("SQLite store ready at %s (%d migrations applied)", dialect.db_path, len(applied))
    return SQLStore(dialect)
