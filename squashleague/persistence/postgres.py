"""
PostgreSQL backend via psycopg2. Queries are shared with SQLite; '?'
placeholders become '%s' here. Rows come back as dicts (RealDictCursor).
"""
from __future__ import annotations

import logging
from pathlib import Path

import psycopg2
import psycopg2.extras

from squashleague.errors import BackendUnavailableError
from squashleague.persistence.migrations import LEDGER_TABLE, apply_migrations, default_migrations_dir
from squashleague.persistence.sql_store import SQLStore

logger = logging.getLogger(__name__)


class PostgresDialect:
    name = "postgres"
    integrity_error = psycopg2.IntegrityError
    connection_error = psycopg2.OperationalError

    def __init__(self, dsn: str) -> None:
        if not dsn:
            raise BackendUnavailableError("postgres: a DSN is required")
        self.dsn = dsn

    def connect(self):
        return psycopg2.connect(self.dsn, cursor_factory=psycopg2.extras.RealDictCursor)

    def sql(self, query: str) -> str:
        return query.replace("?", "%s")

    def apply_script(self, conn, script: str, filename: str, applied_at: str) -> None:
        cur = conn.cursor()
        try:
            if script.strip():
                cur.execute(script)
            cur.execute(
                f"INSERT INTO {LEDGER_TABLE} (filename, applied_at) VALUES (%s, %s)",
                (filename, applied_at),
            )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
        finally:
            cur.close()


def open_postgres_store(dsn: str, migrations_dir: str | Path | None = None) -> SQLStore:
    """Connect, migrate and return the store. Unreachable server -> BackendUnavailableError."""
    dialect = PostgresDialect(dsn)
    directory = migrations_dir or default_migrations_dir(dialect.name)
    try:
        applied = apply_migrations(dialect, directory)
    except psycopg2.Error as e:
        raise BackendUnavailableError(f"postgres: {e}") from e
    logger.info("Postgres store ready (%d migrations applied)", len(applied))
    return SQLStore(dialect)
