"""
Migration bootstrap for the SQL backends.

Scripts are *.sql files applied in filename order. The schema_migrations
ledger records applied filenames; each script commits together with its
ledger row or not at all. Scripts must not issue their own BEGIN/COMMIT.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from squashleague.errors import MigrationError
from squashleague.models import utc_now

logger = logging.getLogger(__name__)

LEDGER_TABLE = "schema_migrations"

LEDGER_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    filename TEXT PRIMARY KEY,
    applied_at TEXT NOT NULL
)
"""


class MigrationDialect(Protocol):
    name: str

    def connect(self) -> Any: ...
    def apply_script(self, conn: Any, script: str, filename: str, applied_at: str) -> None: ...


def default_migrations_dir(dialect_name: str) -> Path:
    """Scripts bundled with the package: persistence/sql/<dialect>/."""
    return Path(__file__).resolve().parent / "sql" / dialect_name


def discover_scripts(directory: str | Path) -> list[Path]:
    """*.sql files in lexical filename order. Missing directory -> []."""
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted((p for p in path.iterdir() if p.is_file() and p.suffix == ".sql"), key=lambda p: p.name)


def ensure_ledger(conn: Any) -> None:
    cur = conn.cursor()
    try:
        cur.execute(LEDGER_SCHEMA)
    finally:
        cur.close()
    conn.commit()


def applied_filenames(conn: Any) -> set[str]:
    cur = conn.cursor()
    try:
        cur.execute(f"SELECT filename FROM {LEDGER_TABLE}")
        return {row["filename"] for row in cur.fetchall()}
    finally:
        cur.close()


def apply_migrations(dialect: MigrationDialect, directory: str | Path) -> list[str]:
    """
    Apply pending scripts from directory. Returns filenames applied this run.
    Raises MigrationError (after rollback) on the first failing script.
    """
    scripts = discover_scripts(directory)
    conn = dialect.connect()
    try:
        ensure_ledger(conn)
        if not scripts:
            return []
        done = applied_filenames(conn)
        applied: list[str] = []
        for path in scripts:
            if path.name in done:
                continue
            try:
                script = path.read_text(encoding="utf-8")
            except OSError as e:
                raise MigrationError(f"read migration {path}: {e}") from e
            try:
                dialect.apply_script(conn, script, path.name, utc_now().isoformat())
            except Exception as e:
                logger.error("Migration %s failed on %s: %s", path.name, dialect.name, e)
                raise MigrationError(f"apply migration {path.name}: {e}") from e
            logger.info("Applied migration %s (%s)", path.name, dialect.name)
            applied.append(path.name)
        return applied
    finally:
        conn.close()
