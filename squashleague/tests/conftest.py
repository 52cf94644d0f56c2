"""
Shared fixtures: a Store per backend and a small cast of users.
PostgreSQL runs only when SQUASHLEAGUE_TEST_POSTGRES_DSN points at a
throwaway database (tables are dropped before each test).
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from squashleague.models import User, UserRole
from squashleague.persistence.memory import MemoryStore
from squashleague.persistence.sqlite import open_sqlite_store

POSTGRES_DSN = os.environ.get("SQUASHLEAGUE_TEST_POSTGRES_DSN", "").strip()

_PG_TABLES = [
    "league_join_requests",
    "reports",
    "friendly_matches",
    "matches",
    "leagues",
    "users",
    "schema_migrations",
]

BACKENDS = [
    "memory",
    "sqlite",
    pytest.param(
        "postgres",
        marks=pytest.mark.skipif(not POSTGRES_DSN, reason="SQUASHLEAGUE_TEST_POSTGRES_DSN not set"),
    ),
]


def reset_postgres(dsn: str) -> None:
    import psycopg2

    conn = psycopg2.connect(dsn)
    try:
        cur = conn.cursor()
        for table in _PG_TABLES:
            cur.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
        conn.commit()
        cur.close()
    finally:
        conn.close()


def open_backend(name: str, tmp_path: Path):
    if name == "memory":
        return MemoryStore()
    if name == "sqlite":
        return open_sqlite_store(tmp_path / "test.db")
    from squashleague.persistence.postgres import open_postgres_store

    reset_postgres(POSTGRES_DSN)
    return open_postgres_store(POSTGRES_DSN)


@pytest.fixture(params=BACKENDS)
def store(request, tmp_path):
    s = open_backend(request.param, tmp_path)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def people(store):
    """alice, bob, carol, dave (plain users) and root (super admin)."""
    def make(first: str, last: str, role: str = UserRole.USER.value) -> User:
        return store.create_user(User(
            first_name=first,
            last_name=last,
            email=f"{first.lower()}@example.com",
            role=role,
        ))

    return SimpleNamespace(
        alice=make("Alice", "Archer"),
        bob=make("Bob", "Baker"),
        carol=make("Carol", "Cooper"),
        dave=make("Dave", "Dyer"),
        root=make("Root", "Admin", UserRole.SUPER_ADMIN.value),
    )
