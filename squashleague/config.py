"""
Backend selection settings.
The core never reads the environment; callers build a StoreConfig (usually
via from_env) and pass it to persistence.factory.open_store.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class StoreConfig:
    """
    postgres_dsn wins over db_path; with neither set the in-memory store is
    used, seeded with demo data unless prod is true.
    Empty migrations dirs mean the scripts bundled with the package.
    """
    postgres_dsn: str = ""
    postgres_migrations_dir: str = ""
    db_path: str = ""
    db_migrations_dir: str = ""
    prod: bool = False

    @property
    def backend(self) -> str:
        if self.postgres_dsn:
            return "postgres"
        if self.db_path:
            return "sqlite"
        return "memory"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StoreConfig":
        env = os.environ if environ is None else environ
        return cls(
            postgres_dsn=env.get("POSTGRES_DSN", "").strip(),
            postgres_migrations_dir=env.get("POSTGRES_MIGRATIONS_DIR", "").strip(),
            db_path=env.get("DB_PATH", "").strip(),
            db_migrations_dir=env.get("DB_MIGRATIONS_DIR", "").strip(),
            prod=env.get("APP", "").strip().lower() == "prod",
        )
