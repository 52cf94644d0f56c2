"""
Pick and open a Store backend from a StoreConfig.
"""
from __future__ import annotations

import logging

from squashleague.config import StoreConfig
from squashleague.persistence.memory import MemoryStore
from squashleague.persistence.store import Store

logger = logging.getLogger(__name__)


def open_store(config: StoreConfig) -> Store:
    """
    postgres_dsn -> PostgreSQL, else db_path -> SQLite, else memory.
    SQL backends are migrated before being returned; failures raise
    BackendUnavailableError or MigrationError and are fatal at startup.
    """
    if config.postgres_dsn:
        from squashleague.persistence.postgres import open_postgres_store

        logger.info("Using postgres store")
        return open_postgres_store(config.postgres_dsn, config.postgres_migrations_dir or None)
    if config.db_path:
        from squashleague.persistence.sqlite import open_sqlite_store

        logger.info("Using sqlite store at %s", config.db_path)
        return open_sqlite_store(config.db_path, config.db_migrations_dir or None)

    store = MemoryStore()
    if config.prod:
        logger.info("Using empty memory store (prod)")
    else:
        from squashleague.persistence.seed import seed_data

        logger.info("Using memory store with demo data")
        seed_data(store)
    return store
