#!/usr/bin/env python3
"""PostgreSQL connection manager with pooling for the catalog store."""

from typing import Optional
import logging
from contextlib import contextmanager

import psycopg
from psycopg_pool import ConnectionPool

from .errors import FatalSetupError
from .secure_config import DatabaseConfig

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS torrents (
        id BIGSERIAL PRIMARY KEY,
        info_hash CHAR(40) NOT NULL,
        name TEXT NOT NULL,
        has_files BOOLEAN NOT NULL DEFAULT FALSE,
        total_length BIGINT NOT NULL DEFAULT 0,
        first_seen TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        last_seen TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        announce_count INTEGER NOT NULL DEFAULT 1,
        search_index TEXT NOT NULL DEFAULT '',
        CONSTRAINT uniq_torrents_info_hash UNIQUE (info_hash)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS torrent_files (
        id BIGSERIAL PRIMARY KEY,
        torrent_id BIGINT NOT NULL REFERENCES torrents(id) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        path TEXT NOT NULL,
        length BIGINT NOT NULL,
        CONSTRAINT uniq_torrent_files_position UNIQUE (torrent_id, position)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_torrents_last_seen ON torrents (last_seen)",
    "CREATE INDEX IF NOT EXISTS idx_torrents_announce_count ON torrents (announce_count)",
)


class DatabaseManager:
    """
    Owns the bounded connection pool shared by every upsert.

    One instance is built at startup and handed to the store; there is no
    module-level singleton.
    """

    def __init__(self, config: DatabaseConfig, pool: Optional[ConnectionPool] = None):
        self.config_obj = config
        self.pool = pool
        self._closed = False

    def open(self) -> 'DatabaseManager':
        """Create the pool and verify the server answers.

        Raises:
            FatalSetupError: the initial connection cannot be established
        """
        if self.pool is None:
            self.pool = ConnectionPool(
                conninfo=self.config_obj.get_connection_string(hide_password=False),
                min_size=self.config_obj.min_pool_size,
                max_size=self.config_obj.pool_size,
                max_lifetime=self.config_obj.max_lifetime,
                timeout=self.config_obj.timeout,
                name="dhtcatalog_pool",
                open=False,
            )
        try:
            self.pool.open(wait=True, timeout=self.config_obj.timeout)
            self.ping()
        except (psycopg.Error, OSError) as exc:
            self.close()
            raise FatalSetupError(f"Database connection error: {exc}", exc)
        logger.info(
            f"Database connection pool initialized "
            f"({self.config_obj.min_pool_size}-{self.config_obj.pool_size} connections)"
        )
        return self

    def ping(self) -> bool:
        with self.transaction() as conn:
            row = conn.execute("SELECT 1").fetchone()
        return bool(row) and row[0] == 1

    @contextmanager
    def transaction(self):
        """
        Borrow a pooled connection for exactly one transaction.

        The transaction is committed when the block exits normally and rolled
        back when it raises; the connection always returns to the pool.

        Yields:
            psycopg connection

        Example:
            with db_manager.transaction() as conn:
                conn.execute("UPDATE torrents SET announce_count = announce_count + 1 WHERE id = %s", (7,))
        """
        if self.pool is None or self._closed:
            raise psycopg.OperationalError("Database connection pool is not open")

        with self.pool.connection() as connection:
            try:
                yield connection
                connection.commit()
            except Exception:
                connection.rollback()
                raise

    def ensure_schema(self):
        """Create the catalog relations if they don't exist"""
        with self.transaction() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        logger.info("Catalog tables created/verified")

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Close the connection pool"""
        if self._closed:
            return
        self._closed = True
        if self.pool is not None:
            self.pool.close()
            logger.info("Database connection pool closed")
