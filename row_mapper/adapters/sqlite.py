"""SQLite adapter (sqlite3 stdlib)."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from row_mapper.core.connection import ConnectionConfig
from row_mapper.core.exceptions import ConnectionError, PoolError  # noqa: A004

logger = logging.getLogger(__name__)


class SqliteSyncAdapter:
    """SQLite adapter; the pool is a plain list of open connections.

    Every connection enforces foreign keys. Inserted keys come from
    ``cursor.lastrowid`` so no RETURNING support is required.
    """

    @property
    def paramstyle(self) -> str:
        return "named"

    @property
    def begin_statement(self) -> str:
        # Take the write lock up front instead of on the first write
        return "BEGIN IMMEDIATE"

    def create_pool(self, config: ConnectionConfig) -> list[sqlite3.Connection]:
        if config.database == ":memory:" and config.pool_size > 1:
            logger.warning(
                "Each of the %d pooled ':memory:' connections opens a separate database",
                config.pool_size,
            )
        pool: list[sqlite3.Connection] = []
        for _ in range(config.pool_size):
            try:
                conn = sqlite3.connect(config.database, isolation_level=None, **config.extra)
            except sqlite3.Error as e:
                message = f"Cannot open SQLite database {config.database!r}: {e}"
                raise ConnectionError(message) from e
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[sqlite3.Connection]) -> sqlite3.Connection:
        if not pool:
            raise PoolError("No connections available in pool")
        return pool.pop()

    def release_connection(
        self, connection: sqlite3.Connection, pool: list[sqlite3.Connection]
    ) -> None:
        if connection.in_transaction:
            logger.warning("Connection released inside a transaction; rolling back")
            connection.rollback()
        pool.append(connection)

    def close_pool(self, pool: list[sqlite3.Connection]) -> None:
        while pool:
            pool.pop().close()

    def execute(
        self,
        connection: sqlite3.Connection,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> sqlite3.Cursor:
        return connection.execute(sql, params or {})

    def insert_statement(self, table: str, columns: str, placeholders: str, key: str) -> str:
        if not columns:
            return f"INSERT INTO {table} DEFAULT VALUES"
        return f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"

    def inserted_key(self, cursor: sqlite3.Cursor, key: str) -> Any:
        return cursor.lastrowid
