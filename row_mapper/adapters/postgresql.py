"""PostgreSQL adapter using psycopg (v3+)."""

from __future__ import annotations

import logging
from typing import Any

from row_mapper.core.connection import ConnectionConfig
from row_mapper.core.exceptions import ConnectionError, PoolError  # noqa: A004

logger = logging.getLogger(__name__)


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    fields = {
        "host": config.host,
        "port": config.port,
        "user": config.user,
        "password": config.password,
        "dbname": config.database,
    }
    return " ".join(f"{name}={value}" for name, value in fields.items() if value is not None)


class PostgresqlSyncAdapter:
    """PostgreSQL adapter; rows come back as dicts, keys via RETURNING."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    @property
    def begin_statement(self) -> str:
        return "BEGIN"

    def create_pool(self, config: ConnectionConfig) -> list[Any]:
        import psycopg
        import psycopg.rows

        conninfo = _build_conninfo(config)
        pool: list[Any] = []
        for _ in range(config.pool_size):
            try:
                conn = psycopg.connect(
                    conninfo,
                    autocommit=True,
                    row_factory=psycopg.rows.dict_row,
                    connect_timeout=config.pool_timeout,
                    **config.extra,
                )
            except psycopg.OperationalError as e:
                self.close_pool(pool)
                raise ConnectionError(f"Cannot connect to PostgreSQL: {e}") from e
            pool.append(conn)
        logger.debug("Opened %d PostgreSQL connections to %s", len(pool), config.database)
        return pool

    def acquire_connection(self, pool: list[Any]) -> Any:
        if not pool:
            raise PoolError("No connections available in pool")
        conn = pool.pop()
        if conn.closed:
            raise PoolError("Pooled PostgreSQL connection has been closed")
        return conn

    def release_connection(self, connection: Any, pool: list[Any]) -> None:
        pool.append(connection)

    def close_pool(self, pool: list[Any]) -> None:
        while pool:
            pool.pop().close()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return connection.execute(sql, params)

    def insert_statement(self, table: str, columns: str, placeholders: str, key: str) -> str:
        if not columns:
            return f"INSERT INTO {table} DEFAULT VALUES RETURNING {key}"
        return f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING {key}"

    def inserted_key(self, cursor: Any, key: str) -> Any:
        row = cursor.fetchone()
        if row is None:
            return None
        return row[key]
