"""Connection configuration and management.

ConnectionConfig is a Pydantic model validated on construction; ``extra``
is passed through to the driver's connect call. ConnectionManager loads
the adapter for the configured backend and hands out pooled connections.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel, Field

from row_mapper.core.enums import DatabaseBackend
from row_mapper.core.exceptions import AdapterError

logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = Field(default=None, repr=False)
    database: str
    pool_size: int = Field(default=5, ge=1)
    pool_timeout: int = Field(default=30, ge=0)
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def backend(self) -> DatabaseBackend:
        try:
            return DatabaseBackend(self.driver.lower())
        except ValueError as e:
            raise AdapterError(f"Unsupported database driver: {self.driver}") from e


# backend -> (module_path, adapter_class)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str]] = {
    DatabaseBackend.SQLITE: ("row_mapper.adapters.sqlite", "SqliteSyncAdapter"),
    DatabaseBackend.POSTGRESQL: ("row_mapper.adapters.postgresql", "PostgresqlSyncAdapter"),
}


def _load_adapter(config: ConnectionConfig) -> Any:
    module_path, cls_name = _ADAPTER_MAP[config.backend]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{config.driver}': {e}") from e


class ConnectionManager:
    """Owns the adapter and its pool for one ConnectionConfig.

    The pool is created lazily on first acquire and can be closed and
    re-created any number of times.
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    def initialize_pool(self) -> Any:
        if self._pool is None:
            self._pool = self._adapter.create_pool(self.config)
            logger.debug(
                "Initialized %s pool of %d connections", self.config.driver, self.config.pool_size
            )
        return self._pool

    def acquire(self) -> Any:
        """Take a connection out of the pool; pair with release()."""
        return self._adapter.acquire_connection(self.initialize_pool())

    def release(self, connection: Any) -> None:
        """Return a connection obtained from acquire()."""
        if self._pool is None:
            logger.warning("Connection released after its pool was closed; closing it")
            self._adapter.close_pool([connection])
            return
        self._adapter.release_connection(connection, self._pool)

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a connection for the duration of a with-block."""
        connection = self.acquire()
        try:
            yield connection
        finally:
            self.release(connection)

    def close_pool(self) -> None:
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._pool = None
            logger.debug("Closed %s pool", self.config.driver)
