"""Database adapter protocol.

An adapter owns everything the record store cannot express in portable
SQL: opening connections, the driver's placeholder style, how a
transaction is opened, and how the key of an inserted row is read back.

Connections handed out by an adapter run in autocommit mode; the store
issues transaction boundaries itself.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from row_mapper.core.connection import ConnectionConfig


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style: 'named' (:name) or 'pyformat' (%(name)s)."""
        ...

    @property
    def begin_statement(self) -> str:
        """Statement opening an outermost transaction."""
        ...

    def create_pool(self, config: ConnectionConfig) -> Any: ...

    def acquire_connection(self, pool: Any) -> Any: ...

    def release_connection(self, connection: Any, pool: Any) -> None: ...

    def close_pool(self, pool: Any) -> None: ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...

    def insert_statement(self, table: str, columns: str, placeholders: str, key: str) -> str:
        """INSERT statement for quoted ``table``/``columns``; empty columns mean defaults."""
        ...

    def inserted_key(self, cursor: Any, key: str) -> Any:
        """Primary key of the row inserted by ``cursor``, or None."""
        ...
