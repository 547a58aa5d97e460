"""SQL record store.

Generates statements for single-record CRUD and relation maintenance from
the model schema, binds parameters through the adapter's paramstyle, and
keeps one connection for its lifetime so that transactions span every
statement issued through it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from row_mapper.core.connection import ConnectionConfig, ConnectionManager
from row_mapper.core.exceptions import (
    RelationShapeMismatchError,
    StoreError,
    TransactionStateError,
)
from row_mapper.core.params import (
    assignments,
    bind_values,
    column_list,
    in_clause,
    normalize_params,
    quote_identifier,
)
from row_mapper.core.transaction import TransactionManager
from row_mapper.store.record import Record
from row_mapper.store.schema import (
    BelongsTo,
    BelongsToMany,
    HasMany,
    ModelSchema,
    RelationSchema,
    Schema,
)

logger = logging.getLogger(__name__)

_SAVEPOINT = "row_mapper_sp_{level}"


def _rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to list of dicts.

    Handles both tuple-like rows and dict-like rows from different adapters.
    """
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    rows = cursor.fetchall()
    if not rows:
        return []

    first_row = rows[0]
    if isinstance(first_row, dict):
        return [dict(row) for row in rows]

    return [dict(zip(columns, row, strict=True)) for row in rows]


def _unique(keys: Iterable[Any]) -> list[Any]:
    """Drop duplicate keys, keeping the first occurrence."""
    seen: set[Any] = set()
    result = []
    for key in keys:
        if key not in seen:
            seen.add(key)
            result.append(key)
    return result


@dataclass
class _Frame:
    """Bookkeeping of one open transaction level.

    ``written`` holds the state of a record before each write made in the
    level; restoring them newest first hands the records back unchanged.
    ``callbacks`` wait for the outermost commit.
    """

    written: list[tuple[Record, Any]] = field(default_factory=list)
    callbacks: list[Callable[[], None]] = field(default_factory=list)


class SqlRecordStore:
    """Record store over a ConnectionManager and a Schema."""

    def __init__(self, connection_manager: ConnectionManager, schema: Schema) -> None:
        self._connection_manager = connection_manager
        self._schema = schema
        self._adapter = connection_manager.adapter
        self._paramstyle: str = self._adapter.paramstyle
        self._connection: Any = None
        self._frames: list[_Frame] = []

    @classmethod
    def from_config(cls, config: ConnectionConfig, schema: Schema) -> SqlRecordStore:
        """Create a store from a ConnectionConfig and a Schema."""
        return cls(ConnectionManager(config), schema)

    @property
    def schema(self) -> Schema:
        return self._schema

    # --- Connection ---

    def _get_connection(self) -> Any:
        if self._connection is None:
            self._connection = self._connection_manager.acquire()
        return self._connection

    def close(self) -> None:
        """Release the connection back to the pool."""
        if self._frames:
            raise TransactionStateError("active", "close")
        if self._connection is not None:
            self._connection_manager.release(self._connection)
            self._connection = None

    def __enter__(self) -> SqlRecordStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> Any:
        """Run one statement written with :name parameters; return the cursor."""
        sql = normalize_params(sql, self._paramstyle)
        logger.debug("SQL: %s params=%s", sql, params)
        return self._adapter.execute(self._get_connection(), sql, params)

    def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return _rows_to_dicts(self.execute(sql, params))

    def fetch_one(self, sql: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    # --- Records ---

    def model(self, name: str) -> ModelSchema:
        return self._schema.model(name)

    def new(self, model_name: str, attributes: dict[str, Any] | None = None) -> Record:
        return Record(self.model(model_name), attributes)

    def find(self, model_name: str, key: Any) -> Record | None:
        if key is None:
            return None
        model = self.model(model_name)
        row = self.fetch_one(
            f"SELECT * FROM {quote_identifier(model.table)} "
            f"WHERE {quote_identifier(model.primary_key)} = :k",
            {"k": key},
        )
        return Record(model, row, exists=True) if row is not None else None

    def find_many(self, model_name: str, keys: Iterable[Any]) -> list[Record]:
        keys = _unique(k for k in keys if k is not None)
        if not keys:
            return []
        model = self.model(model_name)
        condition, params = in_clause(model.primary_key, keys)
        rows = self.fetch_all(
            f"SELECT * FROM {quote_identifier(model.table)} WHERE {condition}", params
        )
        by_key = {row[model.primary_key]: Record(model, row, exists=True) for row in rows}
        return [by_key[key] for key in keys if key in by_key]

    def save(self, record: Record) -> bool:
        if record.exists:
            return self._update(record)
        return self._insert(record)

    def _insert(self, record: Record) -> bool:
        model = record.model
        values = {
            name: value
            for name, value in record.attributes.items()
            if not (name == model.primary_key and value is None)
        }
        columns, placeholders = column_list(values)
        sql = self._adapter.insert_statement(
            quote_identifier(model.table),
            columns,
            placeholders,
            quote_identifier(model.primary_key),
        )
        cursor = self.execute(sql, bind_values(values))
        key = values.get(model.primary_key)
        if key is None:
            key = self._adapter.inserted_key(cursor, model.primary_key)
        if key is None:
            logger.warning("Insert of %r returned no key", record)
            return False
        self._remember(record)
        record.set(model.primary_key, key)
        record.exists = True
        record.sync_original()
        logger.debug("Inserted %r", record)
        return True

    def _update(self, record: Record) -> bool:
        dirty = record.dirty()
        if not dirty:
            return True
        model = record.model
        params = bind_values(dirty)
        params["k"] = record.original_key
        cursor = self.execute(
            f"UPDATE {quote_identifier(model.table)} SET {assignments(dirty)} "
            f"WHERE {quote_identifier(model.primary_key)} = :k",
            params,
        )
        if cursor.rowcount == 0:
            logger.warning("Update of %r touched no rows", record)
            return False
        self._remember(record)
        record.sync_original()
        return True

    def delete(self, record: Record) -> bool:
        if not record.exists:
            return True
        model = record.model
        self.execute(
            f"DELETE FROM {quote_identifier(model.table)} "
            f"WHERE {quote_identifier(model.primary_key)} = :k",
            {"k": record.original_key},
        )
        self._remember(record)
        record.exists = False
        logger.debug("Deleted %r", record)
        return True

    # --- Relations ---

    def relation(self, record: Record, name: str) -> RelationSchema:
        return record.model.relation(name)

    def _join_relation(self, record: Record, name: str, operation: str) -> BelongsToMany:
        relation = self.relation(record, name)
        if not isinstance(relation, BelongsToMany):
            raise RelationShapeMismatchError(
                record.model.name, name, operation, ["belongs_to_many"]
            )
        return relation

    def _owner_key(self, record: Record) -> Any:
        if record.key is None:
            raise StoreError(f"{record!r} has no primary key yet")
        return record.key

    def related(self, record: Record, name: str) -> list[Record]:
        relation = self.relation(record, name)
        target = self.model(relation.target)

        if isinstance(relation, BelongsTo):
            found = self.find(target.name, record.get(relation.foreign_key))
            return [found] if found is not None else []

        if not record.exists:
            return []

        if isinstance(relation, HasMany):
            order = quote_identifier(relation.order_by or target.primary_key)
            rows = self.fetch_all(
                f"SELECT * FROM {quote_identifier(target.table)} "
                f"WHERE {quote_identifier(relation.foreign_key)} = :k ORDER BY {order}",
                {"k": record.key},
            )
        else:
            order = (
                f"p.{quote_identifier(relation.order_by)}"
                if relation.order_by
                else f"t.{quote_identifier(target.primary_key)}"
            )
            rows = self.fetch_all(
                f"SELECT t.* FROM {quote_identifier(target.table)} t "
                f"JOIN {quote_identifier(relation.pivot_table)} p "
                f"ON p.{quote_identifier(relation.related_pivot_key)} = "
                f"t.{quote_identifier(target.primary_key)} "
                f"WHERE p.{quote_identifier(relation.foreign_pivot_key)} = :k ORDER BY {order}",
                {"k": record.key},
            )
        return [Record(target, row, exists=True) for row in rows]

    def related_keys(self, record: Record, name: str) -> list[Any]:
        relation = self.relation(record, name)
        if isinstance(relation, BelongsToMany):
            if not record.exists:
                return []
            return [
                row[relation.related_pivot_key] for row in self.pivot_rows(record, name)
            ]
        target = self.model(relation.target)
        return [related.get(target.primary_key) for related in self.related(record, name)]

    def associate(self, record: Record, name: str, target: Record | None) -> None:
        relation = self.relation(record, name)
        if not isinstance(relation, BelongsTo):
            raise RelationShapeMismatchError(record.model.name, name, "associate", ["belongs_to"])
        self._remember(record)
        record.set(relation.foreign_key, target.key if target is not None else None)

    def sync(self, record: Record, name: str, keys: Iterable[Any]) -> dict[str, list[Any]]:
        self._join_relation(record, name, "sync")
        keys = _unique(keys)
        current = self.related_keys(record, name)
        detached = [key for key in current if key not in keys]
        attached = [key for key in keys if key not in current]
        if detached:
            self.detach(record, name, detached)
        for key in attached:
            self.attach(record, name, key)
        logger.debug(
            "Synced %s.%s: attached=%s detached=%s", record.model.name, name, attached, detached
        )
        return {"attached": attached, "detached": detached}

    def attach(self, record: Record, name: str, key: Any, **pivot: Any) -> None:
        relation = self._join_relation(record, name, "attach")
        values = {
            relation.foreign_pivot_key: self._owner_key(record),
            relation.related_pivot_key: key,
            **pivot,
        }
        columns, placeholders = column_list(values)
        self.execute(
            f"INSERT INTO {quote_identifier(relation.pivot_table)} ({columns}) "
            f"VALUES ({placeholders})",
            bind_values(values),
        )

    def detach(self, record: Record, name: str, keys: Iterable[Any] | None = None) -> int:
        relation = self._join_relation(record, name, "detach")
        sql = (
            f"DELETE FROM {quote_identifier(relation.pivot_table)} "
            f"WHERE {quote_identifier(relation.foreign_pivot_key)} = :owner"
        )
        params: dict[str, Any] = {"owner": self._owner_key(record)}
        if keys is not None:
            keys = _unique(keys)
            if not keys:
                return 0
            condition, key_params = in_clause(relation.related_pivot_key, keys)
            sql = f"{sql} AND {condition}"
            params.update(key_params)
        return int(self.execute(sql, params).rowcount)

    def pivot_rows(self, record: Record, name: str) -> list[dict[str, Any]]:
        relation = self._join_relation(record, name, "pivot_rows")
        order = quote_identifier(relation.order_by or relation.related_pivot_key)
        return self.fetch_all(
            f"SELECT * FROM {quote_identifier(relation.pivot_table)} "
            f"WHERE {quote_identifier(relation.foreign_pivot_key)} = :owner ORDER BY {order}",
            {"owner": self._owner_key(record)},
        )

    def update_pivot(self, record: Record, name: str, key: Any, values: dict[str, Any]) -> int:
        relation = self._join_relation(record, name, "update_pivot")
        if not values:
            return 0
        params = bind_values(values)
        params.update(owner=self._owner_key(record), related=key)
        cursor = self.execute(
            f"UPDATE {quote_identifier(relation.pivot_table)} SET {assignments(values)} "
            f"WHERE {quote_identifier(relation.foreign_pivot_key)} = :owner "
            f"AND {quote_identifier(relation.related_pivot_key)} = :related",
            params,
        )
        return int(cursor.rowcount)

    # --- Transactions ---

    @property
    def transaction_level(self) -> int:
        return len(self._frames)

    def _remember(self, record: Record) -> None:
        if self._frames:
            self._frames[-1].written.append((record, record.snapshot()))

    def on_commit(self, callback: Callable[[], None]) -> None:
        if self._frames:
            self._frames[-1].callbacks.append(callback)
        else:
            callback()

    def begin(self) -> None:
        level = len(self._frames)
        if level == 0:
            self.execute(self._adapter.begin_statement)
        else:
            self.execute(f"SAVEPOINT {_SAVEPOINT.format(level=level)}")
        self._frames.append(_Frame())
        logger.debug("Transaction level %d opened", level + 1)

    def commit(self) -> None:
        if not self._frames:
            raise TransactionStateError("idle", "commit")
        level = len(self._frames) - 1
        if level == 0:
            self.execute("COMMIT")
        else:
            self.execute(f"RELEASE SAVEPOINT {_SAVEPOINT.format(level=level)}")
        frame = self._frames.pop()
        logger.debug("Transaction level %d committed", level + 1)

        if self._frames:
            # an enclosing rollback still has to undo this level
            self._frames[-1].written.extend(frame.written)
            self._frames[-1].callbacks.extend(frame.callbacks)
            return
        for callback in frame.callbacks:
            callback()

    def rollback(self) -> None:
        if not self._frames:
            raise TransactionStateError("idle", "rollback")
        level = len(self._frames) - 1
        frame = self._frames.pop()
        try:
            if level == 0:
                self.execute("ROLLBACK")
            else:
                savepoint = _SAVEPOINT.format(level=level)
                self.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                self.execute(f"RELEASE SAVEPOINT {savepoint}")
        finally:
            for record, state in reversed(frame.written):
                record.restore(state)
        logger.debug(
            "Transaction level %d rolled back, %d record writes undone",
            level + 1,
            len(frame.written),
        )

    def transaction(self) -> TransactionManager:
        return TransactionManager(self)
