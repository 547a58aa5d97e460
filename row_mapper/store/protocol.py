"""Record store protocol.

The mapping layer only talks to storage through this interface. Every
relation-level operation addresses a relation by its name on the owner
record's model.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from row_mapper.core.transaction import TransactionManager
from row_mapper.store.record import Record
from row_mapper.store.schema import ModelSchema, RelationSchema


@runtime_checkable
class RecordStore(Protocol):
    """Persistence of single records, their relations, and transactions."""

    def model(self, name: str) -> ModelSchema:
        """Return the schema of a registered model."""
        ...

    def new(self, model_name: str, attributes: dict[str, Any] | None = None) -> Record:
        """Create a transient record of a model."""
        ...

    def find(self, model_name: str, key: Any) -> Record | None:
        """Load one record by primary key."""
        ...

    def find_many(self, model_name: str, keys: Iterable[Any]) -> list[Record]:
        """Load records by primary keys, in the order of ``keys``."""
        ...

    def save(self, record: Record) -> bool:
        """Insert a transient record or update the dirty fields of a persisted one."""
        ...

    def delete(self, record: Record) -> bool:
        """Delete a persisted record; a transient record is a no-op success."""
        ...

    def relation(self, record: Record, name: str) -> RelationSchema:
        """Resolve a named relation of the record's model."""
        ...

    def related(self, record: Record, name: str) -> list[Record]:
        """Load the records linked to ``record`` through a relation."""
        ...

    def related_keys(self, record: Record, name: str) -> list[Any]:
        """Load the primary keys of the records linked through a relation."""
        ...

    def associate(self, record: Record, name: str, target: Record | None) -> None:
        """Point a belongs-to foreign key of ``record`` at ``target``."""
        ...

    def sync(self, record: Record, name: str, keys: Iterable[Any]) -> dict[str, list[Any]]:
        """Replace the join-table membership of a relation with exactly ``keys``."""
        ...

    def attach(self, record: Record, name: str, key: Any, **pivot: Any) -> None:
        """Insert one join-table row."""
        ...

    def detach(self, record: Record, name: str, keys: Iterable[Any] | None = None) -> int:
        """Delete join-table rows; all of them when ``keys`` is None."""
        ...

    def pivot_rows(self, record: Record, name: str) -> list[dict[str, Any]]:
        """Load the join-table rows of a relation in relation order."""
        ...

    def update_pivot(self, record: Record, name: str, key: Any, values: dict[str, Any]) -> int:
        """Update the join-table row linking ``record`` to ``key``."""
        ...

    @property
    def transaction_level(self) -> int:
        """Depth of currently open transactions."""
        ...

    def begin(self) -> None:
        """Open a transaction, or a savepoint when one is already open."""
        ...

    def commit(self) -> None:
        """Commit the innermost transaction level."""
        ...

    def rollback(self) -> None:
        """Roll back the innermost transaction level."""
        ...

    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the outermost transaction commits.

        Runs at once outside a transaction; dropped when the level it was
        registered in is rolled back.
        """
        ...

    def transaction(self) -> TransactionManager:
        """Context manager around begin/commit/rollback."""
        ...
