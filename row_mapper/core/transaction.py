"""Transaction management.

Provides a context manager for running several store writes atomically.
Auto-commits on success, auto-rolls-back on exception. Nested managers
map onto savepoints of the store they wrap.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from row_mapper.core.exceptions import TransactionStateError

if TYPE_CHECKING:
    from row_mapper.store.protocol import RecordStore

logger = logging.getLogger(__name__)


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionManager:
    """Synchronous transaction context manager over a record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._state = _TxState.IDLE
        self._level: int | None = None

    @property
    def active(self) -> bool:
        return self._state == _TxState.ACTIVE

    def __enter__(self) -> TransactionManager:
        if self._state != _TxState.IDLE:
            raise TransactionStateError(self._state.value, "begin")
        self._store.begin()
        self._level = self._store.transaction_level
        self._state = _TxState.ACTIVE
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._state != _TxState.ACTIVE:
            return
        if exc_type is not None:
            logger.warning("Rolling back transaction (level %s): %s", self._level, exc_val)
            self._store.rollback()
            self._state = _TxState.ROLLED_BACK
        else:
            self._store.commit()
            self._state = _TxState.COMMITTED

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "commit")
        self._store.commit()
        self._state = _TxState.COMMITTED

    def rollback(self) -> None:
        """Explicitly rollback the transaction."""
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "rollback")
        self._store.rollback()
        self._state = _TxState.ROLLED_BACK
