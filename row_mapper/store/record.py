"""Persisted record with dirty tracking."""

from __future__ import annotations

import copy
from typing import Any

from row_mapper.store.schema import ModelSchema


class Record:
    """One row of a model.

    ``exists`` tells whether the row is present in the store. The original
    snapshot is refreshed by the store after every successful write and is
    used to compute the columns an update has to touch.
    """

    def __init__(
        self,
        model: ModelSchema,
        attributes: dict[str, Any] | None = None,
        *,
        exists: bool = False,
    ) -> None:
        self.model = model
        self._attributes: dict[str, Any] = dict(attributes or {})
        self._original: dict[str, Any] = dict(self._attributes) if exists else {}
        self.exists = exists

    @property
    def key(self) -> Any:
        return self._attributes.get(self.model.primary_key)

    @property
    def original_key(self) -> Any:
        return self._original.get(self.model.primary_key, self.key)

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def has_field(self, name: str) -> bool:
        """Whether ``name`` is a declared column or a populated attribute."""
        return (
            name == self.model.primary_key
            or name in self.model.columns
            or name in self._attributes
        )

    def get(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._attributes[name] = value

    def dirty(self) -> dict[str, Any]:
        """Attributes changed since the last sync with the store."""
        return {
            name: value
            for name, value in self._attributes.items()
            if name not in self._original or self._original[name] != value
        }

    def is_dirty(self) -> bool:
        return bool(self.dirty())

    def sync_original(self) -> None:
        self._original = dict(self._attributes)

    def snapshot(self) -> tuple[dict[str, Any], dict[str, Any], bool]:
        """State a rolled back write has to return the record to."""
        return dict(self._attributes), dict(self._original), self.exists

    def restore(self, state: tuple[dict[str, Any], dict[str, Any], bool]) -> None:
        attributes, original, exists = state
        self._attributes = dict(attributes)
        self._original = dict(original)
        self.exists = exists

    def __deepcopy__(self, memo: dict[int, Any]) -> Record:
        clone = Record.__new__(Record)
        clone.model = self.model
        clone._attributes = copy.deepcopy(self._attributes, memo)
        clone._original = copy.deepcopy(self._original, memo)
        clone.exists = self.exists
        return clone

    def __repr__(self) -> str:
        state = "persisted" if self.exists else "new"
        return f"<Record {self.model.name} key={self.key!r} {state}>"
