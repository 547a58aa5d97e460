"""Many2Many link.

Exposes the keys of the records associated through a join table as a
plain list; linked records are never wrapped in mappers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from row_mapper.core.enums import LinkType, Phase, RelationKind
from row_mapper.mapping.links.base import AbstractLink
from row_mapper.store.record import Record
from row_mapper.store.schema import BelongsToMany

logger = logging.getLogger(__name__)


def _index(subpath: str) -> int:
    try:
        return int(subpath)
    except ValueError:
        raise KeyError(f"Many2Many values are addressed by index, got {subpath!r}") from None


def _as_keys(value: Any) -> Iterable[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return [value]
    return value


class Many2Many(AbstractLink):
    """Link over a belongs-to-many relation, valued as a list of keys.

    Args:
        relation: Belongs-to-many relation on the owner's model.
        position_attribute: Join table column renumbered 1..N in list
            order on save.
        process_deletion: Remove the join rows before the owner is deleted.
    """

    link_type = LinkType.MANY2MANY

    def __init__(
        self,
        relation: str,
        position_attribute: str | None = None,
        process_deletion: bool = False,
    ) -> None:
        super().__init__()
        self.relation = relation
        self.position_attribute = position_attribute
        self.process_deletion = process_deletion
        self._keys: list[Any] | None = None
        self._records: list[Record] | None = None

    def _relation(self) -> BelongsToMany:
        return self._owner_relation(  # type: ignore[return-value]
            self.relation, RelationKind.BELONGS_TO_MANY
        )

    def _load(self) -> list[Any]:
        if self._keys is None:
            self._relation()
            record = self.owner.record
            self._keys = self.store.related_keys(record, self.relation) if record.exists else []
        return self._keys

    def get_value(self, subpath: str | None = None) -> Any:
        keys = self._load()
        if subpath is None:
            return list(keys)
        index = _index(subpath)
        return keys[index] if -len(keys) <= index < len(keys) else None

    def set_value(self, value: Any, subpath: str | None = None) -> None:
        if subpath is None:
            self._keys = [] if value is None else list(_as_keys(value))
        else:
            keys = list(self._load())
            index = _index(subpath)
            if -len(keys) <= index < len(keys):
                keys[index] = value
            else:
                keys.append(value)
            self._keys = keys
        self._records = None

    def records(self) -> list[Record]:
        """Load the linked records in key order."""
        if self._records is None:
            target = self._relation().target
            self._records = self.store.find_many(target, self._load())
        return self._records

    def reset(self) -> None:
        self._keys = None
        self._records = None

    def _save_phase(self, phase: Phase) -> bool:
        if phase is not Phase.AFTER_OWNER_PERSIST or self._keys is None:
            return True

        relation = self._relation()
        owner_record = self.owner.record
        desired = list(self._keys)
        self.store.sync(owner_record, self.relation, desired)
        if self.position_attribute is not None and not self._save_positions(relation, desired):
            return False
        self.store.on_commit(self.reset)
        return True

    def _save_positions(self, relation: BelongsToMany, desired: list[Any]) -> bool:
        owner_record = self.owner.record
        order = {key: index for index, key in enumerate(desired)}
        rows = sorted(
            self.store.pivot_rows(owner_record, self.relation),
            key=lambda row: order.get(row[relation.related_pivot_key], len(order)),
        )
        for position, row in enumerate(rows, start=1):
            updated = self.store.update_pivot(
                owner_record,
                self.relation,
                row[relation.related_pivot_key],
                {self.position_attribute: position},
            )
            if not updated:
                logger.warning(
                    "Position of key %r in '%s' was not stored",
                    row[relation.related_pivot_key],
                    self.relation,
                )
                return False
        return True

    def _delete_phase(self, phase: Phase) -> bool:
        # join rows reference the owner, so they go first
        if phase is not Phase.BEFORE_OWNER_PERSIST or not self.process_deletion:
            return True
        self._relation()
        owner_record = self.owner.record
        if owner_record.exists:
            self.store.sync(owner_record, self.relation, [])
        self.store.on_commit(self.reset)
        return True
