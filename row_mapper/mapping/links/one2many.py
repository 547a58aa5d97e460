"""One2Many link.

Lets a mapper add, edit and remove the records of a to-many relation
jointly with its own record. The related records either hold a foreign
key to the owner (has-many relation) or are linked through a join table
(belongs-to-many relation).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from row_mapper.core.enums import LinkType, Phase, RelationKind
from row_mapper.mapping.links.base import MapperLink, resolve_key, split_path

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import AbstractMapper
    from row_mapper.store.schema import BelongsToMany, HasMany

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingKey:
    """Key of an entry given without identity (it gets one once saved)."""

    index: int

    def __str__(self) -> str:
        return f"new:{self.index}"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


class One2Many(MapperLink):
    """Link over a to-many relation, valued as ``{key: mapper}``.

    Args:
        mapper_class: Mapper class wrapping each linked record.
        relation: Has-many or belongs-to-many relation on the owner's model.
        mapper_params: Extra construction parameters of the linked mappers.
        process_deletion: Delete records removed from the value (and every
            linked record when the owner is deleted). Otherwise removed
            records are only unlinked.
        position_attribute: Column renumbered 1..N in value order on save:
            a column of the linked records for has-many relations, a join
            table column for belongs-to-many relations.
    """

    link_type = LinkType.ONE2MANY

    def __init__(
        self,
        mapper_class: Callable[..., AbstractMapper],
        relation: str,
        mapper_params: dict[str, Any] | None = None,
        process_deletion: bool = True,
        position_attribute: str | None = None,
    ) -> None:
        super().__init__(mapper_class, mapper_params)
        self.relation = relation
        self.process_deletion = process_deletion
        self.position_attribute = position_attribute
        self._values: dict[Any, AbstractMapper] | None = None
        self._removed: dict[Any, AbstractMapper] = {}

    def _relation(self) -> HasMany | BelongsToMany:
        return self._owner_relation(  # type: ignore[return-value]
            self.relation, RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY
        )

    def _load(self) -> dict[Any, AbstractMapper]:
        if self._values is None:
            self._relation()
            record = self.owner.record
            related = self.store.related(record, self.relation) if record.exists else []
            self._values = {target.key: self._make_mapper(target) for target in related}
        return self._values

    @property
    def removed(self) -> dict[Any, AbstractMapper]:
        """Persisted mappers dropped from the value and not yet deleted."""
        return dict(self._removed)

    def get_value(self, subpath: str | None = None) -> Any:
        values = self._load()
        if subpath is None:
            return dict(values)
        head, rest = split_path(subpath)
        mapper = values.get(resolve_key(values, head))
        if mapper is None or rest is None:
            return mapper
        return mapper.get(rest)

    def set_value(self, value: Any, subpath: str | None = None) -> None:
        if subpath is None:
            self._set_all({} if _is_empty(value) else value)
            return

        head, rest = split_path(subpath)
        if rest is not None:
            self._set_key(head, {rest: value})
        elif _is_empty(value):
            self._unset_key(head)
        else:
            self._set_key(head, value)

    def _entries(self, value: Any) -> Iterable[tuple[Any, Any]]:
        if isinstance(value, Mapping):
            return value.items()
        return ((PendingKey(index), entry) for index, entry in enumerate(value))

    def _set_all(self, value: Any) -> None:
        existing = {**self._removed, **self._load()}
        result: dict[Any, AbstractMapper] = {}

        for key, attributes in self._entries(value):
            key = resolve_key(existing, key)
            mapper = existing.pop(key, None)
            if mapper is None:
                mapper = self._make_mapper()
            mapper.set_many(attributes)
            result[key] = mapper

        self._values = result
        # transient mappers have nothing to delete in the store
        self._removed = {key: mapper for key, mapper in existing.items() if mapper.record.exists}

    def _set_key(self, key: Any, attributes: Any) -> None:
        values = self._load()
        key = resolve_key([*values, *self._removed], key)
        if key in values:
            mapper = values[key]
        elif key in self._removed:
            mapper = self._removed.pop(key)
        else:
            mapper = self._make_mapper()
        mapper.set_many(attributes)
        values[key] = mapper

    def _unset_key(self, key: Any) -> None:
        values = self._load()
        key = resolve_key(values, key)
        mapper = values.pop(key, None)
        if mapper is not None and mapper.record.exists:
            self._removed[key] = mapper

    def reset(self) -> None:
        self._values = None
        self._removed = {}

    def _save_phase(self, phase: Phase) -> bool:
        if phase is not Phase.AFTER_OWNER_PERSIST or self._values is None:
            return True

        relation = self._relation()
        if relation.kind is RelationKind.BELONGS_TO_MANY:
            result = self._save_through_join_table()
        else:
            result = self._save_through_foreign_key(relation)  # type: ignore[arg-type]

        if result:
            self.store.on_commit(self.reset)
        return result

    def _save_through_join_table(self) -> bool:
        keys = []
        for mapper in self._load().values():
            if not mapper.save(with_transaction=False):
                return False
            keys.append(mapper.record.key)

        owner_record = self.owner.record
        self.store.sync(owner_record, self.relation, keys)
        if self.position_attribute is not None:
            for position, key in enumerate(keys, start=1):
                self.store.update_pivot(
                    owner_record, self.relation, key, {self.position_attribute: position}
                )

        if self.process_deletion:
            for mapper in self._removed.values():
                if not mapper.delete(with_transaction=False):
                    return False
        return True

    def _save_through_foreign_key(self, relation: HasMany) -> bool:
        for mapper in self._removed.values():
            if self.process_deletion:
                saved = mapper.delete(with_transaction=False)
            else:
                mapper.record.set(relation.foreign_key, None)
                saved = mapper.save(with_transaction=False)
            if not saved:
                return False

        owner_key = self.owner.record.key
        for position, mapper in enumerate(self._load().values(), start=1):
            mapper.record.set(relation.foreign_key, owner_key)
            if self.position_attribute is not None:
                mapper.record.set(self.position_attribute, position)
            if not mapper.save(with_transaction=False):
                return False
        return True

    def _delete_phase(self, phase: Phase) -> bool:
        # linked rows reference the owner, so they go first
        if phase is not Phase.BEFORE_OWNER_PERSIST or not self.process_deletion:
            return True

        relation = self._relation()
        owner_record = self.owner.record
        if relation.kind is RelationKind.BELONGS_TO_MANY and owner_record.exists:
            self.store.sync(owner_record, self.relation, [])

        mappers = {**self._removed, **self._load()}
        for mapper in mappers.values():
            if not mapper.delete(with_transaction=False):
                return False
        logger.debug("Deleted %d records linked through '%s'", len(mappers), self.relation)
        self.store.on_commit(self.reset)
        return True
