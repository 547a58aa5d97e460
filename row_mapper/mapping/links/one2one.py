"""One2One link.

Links the owner to at most one record that depends on it. Two layouts are
supported: the linked record holds a foreign key to the owner (has-many /
has-one relation), or a join table links both (belongs-to-many relation).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from row_mapper.core.enums import LinkType, Phase, RelationKind
from row_mapper.mapping.links.base import MapperLink

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import AbstractMapper

logger = logging.getLogger(__name__)

_UNLOADED: Any = object()

_ATTACHABLE = (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY)


class One2One(MapperLink):
    """Link over a has-one or join-table relation of the owner's model.

    Args:
        mapper_class: Mapper class wrapping the linked record.
        retrieve_relation: Relation used to load the linked record.
        attach_relation: Relation used to attach/detach it. Defaults to
            ``retrieve_relation``.
        mapper_params: Extra construction parameters of the linked mapper.
        process_deletion: Delete the linked record together with the owner.
        delete_on_unset: Delete the linked record when the value is set to
            None; otherwise it is only detached.
    """

    link_type = LinkType.ONE2ONE

    def __init__(
        self,
        mapper_class: Callable[..., AbstractMapper],
        retrieve_relation: str,
        attach_relation: str | None = None,
        mapper_params: dict[str, Any] | None = None,
        process_deletion: bool = False,
        delete_on_unset: bool = True,
    ) -> None:
        super().__init__(mapper_class, mapper_params)
        self.retrieve_relation = retrieve_relation
        self.attach_relation = attach_relation or retrieve_relation
        self.process_deletion = process_deletion
        self.delete_on_unset = delete_on_unset
        self._previous: AbstractMapper | None = _UNLOADED
        self._value: AbstractMapper | None = _UNLOADED

    def _previous_mapper(self) -> AbstractMapper | None:
        """The linked mapper as stored before any change."""
        if self._previous is _UNLOADED:
            self._owner_relation(self.retrieve_relation, *_ATTACHABLE)
            record = self.owner.record
            related = self.store.related(record, self.retrieve_relation) if record.exists else []
            self._previous = self._make_mapper(related[0]) if related else None
        return self._previous

    def get_value(self, subpath: str | None = None) -> Any:
        if self._value is _UNLOADED:
            self._value = self._previous_mapper()
        if self._value is None or subpath is None:
            return self._value
        return self._value.get(subpath)

    def set_value(self, value: Any, subpath: str | None = None) -> None:
        if subpath is None and (value is None or value == ""):
            self._value = None
            return

        mapper = self.get_value()
        if mapper is None:
            mapper = self._previous_mapper()
        if mapper is None:
            mapper = self._make_mapper()
        self._value = mapper

        if subpath is not None:
            mapper.set(subpath, value)
        elif isinstance(value, Mapping):
            mapper.set_many(value)
        else:
            raise TypeError(
                f"The {self.link_type.value} link '{self.retrieve_relation}' expects a mapping, "
                f"got {type(value).__name__}"
            )

    def reset(self) -> None:
        self._previous = _UNLOADED
        self._value = _UNLOADED

    def _save_phase(self, phase: Phase) -> bool:
        if phase is not Phase.AFTER_OWNER_PERSIST or self._value is _UNLOADED:
            return True
        if self._value is None:
            previous = self._previous_mapper()
            result = self._detach(previous) if previous is not None else True
        else:
            result = self._attach(self._value)
        if result:
            self.store.on_commit(self.reset)
        return result

    def _attach(self, mapper: AbstractMapper) -> bool:
        relation = self._owner_relation(self.attach_relation, *_ATTACHABLE)
        owner_record = self.owner.record
        if relation.kind is RelationKind.HAS_MANY:
            mapper.record.set(relation.foreign_key, owner_record.key)
            return mapper.save(with_transaction=False)

        is_new = not mapper.record.exists
        if not mapper.save(with_transaction=False):
            return False
        if is_new:
            self.store.attach(owner_record, self.attach_relation, mapper.record.key)
        return True

    def _detach(self, mapper: AbstractMapper, delete: bool | None = None) -> bool:
        delete = self.delete_on_unset if delete is None else delete
        relation = self._owner_relation(self.attach_relation, *_ATTACHABLE)
        if relation.kind is RelationKind.BELONGS_TO_MANY:
            detached = self.store.detach(
                self.owner.record, self.attach_relation, [mapper.record.key]
            )
            if not detached:
                logger.warning(
                    "No join row linked '%s' to key %r", self.attach_relation, mapper.record.key
                )
            return mapper.delete(with_transaction=False) if delete else True

        if delete:
            return mapper.delete(with_transaction=False)
        mapper.record.set(relation.foreign_key, None)
        return mapper.save(with_transaction=False)

    def _delete_phase(self, phase: Phase) -> bool:
        # the linked row references the owner, so it goes first
        if phase is not Phase.BEFORE_OWNER_PERSIST or not self.process_deletion:
            return True
        previous = self._previous_mapper()
        result = self._detach(previous, delete=True) if previous is not None else True
        if result:
            self.store.on_commit(self.reset)
        return result
