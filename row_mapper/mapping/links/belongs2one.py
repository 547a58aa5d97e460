"""Belongs2One link.

Links the owner to a record it depends on: the owner's row holds the
foreign key, so the linked record is written before the owner.
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


class Belongs2One(MapperLink):
    """Link over a belongs-to relation of the owner's model.

    Args:
        mapper_class: Mapper class wrapping the linked record.
        relation: Name of the belongs-to relation on the owner's model.
        mapper_params: Extra construction parameters of the linked mapper.
        process_deletion: Delete the linked record after the owner is deleted.
    """

    link_type = LinkType.BELONGS2ONE

    def __init__(
        self,
        mapper_class: Callable[..., AbstractMapper],
        relation: str,
        mapper_params: dict[str, Any] | None = None,
        process_deletion: bool = False,
    ) -> None:
        super().__init__(mapper_class, mapper_params)
        self.relation = relation
        self.process_deletion = process_deletion
        self._value: AbstractMapper | None = None

    def _load(self) -> AbstractMapper:
        if self._value is None:
            record = self.owner.record
            relation = self._owner_relation(self.relation, RelationKind.BELONGS_TO)
            target = None
            if record.get(relation.foreign_key) is not None:
                related = self.store.related(record, self.relation)
                target = related[0] if related else None
            self._value = self._make_mapper(target)
        return self._value

    def get_value(self, subpath: str | None = None) -> Any:
        mapper = self._load()
        return mapper if subpath is None else mapper.get(subpath)

    def set_value(self, value: Any, subpath: str | None = None) -> None:
        mapper = self._load()
        if subpath is not None:
            mapper.set(subpath, value)
        elif isinstance(value, Mapping):
            mapper.set_many(value)
        elif value is not None:
            raise TypeError(
                f"The {self.link_type.value} link '{self.relation}' expects a mapping, "
                f"got {type(value).__name__}"
            )

    def reset(self) -> None:
        self._value = None

    def _save_phase(self, phase: Phase) -> bool:
        if phase is not Phase.BEFORE_OWNER_PERSIST or self._value is None:
            return True
        if not self._value.save(with_transaction=False):
            return False
        self.store.associate(self.owner.record, self.relation, self._value.record)
        logger.debug("Associated '%s' with key %r", self.relation, self._value.record.key)
        return True

    def _delete_phase(self, phase: Phase) -> bool:
        if not self.process_deletion:
            return True
        if phase is Phase.BEFORE_OWNER_PERSIST:
            # the foreign key disappears with the owner row
            self._load()
            return True
        result = self._load().delete(with_transaction=False)
        if result:
            self.store.on_commit(self.reset)
        return result
