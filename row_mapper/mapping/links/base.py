"""Link contract.

A link owns the lazily loaded state of one relation of its owner mapper
and applies it to the store in two phases around the owner's own write.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, ClassVar

from row_mapper.core.enums import LinkType, Phase, RelationKind
from row_mapper.core.exceptions import MissingOwnerError, RelationShapeMismatchError
from row_mapper.store.record import Record
from row_mapper.store.schema import RelationSchema

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import AbstractMapper
    from row_mapper.mapping.session import Session
    from row_mapper.store.protocol import RecordStore

logger = logging.getLogger(__name__)


def split_path(path: str) -> tuple[str, str | None]:
    """Split ``"head.rest"`` into its first segment and the remainder."""
    head, sep, rest = path.partition(".")
    return head, (rest if sep else None)


def resolve_key(keys: Iterable[Any], key: Any) -> Any:
    """Match a path segment against existing keys (``"15"`` finds ``15``)."""
    keys = list(keys)
    if key in keys:
        return key
    if isinstance(key, str):
        for candidate in keys:
            if str(candidate) == key:
                return candidate
    return key


class AbstractLink(ABC):
    """Base class of the four link variants."""

    link_type: ClassVar[LinkType]

    def __init__(self) -> None:
        self._owner: AbstractMapper | None = None
        self._session: Session | None = None

    def bind(self, owner: AbstractMapper, session: Session | None = None) -> AbstractLink:
        """Attach the link to the mapper that owns it."""
        self._owner = owner
        self._session = session
        return self

    @property
    def owner(self) -> AbstractMapper:
        if self._owner is None:
            raise MissingOwnerError(self.link_type.value)
        return self._owner

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else self.owner.session

    @property
    def store(self) -> RecordStore:
        return self.session.store

    @abstractmethod
    def get_value(self, subpath: str | None = None) -> Any:
        """Return the linked value, or the part of it addressed by ``subpath``."""

    @abstractmethod
    def set_value(self, value: Any, subpath: str | None = None) -> None:
        """Change the desired linked value in memory."""

    @abstractmethod
    def reset(self) -> None:
        """Forget every lazily loaded value."""

    @abstractmethod
    def _save_phase(self, phase: Phase) -> bool: ...

    @abstractmethod
    def _delete_phase(self, phase: Phase) -> bool: ...

    def save(self, with_transaction: bool = True, phase: Phase | None = None) -> bool:
        """Write the linked state.

        ``phase`` is given by the owner while it saves itself; None means
        the link is saved on its own and runs both phases.
        """

        def run() -> bool:
            if phase is None:
                return self._save_phase(Phase.BEFORE_OWNER_PERSIST) and self._save_phase(
                    Phase.AFTER_OWNER_PERSIST
                )
            return self._save_phase(phase)

        if not with_transaction:
            return run()
        return self.owner.with_transaction(
            run, f"Cannot save {self.link_type.value} link of '{self.owner.model_name()}'"
        )

    def delete(self, with_transaction: bool = True, phase: Phase | None = None) -> bool:
        """Delete the linked state (only where cascading deletion is configured)."""

        def run() -> bool:
            if phase is None:
                return self._delete_phase(Phase.BEFORE_OWNER_PERSIST) and self._delete_phase(
                    Phase.AFTER_OWNER_PERSIST
                )
            return self._delete_phase(phase)

        if not with_transaction:
            return run()
        return self.owner.with_transaction(
            run, f"Cannot delete {self.link_type.value} link of '{self.owner.model_name()}'"
        )

    def _owner_relation(self, name: str, *kinds: RelationKind) -> RelationSchema:
        """Resolve a relation of the owner's model and check its kind."""
        record = self.owner.record
        relation = self.store.relation(record, name)
        if relation.kind not in kinds:
            raise RelationShapeMismatchError(
                record.model.name, name, self.link_type.value, [kind.value for kind in kinds]
            )
        return relation


class MapperLink(AbstractLink):
    """Link whose linked records are wrapped in mappers."""

    def __init__(
        self,
        mapper_class: Callable[..., AbstractMapper],
        mapper_params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.mapper_class = mapper_class
        self.mapper_params = dict(mapper_params or {})

    def _make_mapper(self, record: Record | None = None) -> AbstractMapper:
        return self.session.make_mapper(self.mapper_class, record, **self.mapper_params)
