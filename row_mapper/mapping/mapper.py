"""Abstract mapper.

A mapper exposes a flat, declarative attribute surface over one record and
the records linked to it, and persists changes to all of them in one
transaction, in foreign-key dependency order.

Subclasses override two hooks:

- ``model_name()``: the model of the mapper's own record.
- ``attributes_map()``: public attribute name -> real path. A real path
  is a record field, a link name, or ``"link.subpath"``.

Optional hooks are ``links_config()``, ``accessors()`` and ``mutators()``.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic_core import to_json

from row_mapper.core.enums import MapperEvent, Phase, RelationKind
from row_mapper.core.exceptions import RowMapperError, TransactionFailure, UnknownAttributeError
from row_mapper.mapping.links.base import AbstractLink, split_path
from row_mapper.mapping.links.factory import LinkFactory
from row_mapper.store.record import Record

if TYPE_CHECKING:
    from row_mapper.mapping.session import Session
    from row_mapper.store.protocol import RecordStore

logger = logging.getLogger(__name__)

# (value, attribute, mapper, real path) -> value
Transform = Callable[[Any, str, "AbstractMapper", str], Any]


class AbstractMapper(ABC):
    """Base class of mappers."""

    def __init__(self, session: Session, record: Record | None = None) -> None:
        self.session = session
        self._record = record
        self._map: dict[str, str] | None = None
        self._links: dict[str, Any] | None = None
        self._accessors: dict[str, Transform] | None = None
        self._mutators: dict[str, Transform] | None = None

    # --- Hooks ---

    @abstractmethod
    def model_name(self) -> str:
        """Name of the model of the mapper's own record."""

    @abstractmethod
    def attributes_map(self) -> Mapping[str, str | None] | Iterable[str]:
        """Public attribute name -> real path.

        Bare names (or a None path) map an attribute onto the record field
        or link of the same name.
        """

    def links_config(self) -> Mapping[str, Any]:
        """Link name -> link configuration (see ``row_mapper.mapping.links.config``)."""
        return {}

    def accessors(self) -> Mapping[str, Transform]:
        """Attribute name -> transform applied to the value on read."""
        return {}

    def mutators(self) -> Mapping[str, Transform]:
        """Attribute name -> transform applied to the value before write."""
        return {}

    # --- Record ---

    @property
    def store(self) -> RecordStore:
        return self.session.store

    @property
    def record(self) -> Record:
        if self._record is None:
            self._record = self.store.new(self.model_name())
        return self._record

    # --- Attribute access ---

    def get(self, attribute: str) -> Any:
        if self.has_mapped_attribute(attribute):
            return self.fetch_mapped_value(attribute)
        if self.has_link(attribute):
            return self.get_link(attribute).get_value()
        try:
            return self._get_record_attribute(attribute)
        except UnknownAttributeError as e:
            raise UnknownAttributeError(type(self).__name__, attribute) from e

    def set(self, attribute: str, value: Any) -> None:
        if not self.has_mapped_attribute(attribute):
            raise UnknownAttributeError(type(self).__name__, attribute, "it is not writable")
        self.populate_mapped_value(attribute, value)

    def __getitem__(self, attribute: str) -> Any:
        return self.get(attribute)

    def __setitem__(self, attribute: str, value: Any) -> None:
        self.set(attribute, value)

    def __contains__(self, attribute: object) -> bool:
        if not isinstance(attribute, str):
            return False
        try:
            return self.get(attribute) is not None
        except UnknownAttributeError:
            return False

    def __delitem__(self, attribute: str) -> None:
        try:
            self.set(attribute, None)
        except UnknownAttributeError:
            pass

    def fetch_mapped_value(self, attribute: str) -> Any:
        """Read a mapped attribute, applying its accessor."""
        path = self.get_mapped_attribute(attribute)
        head, subpath = split_path(path)
        if subpath is not None:
            result = self.get_link(head).get_value(subpath)
        elif self.has_link(path):
            result = self.get_link(path).get_value()
        else:
            result = self.record.get(path)

        accessor = self.get_accessors().get(attribute)
        if accessor is not None:
            result = accessor(result, attribute, self, path)
        return result

    def populate_mapped_value(self, attribute: str, value: Any) -> None:
        """Write a mapped attribute, applying its mutator."""
        path = self.get_mapped_attribute(attribute)
        mutator = self.get_mutators().get(attribute)
        if mutator is not None:
            value = mutator(value, attribute, self, path)

        head, subpath = split_path(path)
        if subpath is not None:
            self.get_link(head).set_value(value, subpath)
        elif self.has_link(path):
            self.get_link(path).set_value(value)
        else:
            self.record.set(path, value)

    def _get_record_attribute(self, attribute: str) -> Any:
        record = self.record
        if record.has_field(attribute):
            return record.get(attribute)
        if record.model.has_relation(attribute):
            relation = record.model.relation(attribute)
            related = self.store.related(record, attribute) if record.exists else []
            if relation.kind is RelationKind.BELONGS_TO:
                return related[0] if related else None
            return related
        raise UnknownAttributeError(
            record.model.name, attribute, "it is neither a field nor a relation"
        )

    # --- Attribute map ---

    def has_mapped_attribute(self, attribute: str) -> bool:
        return attribute in self.get_map()

    def get_mapped_attribute(self, attribute: str) -> str:
        """Real path of a mapped attribute."""
        try:
            return self.get_map()[attribute]
        except KeyError:
            raise UnknownAttributeError(type(self).__name__, attribute) from None

    def attributes(self) -> list[str]:
        return list(self.get_map())

    def get_all(self) -> dict[str, Any]:
        """Every mapped attribute with its value."""
        return {attribute: self.fetch_mapped_value(attribute) for attribute in self.attributes()}

    def set_many(self, values: Mapping[str, Any] | None, safe_only: bool = True) -> None:
        """Set several attributes.

        Unmapped names are skipped, or written straight to the record when
        ``safe_only`` is False.
        """
        for attribute, value in (values or {}).items():
            if self.has_mapped_attribute(attribute):
                self.populate_mapped_value(attribute, value)
            elif not safe_only:
                self.record.set(attribute, value)

    # --- Links ---

    def has_link(self, name: str) -> bool:
        return name in self._prepare_links()

    def get_link(self, name: str) -> AbstractLink:
        """Return the named link, creating it from its configuration once."""
        links = self._prepare_links()
        if name not in links:
            raise UnknownAttributeError(type(self).__name__, name, "no such link")
        if not isinstance(links[name], AbstractLink) or links[name]._owner is not self:
            links[name] = self.create_link(links[name])
        return links[name]  # type: ignore[no-any-return]

    def get_links(self) -> dict[str, AbstractLink]:
        """Every link of the mapper, created as needed."""
        return {name: self.get_link(name) for name in self._prepare_links()}

    def create_link(self, config: Any) -> AbstractLink:
        return LinkFactory(self, self.session).create(config)

    def _realized_links(self) -> list[AbstractLink]:
        return [
            link
            for link in self._prepare_links().values()
            if isinstance(link, AbstractLink) and link._owner is self
        ]

    # --- Persistence ---

    def save(self, with_transaction: bool = True) -> bool:
        """Save the record and every link that was used.

        Under a transaction a failed save raises ``TransactionFailure``
        after rolling back; otherwise it returns False.
        """
        if not with_transaction:
            return self._save_internal()
        return self.with_transaction(
            self._save_internal,
            f"Cannot save '{type(self).__name__}' mapper's record and/or its links",
        )

    def _save_internal(self) -> bool:
        is_insert = not self.record.exists
        if not self.before_save(is_insert):
            logger.info("Saving of %r was vetoed", self)
            return False

        # links never touched carry no changes
        links = self._realized_links()
        result = (
            self._save_links(links, Phase.BEFORE_OWNER_PERSIST)
            and self.store.save(self.record)
            and self._save_links(links, Phase.AFTER_OWNER_PERSIST)
        )
        if result:
            self.after_save(is_insert)
        return result

    def _save_links(self, links: list[AbstractLink], phase: Phase) -> bool:
        for link in links:
            if not link.save(with_transaction=False, phase=phase):
                logger.debug("%s link of %r failed in %s phase", link.link_type.value, self, phase)
                return False
        return True

    def delete(self, with_transaction: bool = True) -> bool:
        """Delete the record, cascading into links configured to do so."""
        if not with_transaction:
            return self._delete_internal()
        return self.with_transaction(
            self._delete_internal,
            f"Cannot delete '{type(self).__name__}' mapper's record and/or its links",
        )

    def _delete_internal(self) -> bool:
        if not self.before_delete():
            logger.info("Deletion of %r was vetoed", self)
            return False

        links = list(self.get_links().values())
        result = (
            self._delete_links(links, Phase.BEFORE_OWNER_PERSIST)
            and self.store.delete(self.record)
            and self._delete_links(links, Phase.AFTER_OWNER_PERSIST)
        )
        if result:
            self.after_delete()
        return result

    def _delete_links(self, links: list[AbstractLink], phase: Phase) -> bool:
        return all(link.delete(with_transaction=False, phase=phase) for link in links)

    def with_transaction(self, callback: Callable[[], bool], error: str | None = None) -> bool:
        """Run ``callback`` in a transaction of the store.

        A False result or an exception rolls the transaction back. Foreign
        exceptions are raised as ``TransactionFailure``.
        """
        message = error or f"Processing with the store has failed in '{type(self).__name__}' mapper"
        try:
            with self.store.transaction():
                if not callback():
                    raise TransactionFailure(message)
        except RowMapperError:
            raise
        except Exception as e:
            raise TransactionFailure(message) from e
        return True

    # --- Lifecycle events ---

    def fire_event(self, event: MapperEvent, halt: bool = True) -> bool:
        return self.session.events.fire(event, self, halt=halt)

    def before_save(self, is_insert: bool) -> bool:
        return self.fire_event(MapperEvent.SAVING) and self.fire_event(
            MapperEvent.INSERTING if is_insert else MapperEvent.UPDATING
        )

    def after_save(self, is_insert: bool) -> None:
        self.fire_event(MapperEvent.INSERTED if is_insert else MapperEvent.UPDATED, halt=False)
        self.fire_event(MapperEvent.SAVED, halt=False)

    def before_delete(self) -> bool:
        return self.fire_event(MapperEvent.DELETING)

    def after_delete(self) -> None:
        self.fire_event(MapperEvent.DELETED, halt=False)

    # --- Prepared data ---

    def get_map(self) -> dict[str, str]:
        if self._map is None:
            source = self.attributes_map()
            if isinstance(source, Mapping):
                self._map = {name: path or name for name, path in source.items()}
            else:
                self._map = {name: name for name in source}
        return self._map

    def get_accessors(self) -> dict[str, Transform]:
        if self._accessors is None:
            self._accessors = dict(self.accessors())
        return self._accessors

    def get_mutators(self) -> dict[str, Transform]:
        if self._mutators is None:
            self._mutators = dict(self.mutators())
        return self._mutators

    def _prepare_links(self) -> dict[str, Any]:
        if self._links is None:
            self._links = dict(self.links_config())
        return self._links

    def refresh_prepared_data(self) -> None:
        """Forget the attribute map, links, accessors and mutators."""
        self._map = None
        self._links = None
        self._accessors = None
        self._mutators = None

    # --- Copying ---

    def __copy__(self) -> AbstractMapper:
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._record = copy.deepcopy(self._record)
        clone.refresh_prepared_data()
        return clone

    def __deepcopy__(self, memo: dict[int, Any]) -> AbstractMapper:
        # the session is shared, the record is not
        return self.__copy__()

    def copy(self) -> AbstractMapper:
        return self.__copy__()

    # --- Output ---

    def to_dict(self) -> dict[str, Any]:
        """Every mapped attribute, with linked mappers converted as well."""
        return {attribute: _plain(value) for attribute, value in self.get_all().items()}

    def to_json(self, indent: int | None = None) -> str:
        return to_json(self.to_dict(), indent=indent, fallback=str).decode()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.record!r}>"


def _plain(value: Any) -> Any:
    if isinstance(value, AbstractMapper):
        return value.to_dict()
    if isinstance(value, Record):
        return value.attributes
    if isinstance(value, Mapping):
        return {
            key if isinstance(key, (str, int)) else str(key): _plain(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
