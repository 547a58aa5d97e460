"""Mapping session.

Bundles the collaborators every mapper and link needs: the record store,
the lifecycle event dispatcher, and mapper construction.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from row_mapper.core.events import EventDispatcher
from row_mapper.store.record import Record

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import AbstractMapper
    from row_mapper.store.protocol import RecordStore


class Session:
    """Context shared by the mappers of one unit of work."""

    def __init__(self, store: RecordStore, events: EventDispatcher | None = None) -> None:
        self.store = store
        self.events = events if events is not None else EventDispatcher()

    def make_mapper(
        self,
        mapper_class: Callable[..., AbstractMapper],
        record: Record | None = None,
        **params: Any,
    ) -> AbstractMapper:
        """Construct a mapper bound to this session.

        ``params`` are the declarative construction parameters of the mapper
        (``mapper_params`` in link configuration).
        """
        return mapper_class(self, record=record, **params)
