"""Inline-configured mappers and scenario support."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from row_mapper.mapping.mapper import AbstractMapper, Transform
from row_mapper.store.record import Record

if TYPE_CHECKING:
    from row_mapper.mapping.session import Session


class SimpleMapper(AbstractMapper):
    """Mapper whose configuration is given at construction.

    Mostly used as the linked mapper of ``*_simple`` link configurations::

        SimpleMapper(session, "address", ["city", "street"])
    """

    def __init__(
        self,
        session: Session,
        model_name: str,
        attributes: Mapping[str, str | None] | Iterable[str],
        links: Mapping[str, Any] | None = None,
        accessors: Mapping[str, Transform] | None = None,
        mutators: Mapping[str, Transform] | None = None,
        record: Record | None = None,
    ) -> None:
        super().__init__(session, record=record)
        self._model_name = model_name
        self._attributes_config = attributes
        self._links_config = dict(links or {})
        self._accessors_config = dict(accessors or {})
        self._mutators_config = dict(mutators or {})

    def model_name(self) -> str:
        return self._model_name

    def attributes_map(self) -> Mapping[str, str | None] | Iterable[str]:
        return self._attributes_config

    def links_config(self) -> Mapping[str, Any]:
        return self._links_config

    def accessors(self) -> Mapping[str, Transform]:
        return self._accessors_config

    def mutators(self) -> Mapping[str, Transform]:
        return self._mutators_config


class ScenarioMixin:
    """Lets a mapper vary its configuration by scenario.

    Hooks read ``self.scenario``; switching the scenario drops everything
    prepared for the previous one::

        class UserMapper(ScenarioMixin, AbstractMapper):
            def attributes_map(self):
                if self.scenario == "admin":
                    return ["name", "role"]
                return ["name"]
    """

    def __init__(
        self,
        session: Session,
        record: Record | None = None,
        scenario: str | None = None,
        **kwargs: Any,
    ) -> None:
        self._scenario = scenario
        super().__init__(session, record=record, **kwargs)  # type: ignore[call-arg]

    @property
    def scenario(self) -> str | None:
        return self._scenario

    @scenario.setter
    def scenario(self, scenario: str | None) -> None:
        self._scenario = scenario
        self.refresh_prepared_data()  # type: ignore[attr-defined]
