"""Model schema data classes.

Frozen dataclasses describing persisted models and the relations declared
between them. Produced by the builder DSL and consumed by record stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from row_mapper.core.enums import RelationKind
from row_mapper.core.exceptions import RelationNotDefinedError, UnknownModelError


@dataclass(frozen=True)
class BelongsTo:
    """To-one relation; the owner row holds the foreign key."""

    target: str
    foreign_key: str

    @property
    def kind(self) -> RelationKind:
        return RelationKind.BELONGS_TO


@dataclass(frozen=True)
class HasMany:
    """To-many relation; target rows hold the foreign key to the owner."""

    target: str
    foreign_key: str
    order_by: str | None = None

    @property
    def kind(self) -> RelationKind:
        return RelationKind.HAS_MANY


@dataclass(frozen=True)
class BelongsToMany:
    """To-many relation through a join table."""

    target: str
    pivot_table: str
    foreign_pivot_key: str  # pivot column referencing the owner
    related_pivot_key: str  # pivot column referencing the target
    order_by: str | None = None  # pivot column

    @property
    def kind(self) -> RelationKind:
        return RelationKind.BELONGS_TO_MANY


RelationSchema = BelongsTo | HasMany | BelongsToMany


@dataclass(frozen=True)
class ModelSchema:
    """Compiled description of one persisted model."""

    name: str
    table: str
    primary_key: str = "id"
    columns: tuple[str, ...] = ()
    relations: dict[str, RelationSchema] = field(default_factory=dict)

    def has_relation(self, name: str) -> bool:
        return name in self.relations

    def relation(self, name: str) -> RelationSchema:
        """Return the relation declared under ``name``."""
        try:
            return self.relations[name]
        except KeyError:
            raise RelationNotDefinedError(self.name, name) from None


class Schema:
    """Registry of model schemas addressed by model name."""

    def __init__(self, *models: ModelSchema) -> None:
        self._models: dict[str, ModelSchema] = {}
        for model in models:
            self.register(model)

    def register(self, model: ModelSchema) -> None:
        self._models[model.name] = model

    def model(self, name: str) -> ModelSchema:
        try:
            return self._models[name]
        except KeyError:
            raise UnknownModelError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._models.values())
