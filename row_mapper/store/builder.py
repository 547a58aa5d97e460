"""Model schema DSL builder.

Provides a fluent builder for declaring models and their relations.
"""

from __future__ import annotations

from row_mapper.core.exceptions import SchemaCompilationError
from row_mapper.store.schema import (
    BelongsTo,
    BelongsToMany,
    HasMany,
    ModelSchema,
    RelationSchema,
)


def model(name: str, table: str | None = None) -> ModelBuilder:
    """Entry point for the schema DSL.

    Args:
        name: The model name relations and mappers refer to.
        table: Table name. Defaults to the model name.

    Returns:
        A builder for chaining declarations.
    """
    return ModelBuilder(name, table or name)


class ModelBuilder:
    """Fluent builder for model definitions."""

    def __init__(self, name: str, table: str) -> None:
        self._name = name
        self._table = table
        self._key_field: str | None = "id"
        self._columns: list[str] = []
        self._relations: list[tuple[str, RelationSchema]] = []

    def key(self, field_name: str) -> ModelBuilder:
        """Set the primary key column."""
        self._key_field = field_name
        return self

    def columns(self, *names: str) -> ModelBuilder:
        """Declare the data columns of the table."""
        self._columns.extend(names)
        return self

    def belongs_to(self, name: str, target: str, foreign_key: str | None = None) -> ModelBuilder:
        """Declare a to-one relation held by a foreign key on this model."""
        self._relations.append((name, BelongsTo(target, foreign_key or f"{name}_id")))
        return self

    def has_many(
        self,
        name: str,
        target: str,
        foreign_key: str | None = None,
        order_by: str | None = None,
    ) -> ModelBuilder:
        """Declare a to-many relation held by a foreign key on the target."""
        self._relations.append(
            (name, HasMany(target, foreign_key or f"{self._name}_id", order_by))
        )
        return self

    def has_one(self, name: str, target: str, foreign_key: str | None = None) -> ModelBuilder:
        """Declare a has-one relation (a has-many read as at most one row)."""
        return self.has_many(name, target, foreign_key)

    def belongs_to_many(
        self,
        name: str,
        target: str,
        pivot: str,
        foreign_pivot_key: str | None = None,
        related_pivot_key: str | None = None,
        order_by: str | None = None,
    ) -> ModelBuilder:
        """Declare a to-many relation through a join table."""
        self._relations.append(
            (
                name,
                BelongsToMany(
                    target,
                    pivot,
                    foreign_pivot_key or f"{self._name}_id",
                    related_pivot_key or f"{target}_id",
                    order_by,
                ),
            )
        )
        return self

    def build(self) -> ModelSchema:
        """Compile and validate the declaration into a ModelSchema."""
        if not self._key_field:
            raise SchemaCompilationError(
                f"Model '{self._name}' must have a key field set via .key()"
            )

        columns = [c for c in self._columns if c != self._key_field]
        if len(set(columns)) != len(columns):
            raise SchemaCompilationError(f"Duplicate column declared on model '{self._name}'")

        relations: dict[str, RelationSchema] = {}
        for name, relation in self._relations:
            if name in relations:
                raise SchemaCompilationError(
                    f"Duplicate relation '{name}' on model '{self._name}'"
                )
            if name in columns or name == self._key_field:
                raise SchemaCompilationError(
                    f"Relation '{name}' on model '{self._name}' clashes with a column name"
                )
            relations[name] = relation

        return ModelSchema(
            name=self._name,
            table=self._table,
            primary_key=self._key_field,
            columns=tuple(columns),
            relations=relations,
        )
