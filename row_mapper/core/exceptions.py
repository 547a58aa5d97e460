"""RowMapper exception hierarchy.

Mapping and orchestration failures are RowMapper-specific. Driver
exceptions raised outside a transaction propagate untouched.
"""

from __future__ import annotations


class RowMapperError(Exception):
    """Base exception for all RowMapper errors."""


# --- Schema ---


class SchemaError(RowMapperError):
    """Base for schema declaration errors."""


class SchemaCompilationError(SchemaError):
    """Raised when a model declaration fails validation during build()."""


class UnknownModelError(SchemaError):
    """Raised when a model name is not registered in the schema."""

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(f"Model not found: '{model_name}'")


# --- Relations ---


class RelationError(RowMapperError):
    """Base for relation resolution errors."""


class RelationNotDefinedError(RelationError):
    """Raised when a model has no relation with the requested name."""

    def __init__(self, model_name: str, relation_name: str) -> None:
        self.model_name = model_name
        self.relation_name = relation_name
        super().__init__(f"The '{relation_name}' relation is not defined on '{model_name}' model")


class RelationShapeMismatchError(RelationError):
    """Raised when a relation exists but has the wrong kind for a link."""

    def __init__(
        self,
        model_name: str,
        relation_name: str,
        link_type: str,
        expected: list[str],
    ) -> None:
        self.model_name = model_name
        self.relation_name = relation_name
        self.link_type = link_type
        self.expected = expected
        super().__init__(
            f"Unexpected kind of the '{relation_name}' relation on '{model_name}' model: "
            f"the {link_type} link works only with {' or '.join(expected)} relations"
        )


# --- Mapping ---


class MappingError(RowMapperError):
    """Base for mapper errors."""


class UnknownAttributeError(MappingError):
    """Raised when an attribute is neither mapped, a link, nor a record field."""

    def __init__(self, mapper_name: str, attribute: str, detail: str | None = None) -> None:
        self.mapper_name = mapper_name
        self.attribute = attribute
        message = f"The '{mapper_name}' mapper has no '{attribute}' attribute"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LinkConfigurationError(MappingError):
    """Raised when a link configuration cannot be turned into a link."""


class MissingOwnerError(MappingError):
    """Raised when a link is used before an owner mapper was bound."""

    def __init__(self, link_type: str) -> None:
        self.link_type = link_type
        super().__init__(f"The {link_type} link was incorrectly configured: owner is required")


# --- Store ---


class StoreError(RowMapperError):
    """Base for record store errors."""


class RecordNotFoundError(StoreError):
    """Raised when a record expected to exist cannot be loaded."""

    def __init__(self, model_name: str, key: object) -> None:
        self.model_name = model_name
        self.key = key
        super().__init__(f"Record of '{model_name}' with key {key!r} not found")


# --- Transaction ---


class TransactionError(RowMapperError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


class TransactionFailure(TransactionError):
    """Raised after rollback when a transactional save/delete did not succeed."""


# --- Adapter ---


class AdapterError(RowMapperError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""
