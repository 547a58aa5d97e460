"""RowMapper - data mappers over related records with two-phase persistence."""

from __future__ import annotations

from row_mapper.core.connection import ConnectionConfig, ConnectionManager
from row_mapper.core.enums import DatabaseBackend, LinkType, MapperEvent, Phase, RelationKind
from row_mapper.core.events import EventDispatcher
from row_mapper.core.exceptions import (
    AdapterError,
    ConnectionError,  # noqa: A004
    LinkConfigurationError,
    MappingError,
    MissingOwnerError,
    PoolError,
    RecordNotFoundError,
    RelationError,
    RelationNotDefinedError,
    RelationShapeMismatchError,
    RowMapperError,
    SchemaCompilationError,
    SchemaError,
    StoreError,
    TransactionError,
    TransactionFailure,
    TransactionStateError,
    UnknownAttributeError,
    UnknownModelError,
)
from row_mapper.core.transaction import TransactionManager
from row_mapper.mapping.links import (
    Belongs2One,
    LinkFactory,
    Many2Many,
    One2Many,
    One2One,
    belongs2one,
    belongs2one_simple,
    many2many,
    one2many,
    one2many_simple,
    one2one,
    one2one_simple,
)
from row_mapper.mapping.mapper import AbstractMapper
from row_mapper.mapping.session import Session
from row_mapper.mapping.simple import ScenarioMixin, SimpleMapper
from row_mapper.store.builder import model
from row_mapper.store.record import Record
from row_mapper.store.schema import Schema
from row_mapper.store.sql import SqlRecordStore

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    # Store
    "Schema",
    "model",
    "Record",
    "SqlRecordStore",
    # Transaction
    "TransactionManager",
    # Mapping
    "AbstractMapper",
    "SimpleMapper",
    "ScenarioMixin",
    "Session",
    "EventDispatcher",
    # Links
    "LinkFactory",
    "Belongs2One",
    "One2One",
    "One2Many",
    "Many2Many",
    "belongs2one",
    "belongs2one_simple",
    "one2one",
    "one2one_simple",
    "one2many",
    "one2many_simple",
    "many2many",
    # Enums
    "DatabaseBackend",
    "LinkType",
    "MapperEvent",
    "Phase",
    "RelationKind",
    # Exceptions
    "RowMapperError",
    "SchemaError",
    "SchemaCompilationError",
    "UnknownModelError",
    "RelationError",
    "RelationNotDefinedError",
    "RelationShapeMismatchError",
    "MappingError",
    "UnknownAttributeError",
    "LinkConfigurationError",
    "MissingOwnerError",
    "StoreError",
    "RecordNotFoundError",
    "TransactionError",
    "TransactionStateError",
    "TransactionFailure",
    "AdapterError",
    "ConnectionError",
    "PoolError",
]
