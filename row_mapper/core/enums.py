"""Enumerations shared across the store and mapping layers."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class RelationKind(Enum):
    """Shape of a relation declared between two models."""

    BELONGS_TO = "belongs_to"
    HAS_MANY = "has_many"
    BELONGS_TO_MANY = "belongs_to_many"


class LinkType(str, Enum):
    """Type tags accepted in declarative link configuration."""

    ONE2ONE = "one2one"
    ONE2MANY = "one2many"
    BELONGS2ONE = "belongs2one"
    MANY2MANY = "many2many"


class Phase(Enum):
    """Moment of a link save/delete relative to the owner's own write."""

    BEFORE_OWNER_PERSIST = "before"
    AFTER_OWNER_PERSIST = "after"


class MapperEvent(str, Enum):
    """Lifecycle events fired by mappers."""

    SAVING = "mapper.saving"
    SAVED = "mapper.saved"
    INSERTING = "mapper.inserting"
    INSERTED = "mapper.inserted"
    UPDATING = "mapper.updating"
    UPDATED = "mapper.updated"
    DELETING = "mapper.deleting"
    DELETED = "mapper.deleted"
