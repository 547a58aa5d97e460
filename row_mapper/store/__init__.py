"""Record store - persisted rows, their schema and relations."""

from __future__ import annotations

from row_mapper.store.builder import ModelBuilder, model
from row_mapper.store.protocol import RecordStore
from row_mapper.store.record import Record
from row_mapper.store.schema import BelongsTo, BelongsToMany, HasMany, ModelSchema, Schema
from row_mapper.store.sql import SqlRecordStore

__all__ = [
    "Schema",
    "ModelSchema",
    "BelongsTo",
    "HasMany",
    "BelongsToMany",
    "ModelBuilder",
    "model",
    "Record",
    "RecordStore",
    "SqlRecordStore",
]
