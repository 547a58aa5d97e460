"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from row_mapper.core.connection import ConnectionConfig
from row_mapper.mapping.session import Session
from row_mapper.store.record import Record
from row_mapper.store.schema import Schema
from row_mapper.store.sql import SqlRecordStore
from tests.blog import TABLES, PostMapper, blog_schema


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def schema() -> Schema:
    return blog_schema()


@pytest.fixture
def store_factory(
    sqlite_config: ConnectionConfig, schema: Schema
) -> Iterator[Callable[..., SqlRecordStore]]:
    """Create stores over a fresh in-memory database with the blog tables.

    Usage:
        store = store_factory(RecordingStore)
    """
    stores: list[SqlRecordStore] = []

    def _create(store_class: type[SqlRecordStore] = SqlRecordStore) -> SqlRecordStore:
        store = store_class.from_config(sqlite_config, schema)
        for statement in TABLES:
            store.execute(statement)
        stores.append(store)
        return store

    yield _create

    for store in stores:
        store.close()


@pytest.fixture
def store(store_factory: Callable[..., SqlRecordStore]) -> SqlRecordStore:
    return store_factory()


@pytest.fixture
def session(store: SqlRecordStore) -> Session:
    return Session(store)


@pytest.fixture
def make_post(session: Session) -> Callable[..., PostMapper]:
    """Create a post mapper, optionally over an existing record."""

    def _make(record: Record | None = None) -> PostMapper:
        return PostMapper(session, record=record)

    return _make


@pytest.fixture
def load_post(
    store: SqlRecordStore, make_post: Callable[..., PostMapper]
) -> Callable[[int], PostMapper]:
    """Load a post mapper by key."""

    def _load(key: int) -> PostMapper:
        record = store.find("post", key)
        assert record is not None
        return make_post(record)

    return _load


@pytest.fixture
def count_rows(store: SqlRecordStore) -> Callable[[str], int]:
    def _count(table: str) -> int:
        row = store.fetch_one(f"SELECT COUNT(*) AS cnt FROM {table}")
        assert row is not None
        return int(row["cnt"])

    return _count


@pytest.fixture
def tags(store: SqlRecordStore) -> list[int]:
    """Ten persisted tags; returns their keys."""
    keys = []
    for i in range(1, 11):
        record = store.new("tag", {"name": f"tag-{i}"})
        store.save(record)
        keys.append(record.key)
    return keys
