"""Unit tests for SqlRecordStore against SQLite in-memory."""

from __future__ import annotations

import pytest

from row_mapper.core.exceptions import (
    RelationNotDefinedError,
    RelationShapeMismatchError,
    StoreError,
    UnknownModelError,
)
from row_mapper.store.record import Record
from row_mapper.store.sql import SqlRecordStore


def _post(store: SqlRecordStore, title: str = "Hello") -> Record:
    record = store.new("post", {"title": title})
    store.save(record)
    return record


class TestRecordCrud:
    def test_insert_assigns_key(self, store: SqlRecordStore) -> None:
        record = store.new("author", {"name": "Alice"})
        assert store.save(record) is True
        assert record.exists
        assert record.key is not None
        assert not record.is_dirty()

    def test_insert_without_values(self, store: SqlRecordStore) -> None:
        record = store.new("note")
        assert store.save(record) is True
        assert record.key is not None

    def test_find(self, store: SqlRecordStore) -> None:
        post = _post(store)
        found = store.find("post", post.key)
        assert found is not None
        assert found.exists
        assert found.get("title") == "Hello"
        assert store.find("post", 999) is None
        assert store.find("post", None) is None

    def test_find_many_keeps_key_order(self, store: SqlRecordStore) -> None:
        keys = [_post(store, title).key for title in ("a", "b", "c")]
        found = store.find_many("post", [keys[2], keys[0], 999, keys[2]])
        assert [record.get("title") for record in found] == ["c", "a"]

    def test_update_writes_dirty_columns(self, store: SqlRecordStore) -> None:
        post = _post(store)
        post.set("title", "Changed")
        assert store.save(post) is True

        found = store.find("post", post.key)
        assert found is not None
        assert found.get("title") == "Changed"

    def test_clean_update_issues_no_statement(self, store: SqlRecordStore) -> None:
        post = _post(store)
        before = store.fetch_one("SELECT total_changes() AS n")
        assert store.save(post) is True
        assert store.fetch_one("SELECT total_changes() AS n") == before

    def test_update_of_vanished_row_fails(self, store: SqlRecordStore) -> None:
        post = _post(store)
        store.execute("DELETE FROM post")
        post.set("title", "Changed")
        assert store.save(post) is False

    def test_delete(self, store: SqlRecordStore) -> None:
        post = _post(store)
        assert store.delete(post) is True
        assert not post.exists
        assert store.find("post", post.key) is None

    def test_delete_transient_record_is_noop(self, store: SqlRecordStore) -> None:
        assert store.delete(store.new("post")) is True

    def test_unknown_model_raises(self, store: SqlRecordStore) -> None:
        with pytest.raises(UnknownModelError):
            store.new("user")


class TestRelations:
    def test_related_belongs_to(self, store: SqlRecordStore) -> None:
        author = store.new("author", {"name": "Alice"})
        store.save(author)
        post = store.new("post", {"title": "Hello"})
        store.associate(post, "author", author)
        assert post.get("author_id") == author.key
        assert [r.key for r in store.related(post, "author")] == [author.key]

    def test_related_has_many_ordered(self, store: SqlRecordStore) -> None:
        post = _post(store)
        for body, position in (("b", 2), ("a", 1)):
            comment = {"post_id": post.key, "body": body, "position": position}
            store.save(store.new("comment", comment))
        assert [r.get("body") for r in store.related(post, "comments")] == ["a", "b"]

    def test_related_of_new_record_is_empty(self, store: SqlRecordStore) -> None:
        assert store.related(store.new("post"), "comments") == []
        assert store.related_keys(store.new("post"), "tags") == []

    def test_unknown_relation_raises(self, store: SqlRecordStore) -> None:
        with pytest.raises(RelationNotDefinedError):
            store.relation(store.new("post"), "readers")

    def test_associate_requires_belongs_to(self, store: SqlRecordStore) -> None:
        with pytest.raises(RelationShapeMismatchError):
            store.associate(store.new("post"), "comments", None)


class TestJoinTable:
    def test_sync_replaces_membership(self, store: SqlRecordStore, tags: list[int]) -> None:
        post = _post(store)
        store.sync(post, "tags", [tags[0], tags[1]])
        result = store.sync(post, "tags", [tags[1], tags[2]])

        assert result == {"attached": [tags[2]], "detached": [tags[0]]}
        assert sorted(store.related_keys(post, "tags")) == [tags[1], tags[2]]

    def test_attach_with_pivot_values(self, store: SqlRecordStore, tags: list[int]) -> None:
        post = _post(store)
        store.attach(post, "tags", tags[0], position=7)
        (row,) = store.pivot_rows(post, "tags")
        assert row["tag_id"] == tags[0]
        assert row["position"] == 7

    def test_detach(self, store: SqlRecordStore, tags: list[int]) -> None:
        post = _post(store)
        store.sync(post, "tags", tags[:3])
        assert store.detach(post, "tags", [tags[0], 999]) == 1
        assert store.detach(post, "tags", []) == 0
        assert store.detach(post, "tags") == 2

    def test_update_pivot(self, store: SqlRecordStore, tags: list[int]) -> None:
        post = _post(store)
        store.attach(post, "tags", tags[0])
        assert store.update_pivot(post, "tags", tags[0], {"position": 3}) == 1
        assert store.update_pivot(post, "tags", tags[1], {"position": 3}) == 0
        assert store.pivot_rows(post, "tags")[0]["position"] == 3

    def test_related_through_join_table(self, store: SqlRecordStore, tags: list[int]) -> None:
        post = _post(store)
        store.attach(post, "tags", tags[1], position=1)
        store.attach(post, "tags", tags[0], position=2)
        assert [r.key for r in store.related(post, "tags")] == [tags[1], tags[0]]

    def test_join_operations_require_join_table(self, store: SqlRecordStore) -> None:
        post = _post(store)
        with pytest.raises(RelationShapeMismatchError):
            store.sync(post, "comments", [])

    def test_owner_without_key_raises(self, store: SqlRecordStore) -> None:
        with pytest.raises(StoreError):
            store.attach(store.new("post"), "tags", 1)
