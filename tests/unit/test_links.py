"""Unit tests for the four link variants."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from row_mapper.core.enums import Phase
from row_mapper.core.exceptions import (
    MissingOwnerError,
    RelationNotDefinedError,
    RelationShapeMismatchError,
)
from row_mapper.mapping.links.base import resolve_key, split_path
from row_mapper.mapping.links.belongs2one import Belongs2One
from row_mapper.mapping.links.config import one2many_simple
from row_mapper.mapping.links.many2many import Many2Many
from row_mapper.mapping.links.one2many import One2Many, PendingKey
from row_mapper.mapping.links.one2one import One2One
from row_mapper.mapping.session import Session
from row_mapper.mapping.simple import SimpleMapper
from row_mapper.store.sql import SqlRecordStore
from tests.blog import AuthorMapper, CommentMapper, PostMapper


class TaggedPostMapper(PostMapper):
    """Edits tag records through the join table instead of tag keys."""

    def links_config(self) -> Mapping[str, Any]:
        return {
            **super().links_config(),
            "tag_records": one2many_simple(
                "tags", "tag", ["name"], position_attribute="position"
            ),
        }


@pytest.fixture
def saved_post(
    store: SqlRecordStore, load_post: Callable[[int], PostMapper]
) -> Callable[..., PostMapper]:
    """Persist a post with the given comment bodies and load it back."""

    def _create(*bodies: str) -> PostMapper:
        post = store.new("post", {"title": "Hello"})
        store.save(post)
        for position, body in enumerate(bodies, start=1):
            store.save(
                store.new("comment", {"post_id": post.key, "body": body, "position": position})
            )
        return load_post(post.key)

    return _create


class TestHelpers:
    def test_split_path(self) -> None:
        assert split_path("author") == ("author", None)
        assert split_path("comments.3.body") == ("comments", "3.body")

    def test_resolve_key(self) -> None:
        assert resolve_key([1, 2], "2") == 2
        assert resolve_key([1, 2], 2) == 2
        assert resolve_key([1, 2], "x") == "x"

    def test_pending_key(self) -> None:
        assert str(PendingKey(3)) == "new:3"
        assert PendingKey(3) == PendingKey(3)


class TestLinkContract:
    def test_missing_owner_raises(self) -> None:
        link = Many2Many("tags")
        with pytest.raises(MissingOwnerError, match="owner is required"):
            link.get_value()

    def test_wrong_relation_kind_raises(self, make_post: Callable[..., PostMapper]) -> None:
        link = Belongs2One(CommentMapper, "comments").bind(make_post())
        with pytest.raises(RelationShapeMismatchError) as exc_info:
            link.get_value()
        assert exc_info.value.link_type == "belongs2one"
        assert exc_info.value.expected == ["belongs_to"]

    def test_many2many_requires_join_table(self, make_post: Callable[..., PostMapper]) -> None:
        link = Many2Many("comments").bind(make_post())
        with pytest.raises(RelationShapeMismatchError):
            link.get_value()

    def test_one2many_rejects_belongs_to(self, make_post: Callable[..., PostMapper]) -> None:
        link = One2Many(AuthorMapper, "author").bind(make_post())
        with pytest.raises(RelationShapeMismatchError):
            link.get_value()

    def test_one2one_rejects_belongs_to(self, make_post: Callable[..., PostMapper]) -> None:
        link = One2One(AuthorMapper, "author").bind(make_post())
        with pytest.raises(RelationShapeMismatchError):
            link.get_value()

    def test_undefined_relation_raises(self, make_post: Callable[..., PostMapper]) -> None:
        link = One2Many(CommentMapper, "replies").bind(make_post())
        with pytest.raises(RelationNotDefinedError):
            link.get_value()

    def test_session_defaults_to_owner_session(
        self, make_post: Callable[..., PostMapper]
    ) -> None:
        post = make_post()
        link = Many2Many("tags").bind(post)
        assert link.session is post.session
        assert link.store is post.store


class TestBelongs2One:
    def test_fresh_target_when_unset(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("author")
        target = link.get_value()
        assert isinstance(target, AuthorMapper)
        assert not target.record.exists

    def test_set_mapping(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("author")
        link.set_value({"name": "Alice"})
        assert link.get_value("name") == "Alice"

    def test_set_none_is_ignored(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("author")
        link.set_value({"name": "Alice"})
        link.set_value(None)
        assert link.get_value("name") == "Alice"

    def test_set_scalar_raises(self, make_post: Callable[..., PostMapper]) -> None:
        with pytest.raises(TypeError, match="expects a mapping"):
            make_post().get_link("author").set_value("Alice")

    def test_cascading_delete_after_owner(
        self,
        make_post: Callable[..., PostMapper],
        load_post: Callable[[int], PostMapper],
        count_rows: Callable[[str], int],
    ) -> None:
        post = make_post()
        post["author_name"] = "Alice"
        post.save()

        loaded = load_post(post["id"])
        link = loaded.get_link("author")
        assert isinstance(link, Belongs2One)
        link.process_deletion = True
        loaded.delete()

        assert count_rows("post") == 0
        assert count_rows("author") == 0


class TestOne2One:
    def test_no_target(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("summary")
        assert link.get_value() is None
        assert link.get_value("text") is None

    def test_set_subpath_creates_target(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("summary")
        link.set_value("short", "text")
        target = link.get_value()
        assert isinstance(target, SimpleMapper)
        assert target["text"] == "short"

    def test_set_scalar_raises(self, make_post: Callable[..., PostMapper]) -> None:
        with pytest.raises(TypeError):
            make_post().get_link("summary").set_value("short")

    def test_unset_deletes_target(
        self,
        make_post: Callable[..., PostMapper],
        load_post: Callable[[int], PostMapper],
        count_rows: Callable[[str], int],
    ) -> None:
        post = make_post()
        post.set_many({"summary_text": "short", "note_text": "n"})
        post.save()

        loaded = load_post(post["id"])
        loaded.get_link("summary").set_value(None)
        loaded.get_link("note").set_value("")
        loaded.save()

        assert count_rows("summary") == 0
        assert count_rows("post_note") == 0
        assert count_rows("note") == 0
        assert load_post(post["id"])["summary_text"] is None

    def test_unset_without_delete_detaches(
        self,
        make_post: Callable[..., PostMapper],
        load_post: Callable[[int], PostMapper],
        store: SqlRecordStore,
    ) -> None:
        post = make_post()
        post.set_many({"summary_text": "short", "note_text": "n"})
        post.save()

        loaded = load_post(post["id"])
        for name in ("summary", "note"):
            link = loaded.get_link(name)
            assert isinstance(link, One2One)
            link.delete_on_unset = False
            link.set_value(None)
        loaded.save()

        summary = store.fetch_one("SELECT post_id FROM summary")
        assert summary is not None
        assert summary["post_id"] is None
        assert store.fetch_all("SELECT * FROM post_note") == []
        assert len(store.fetch_all("SELECT * FROM note")) == 1

    def test_existing_target_is_not_attached_twice(
        self,
        make_post: Callable[..., PostMapper],
        load_post: Callable[[int], PostMapper],
        count_rows: Callable[[str], int],
    ) -> None:
        post = make_post()
        post["note_text"] = "v1"
        post.save()

        loaded = load_post(post["id"])
        loaded["note_text"] = "v2"
        loaded.save()

        assert count_rows("post_note") == 1
        assert load_post(post["id"])["note_text"] == "v2"


class TestOne2Many:
    def test_loads_keyed_mappers(self, saved_post: Callable[..., PostMapper]) -> None:
        value = saved_post("a", "b").get_link("comments").get_value()
        assert list(value) == [1, 2]
        assert all(isinstance(mapper, CommentMapper) for mapper in value.values())

    def test_diff_against_baseline(self, saved_post: Callable[..., PostMapper]) -> None:
        link = saved_post("a", "b", "c").get_link("comments")
        assert isinstance(link, One2Many)
        kept = link.get_value("2")

        link.set_value({2: {"body": "B"}, 4: {"body": "D"}})

        value = link.get_value()
        assert set(value) == {2, 4}
        assert set(link.removed) == {1, 3}
        assert value[2] is kept
        assert kept["body"] == "B"
        assert not value[4].record.exists
        assert value[4]["body"] == "D"

    def test_removed_entry_is_restored(self, saved_post: Callable[..., PostMapper]) -> None:
        link = saved_post("a", "b").get_link("comments")
        assert isinstance(link, One2Many)
        first = link.get_value("1")

        link.set_value({2: {}})
        link.set_value({"1": {"body": "again"}, 2: {}})

        assert link.get_value("1") is first
        assert first["body"] == "again"
        assert link.removed == {}

    def test_transient_entries_are_dropped(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("comments")
        assert isinstance(link, One2Many)
        link.set_value([{"body": "a"}, {"body": "b"}])
        assert list(link.get_value()) == [PendingKey(0), PendingKey(1)]

        link.set_value([])
        assert link.get_value() == {}
        assert link.removed == {}

    def test_subpaths(self, saved_post: Callable[..., PostMapper]) -> None:
        post = saved_post("a", "b")
        link = post.get_link("comments")
        assert isinstance(link, One2Many)

        link.set_value("A", "1.body")
        assert link.get_value("1.body") == "A"

        link.set_value(None, "2")
        assert set(link.removed) == {2}
        assert link.get_value("2") is None

        link.set_value({"body": "new"}, "x")
        assert link.get_value("x.body") == "new"

    def test_unchanged_link_is_not_saved(
        self, saved_post: Callable[..., PostMapper], count_rows: Callable[[str], int]
    ) -> None:
        post = saved_post("a")
        post["title"] = "Changed"
        post.save()
        assert count_rows("comment") == 1

    def test_delete_phase_runs_before_owner_only(
        self, saved_post: Callable[..., PostMapper], count_rows: Callable[[str], int]
    ) -> None:
        link = saved_post("a", "b").get_link("comments")
        assert link.delete(with_transaction=False, phase=Phase.AFTER_OWNER_PERSIST) is True
        assert count_rows("comment") == 2

        assert link.delete(with_transaction=False, phase=Phase.BEFORE_OWNER_PERSIST) is True
        assert count_rows("comment") == 0

    def test_join_table_variant(
        self,
        session: Session,
        load_post: Callable[[int], PostMapper],
        store: SqlRecordStore,
    ) -> None:
        post = TaggedPostMapper(session)
        post["title"] = "Hello"
        post.get_link("tag_records").set_value([{"name": "b"}, {"name": "a"}])
        post.save()

        rows = store.fetch_all("SELECT tag_id, position FROM post_tag ORDER BY position")
        assert [row["position"] for row in rows] == [1, 2]
        assert load_post(post["id"])["tag_ids"] == [row["tag_id"] for row in rows]


class TestMany2Many:
    def test_index_access(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("tags")
        link.set_value([5, 2, 9])

        assert link.get_value() == [5, 2, 9]
        assert link.get_value("1") == 2
        assert link.get_value("-1") == 9
        assert link.get_value("7") is None

        link.set_value(7, "1")
        link.set_value(8, "10")
        assert link.get_value() == [5, 7, 9, 8]

    def test_scalar_becomes_single_key(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("tags")
        link.set_value(5)
        assert link.get_value() == [5]
        link.set_value(None)
        assert link.get_value() == []

    def test_non_integer_index_raises(self, make_post: Callable[..., PostMapper]) -> None:
        with pytest.raises(KeyError):
            make_post().get_link("tags").get_value("first")

    def test_records(
        self, make_post: Callable[..., PostMapper], tags: list[int]
    ) -> None:
        link = make_post().get_link("tags")
        assert isinstance(link, Many2Many)
        link.set_value([tags[2], tags[0]])
        assert [record.get("name") for record in link.records()] == ["tag-3", "tag-1"]

    def test_value_is_a_copy(self, make_post: Callable[..., PostMapper]) -> None:
        link = make_post().get_link("tags")
        link.set_value([1])
        link.get_value().append(2)
        assert link.get_value() == [1]
