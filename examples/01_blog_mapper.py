"""
Example 01: Blog Mapper

This example maps a post together with its author, comments and tags, saves
the whole graph in one call and reads it back.
"""

from row_mapper import (
    AbstractMapper,
    ConnectionConfig,
    Schema,
    Session,
    SqlRecordStore,
    belongs2one_simple,
    many2many,
    model,
    one2many_simple,
)

TABLES = [
    "CREATE TABLE author (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)",
    "CREATE TABLE post (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, author_id INTEGER)",
    "CREATE TABLE comment (id INTEGER PRIMARY KEY AUTOINCREMENT, post_id INTEGER, "
    "body TEXT, position INTEGER)",
    "CREATE TABLE tag (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)",
    "CREATE TABLE post_tag (post_id INTEGER, tag_id INTEGER, position INTEGER)",
]


class PostMapper(AbstractMapper):
    def model_name(self):
        return "post"

    def attributes_map(self):
        return {
            "id": None,
            "title": None,
            "author": "author.name",
            "comments": None,
            "tags": None,
        }

    def links_config(self):
        return {
            "author": belongs2one_simple("author", "author", ["name"]),
            "comments": one2many_simple(
                "comments", "comment", ["body"], position_attribute="position"
            ),
            "tags": many2many("tags", position_attribute="position"),
        }


def main():
    schema = Schema(
        model("author").columns("name").build(),
        model("post")
        .columns("title", "author_id")
        .belongs_to("author", "author")
        .has_many("comments", "comment", order_by="position")
        .belongs_to_many("tags", "tag", pivot="post_tag", order_by="position")
        .build(),
        model("comment").columns("post_id", "body", "position").build(),
        model("tag").columns("name").build(),
    )

    # A single pooled connection keeps the in-memory database alive
    config = ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)
    store = SqlRecordStore.from_config(config, schema)
    for statement in TABLES:
        store.execute(statement)

    tag_keys = []
    for name in ("python", "sql", "orm"):
        tag = store.new("tag", {"name": name})
        store.save(tag)
        tag_keys.append(tag.key)

    session = Session(store)

    print("=== Saving a post graph ===\n")
    post = PostMapper(session)
    post.set_many(
        {
            "title": "Mapping rows",
            "author": "Alice",
            "comments": [{"body": "Nice"}, {"body": "Thanks"}],
            "tags": [tag_keys[2], tag_keys[0]],
        }
    )
    post.save()
    print(f"Saved post #{post['id']}")

    print("\n=== Reading it back ===\n")
    loaded = PostMapper(session, record=store.find("post", post["id"]))
    print(f"Title:    {loaded['title']}")
    print(f"Author:   {loaded['author']}")
    print(f"Comments: {[c['body'] for c in loaded['comments'].values()]}")
    print(f"Tags:     {loaded['tags']}")
    print(f"\nAs JSON:  {loaded.to_json()}")

    print("\n=== Reordering tags ===\n")
    loaded["tags"] = [tag_keys[0], tag_keys[1], tag_keys[2]]
    loaded.save()
    for row in store.pivot_rows(loaded.record, "tags"):
        print(f"  tag {row['tag_id']} at position {row['position']}")

    store.close()


if __name__ == "__main__":
    main()
