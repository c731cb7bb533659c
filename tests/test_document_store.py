"""Tests for the in-process document store."""

from datetime import datetime, timedelta, timezone

import pytest

from hustle_data.documents import (
    DOCUMENT_ID,
    ArrayRemove,
    ArrayUnion,
    FilterOp,
    Increment,
    Query,
    WriteBatch,
)
from hustle_data.errors import BackendUnavailableError, NotFoundError

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def seed(documents):
    for index, (owner, active) in enumerate([("u1", True), ("u2", True), ("u1", False), ("u1", True)]):
        await documents.set(
            "posts",
            f"p{index}",
            {
                "user_id": owner,
                "is_active": active,
                "updated_at": T0 + timedelta(minutes=index),
                "tags": ["garden"] if index % 2 == 0 else [],
            },
        )


async def test_get_missing_returns_none(documents):
    assert await documents.get("posts", "nope") is None


async def test_add_assigns_id(documents):
    doc_id = await documents.add("posts", {"title": "x"})
    snapshot = await documents.get("posts", doc_id)
    assert snapshot.id == doc_id
    assert snapshot.get("title") == "x"


async def test_query_filters_and_orders(documents):
    await seed(documents)
    query = (
        Query("posts")
        .where("is_active", FilterOp.EQ, True)
        .where("user_id", FilterOp.EQ, "u1")
        .order("updated_at", descending=True)
    )
    assert [s.id for s in await documents.query(query)] == ["p3", "p0"]


async def test_query_array_contains_and_in(documents):
    await seed(documents)
    tagged = await documents.query(Query("posts").where("tags", FilterOp.ARRAY_CONTAINS, "garden"))
    by_id = await documents.query(Query("posts").where(DOCUMENT_ID, FilterOp.IN, ["p1", "p3", "zz"]))

    assert sorted(s.id for s in tagged) == ["p0", "p2"]
    assert sorted(s.id for s in by_id) == ["p1", "p3"]


async def test_cursor_pagination_has_no_overlap(documents):
    await seed(documents)
    base = Query("posts").order("updated_at", descending=True).take(2)

    first = await documents.query(base)
    second = await documents.query(base.after(first[-1]))

    assert [s.id for s in first] == ["p3", "p2"]
    assert [s.id for s in second] == ["p1", "p0"]


async def test_order_excludes_documents_missing_the_field(documents):
    await documents.set("posts", "a", {"updated_at": T0})
    await documents.set("posts", "b", {})
    assert [s.id for s in await documents.query(Query("posts").order("updated_at"))] == ["a"]


async def test_count_ignores_limit(documents):
    await seed(documents)
    assert await documents.count(Query("posts").take(1)) == 4


async def test_update_transforms(documents):
    await documents.set("reels", "r1", {"likes": ["a"], "views": 1, "stats": {"shares": 0}})
    await documents.update(
        "reels",
        "r1",
        {"likes": ArrayUnion("b", "a"), "views": Increment(2), "stats.shares": Increment(1)},
    )
    snapshot = await documents.get("reels", "r1")
    assert snapshot.get("likes") == ["a", "b"]
    assert snapshot.get("views") == 3
    assert snapshot.get("stats") == {"shares": 1}

    await documents.update("reels", "r1", {"likes": ArrayRemove("a")})
    assert (await documents.get("reels", "r1")).get("likes") == ["b"]


async def test_update_missing_document_raises(documents):
    with pytest.raises(NotFoundError):
        await documents.update("posts", "nope", {"x": 1})


async def test_set_merge_keeps_other_fields(documents):
    await documents.set("users", "u1", {"name": "A", "bio": "b"})
    await documents.set("users", "u1", {"name": "B"}, merge=True)
    assert (await documents.get("users", "u1")).data == {"name": "B", "bio": "b"}


async def test_batch_is_all_or_nothing(documents):
    await documents.set("reels", "r1", {"comments": 0})
    batch = WriteBatch()
    batch.set("comments", "c1", {"text": "hi"})
    batch.update("reels", "r1", {"comments": Increment(1)})
    batch.update("reels", "missing", {"comments": Increment(1)})

    with pytest.raises(NotFoundError):
        await documents.commit(batch)

    assert await documents.get("comments", "c1") is None
    assert (await documents.get("reels", "r1")).get("comments") == 0


async def test_snapshots_are_copies(documents):
    await documents.set("posts", "p1", {"tags": ["a"]})
    snapshot = await documents.get("posts", "p1")
    snapshot.data["tags"].append("b")
    assert (await documents.get("posts", "p1")).get("tags") == ["a"]


async def test_fail_next_fails_one_matching_call(documents):
    documents.fail_next("get", "posts")

    assert await documents.get("users", "x") is None
    with pytest.raises(BackendUnavailableError):
        await documents.get("posts", "x")
    assert await documents.get("posts", "x") is None


async def test_unavailable_store(documents):
    documents.available = False
    with pytest.raises(BackendUnavailableError):
        await documents.query(Query("posts"))
    assert documents.health_check() is False


async def test_listener_receives_initial_and_changes(documents):
    received = []
    handle = documents.listen(
        Query("comments").where("reel_id", FilterOp.EQ, "r1"),
        lambda snapshots: received.append([s.id for s in snapshots]),
    )
    await documents.set("comments", "c1", {"reel_id": "r1"})
    await documents.set("comments", "c2", {"reel_id": "r2"})

    assert received[0] == []
    assert received[1] == ["c1"]

    handle.remove()
    await documents.set("comments", "c3", {"reel_id": "r1"})
    assert len(received) == 3
    assert documents.active_listener_count == 0


async def test_listener_errors_do_not_break_writes(documents):
    def explode(snapshots):
        raise RuntimeError("boom")

    documents.listen(Query("posts"), explode)
    await documents.set("posts", "p1", {"x": 1})
    assert documents.document_count("posts") == 1
