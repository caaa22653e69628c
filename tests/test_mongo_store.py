import os
import uuid

import pytest

from roomrelay.services.mongo_store import MongoMessageStore

MONGODB_URI = os.environ.get("MONGODB_CONNECTION")
pytestmark = pytest.mark.skipif(not MONGODB_URI, reason="MONGODB_CONNECTION not set")


def make_store():
    return MongoMessageStore(
        MONGODB_URI,
        database="test_roomrelay",
        collection=f"messages_test_{uuid.uuid4().hex[:8]}",
    )


async def drop(store):
    await store._coll.drop()
    await store.close()


@pytest.mark.asyncio
async def test_mongo_history_and_replies():
    store = make_store()
    try:
        await store.ensure_indexes()
        parent = await store.append("a", "lobby", "hi")
        child = await store.append("b", "lobby", "hey", reply_to=parent.id)
        await store.append("c", "games", "elsewhere")

        resolved = await store.resolve_reply(child)
        assert resolved.reply_to.author_id == "a"

        history = await store.history("lobby")
        assert [m.message for m in history] == ["hi", "hey"]
        assert history[1].reply_to.message == "hi"
        assert history[0].reply_to is None
    finally:
        await drop(store)


@pytest.mark.asyncio
async def test_mongo_clear_and_dangling_reply():
    store = make_store()
    try:
        parent = await store.append("a", "lobby", "hi")
        await store.append("a", "games", "kept")
        assert await store.clear("lobby") == 1
        assert await store.history("lobby") == []
        assert len(await store.history("games")) == 1

        late = await store.append("b", "lobby", "late", reply_to=parent.id)
        assert (await store.resolve_reply(late)).reply_to is None

        malformed = await store.append("b", "lobby", "odd", reply_to="not-an-object-id")
        assert malformed.reply_to is None
    finally:
        await drop(store)


@pytest.mark.asyncio
async def test_mongo_echoed_timestamp_matches_history():
    store = make_store()
    try:
        record = await store.append("a", "lobby", "hi")
        [stored] = await store.history("lobby")
        assert stored.timestamp == record.timestamp
    finally:
        await drop(store)
