# roomrelay/services/mongo_store.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from roomrelay.models.models import MessageRecord, ResolvedMessage
from roomrelay.services.message_store import MessageStore, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "groupchat"


def _now_ms() -> datetime:
    # BSON dates carry milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _to_object_id(value: Optional[str]) -> Optional[ObjectId]:
    if value and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _to_record(doc: Dict[str, Any]) -> MessageRecord:
    reply_to = doc.get("replyTo")
    return MessageRecord(
        id=str(doc["_id"]),
        author_id=doc["authorId"],
        room=doc["room"],
        message=doc["message"],
        timestamp=doc["timestamp"],
        reply_to=str(reply_to) if reply_to is not None else None,
    )


class MongoMessageStore(MessageStore):
    """
    MongoDB-backed message history using motor.

    Each message is a single document, so every write is one atomic insert:
    concurrent sends to different rooms never step on each other.

    Document shape:
        {
            "_id": ObjectId,
            "authorId": "connection id or 'system'",
            "room": "lobby",
            "message": "hi",
            "timestamp": datetime (UTC),
            "replyTo": ObjectId | None
        }
    """

    def __init__(self, mongo_uri: str, *, database: Optional[str] = None, collection: str = "messages"):
        if not mongo_uri:
            raise ValueError("MongoDB URI is required")
        self._client = AsyncIOMotorClient(mongo_uri, tz_aware=True)
        db = self._client.get_default_database(default=database or DEFAULT_DATABASE)
        self._coll = db[collection]

    async def ensure_indexes(self) -> None:
        try:
            await self._coll.create_index([("room", ASCENDING), ("timestamp", ASCENDING)])
        except PyMongoError as e:
            raise PersistenceError(f"Could not create indexes: {e}") from e
        logger.info("✓ MongoDB indexes ready on '%s'", self._coll.name)

    async def append(self, author_id, room, message, reply_to=None) -> MessageRecord:
        doc = {
            "authorId": author_id,
            "room": room,
            "message": message,
            "timestamp": _now_ms(),
            "replyTo": _to_object_id(reply_to),
        }
        try:
            result = await self._coll.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Insert failed for room '{room}': {e}") from e
        doc["_id"] = result.inserted_id
        return _to_record(doc)

    async def resolve_reply(self, record: MessageRecord) -> ResolvedMessage:
        parent_id = _to_object_id(record.reply_to)
        if parent_id is None:
            return ResolvedMessage.from_record(record, None)
        try:
            doc = await self._coll.find_one({"_id": parent_id})
        except PyMongoError as e:
            raise PersistenceError(f"Reply lookup failed: {e}") from e
        return ResolvedMessage.from_record(record, _to_record(doc) if doc else None)

    async def history(self, room: str) -> List[ResolvedMessage]:
        try:
            cursor = self._coll.find({"room": room}).sort([("timestamp", ASCENDING), ("_id", ASCENDING)])
            docs = await cursor.to_list(length=None)

            parent_ids = {d["replyTo"] for d in docs if d.get("replyTo") is not None}
            parents: Dict[str, MessageRecord] = {}
            if parent_ids:
                async for doc in self._coll.find({"_id": {"$in": list(parent_ids)}}):
                    parents[str(doc["_id"])] = _to_record(doc)
        except PyMongoError as e:
            raise PersistenceError(f"History query failed for room '{room}': {e}") from e

        records = [_to_record(d) for d in docs]
        return [ResolvedMessage.from_record(r, parents.get(r.reply_to) if r.reply_to else None) for r in records]

    async def clear(self, room: str) -> int:
        try:
            result = await self._coll.delete_many({"room": room})
        except PyMongoError as e:
            raise PersistenceError(f"Clear failed for room '{room}': {e}") from e
        return result.deleted_count

    async def close(self) -> None:
        self._client.close()
        logger.info("MongoDB connection closed")
