import logging
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from config import ACCESS_TOKEN_EXPIRE_MINUTES, DATABASE_URL, DATABASE_NAME

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db = None


async def get_db():
    global _client, _db
    if _client is None:
        _client = AsyncIOMotorClient(DATABASE_URL)
        _db = _client[DATABASE_NAME]
    return _db


def close_db():
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value) -> ObjectId | None:
    """Parse a client-supplied id; malformed ids become None."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


async def create_document(db, collection_name: str, data: dict):
    now = utcnow()
    data["created_at"] = now
    data["updated_at"] = now
    res = await db[collection_name].insert_one(data)
    data["_id"] = res.inserted_id
    return data


async def get_documents(db, collection_name: str, filter_dict: dict | None = None, skip: int = 0, limit: int | None = None):
    # _id breaks ties between documents created in the same millisecond
    cursor = db[collection_name].find(filter_dict or {}).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return [doc async for doc in cursor]


async def ensure_indexes(db):
    await db["user"].create_index("email", unique=True)
    await db["session"].create_index("jti", unique=True)
    await db["session"].create_index("user_id")
    # a session expires with the token it backs
    await db["session"].create_index(
        "created_at",
        expireAfterSeconds=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        name="session_ttl",
    )
    await db["skillrequest"].create_index([("sender_id", ASCENDING), ("created_at", DESCENDING)])
    await db["skillrequest"].create_index([("recipient_id", ASCENDING), ("created_at", DESCENDING)])
    await db["skillrequest"].create_index(
        [("sender_id", ASCENDING), ("recipient_id", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": "pending"},
        name="one_pending_per_pair",
    )
    logger.info("Database indexes ensured")


async def ping(db):
    await db.command("ping")


def serialize_document(doc: dict) -> dict:
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["id"] = str(doc["_id"])
    return out
