import os
import logging
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "lost_and_found")

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db = None


def utcnow() -> datetime:
    # Mongo hands back naive UTC datetimes, so store them that way too
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_db():
    global _client, _db
    if _client is None:
        _client = AsyncIOMotorClient(DATABASE_URL)
        _db = _client[DATABASE_NAME]
    return _db


async def ensure_indexes():
    db = await get_db()
    await db["user"].create_index("email", unique=True)
    await db["item"].create_index("owner_id")
    await db["item"].create_index([("created_at", -1)])
    await db["notification"].create_index("user_id")
    logger.info("Indexes ensured on %s", DATABASE_NAME)


async def create_document(collection_name: str, data: dict):
    db = await get_db()
    now = utcnow()
    data["created_at"] = now
    data["updated_at"] = now
    res = await db[collection_name].insert_one(data)
    data["_id"] = res.inserted_id
    return data


async def get_documents(collection_name: str, filter_dict: dict | None = None, limit: int | None = None):
    db = await get_db()
    cursor = db[collection_name].find(filter_dict or {}).sort([("created_at", -1), ("_id", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return [doc async for doc in cursor]


def naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def map_doc(d: dict) -> dict:
    d["id"] = str(d.pop("_id"))
    return d
