"""
MongoDB access helpers.

Each collection is named after the lowercase schema class (user, post,
category, ...). The active database lives on ``app.state.db`` and reaches
routes through :func:`get_db`.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from settings import Settings

COLL_USER = "user"
COLL_SESSION = "session"
COLL_CATEGORY = "category"
COLL_POST = "post"
COLL_CONTACT = "contact"
COLL_DIGEST = "emaildigest"


def get_client(settings: Settings) -> MongoClient:
    return MongoClient(settings.database_url, tz_aware=True)


def get_database(settings: Settings, client: Optional[MongoClient] = None) -> Database:
    client = client or get_client(settings)
    return client[settings.database_name]


def get_db(request: Request) -> Database:
    """Resolve the database from the application state."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database not initialised")
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes may come back naive depending on client options."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(db: Database) -> None:
    db[COLL_USER].create_index("email", unique=True)
    db[COLL_USER].create_index("role")
    db[COLL_SESSION].create_index("token")
    db[COLL_CATEGORY].create_index("slug", unique=True)
    db[COLL_CATEGORY].create_index("name", unique=True)
    posts = db[COLL_POST]
    posts.create_index("author")
    posts.create_index("categories")
    posts.create_index([("created_at", DESCENDING)])
    posts.create_index([("engagement", DESCENDING)])
    posts.create_index("is_active")
    posts.create_index("is_news")
    # dedup lookup for ingested articles; uniqueness is checked before insert
    posts.create_index([("original_source", ASCENDING), ("is_news", ASCENDING)])
    db[COLL_DIGEST].create_index([("user", ASCENDING), ("sent_at", DESCENDING)])


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly: ObjectId -> str, _id -> id."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        out = {}
        for key, val in value.items():
            out["id" if key == "_id" else key] = serialize(val)
        return out
    return value
