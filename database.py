"""
MongoDB access for Thread Hive.

One MongoClient is opened when the app starts and closed on shutdown; handlers
get the database handle through the ``get_db`` dependency instead of a module
global.
"""
import logging
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, Request
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

logger = logging.getLogger(__name__)

# Collections
COLL_USERS = "users"
COLL_POSTS = "posts"
COLL_COMMENTS = "comments"
COLL_ANNOUNCEMENTS = "announcements"
COLL_TAGS = "tags"
COLL_WARNINGS = "warnings"
COLL_PAYMENTS = "successedPayment"


def open_client(url: str) -> MongoClient:
    logger.info("Opening MongoDB client")
    return MongoClient(url, tz_aware=True)


def get_database(client: MongoClient, name: str) -> Database:
    return client[name]


def close_client(client: MongoClient) -> None:
    logger.info("Closing MongoDB client")
    client.close()


def get_db(request: Request) -> Database:
    """FastAPI dependency returning the database opened at startup."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def parse_object_id(value: str) -> ObjectId:
    """Convert a path parameter into an ObjectId, the only place ids are converted."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def serialize(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    return doc


def serialize_many(docs) -> list:
    return [serialize(d) for d in docs]


def insert_result(res: InsertOneResult) -> dict[str, Any]:
    return {"acknowledged": res.acknowledged, "insertedId": str(res.inserted_id)}


def update_result(res: UpdateResult) -> dict[str, Any]:
    return {
        "acknowledged": res.acknowledged,
        "matchedCount": res.matched_count,
        "modifiedCount": res.modified_count,
    }


def delete_result(res: DeleteResult) -> dict[str, Any]:
    return {"acknowledged": res.acknowledged, "deletedCount": res.deleted_count}
