"""
MongoDB access for the Form Builder API.

Routes receive the database through the `get_db` dependency instead of a
module-level handle, so tests can swap in another database.
"""

import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "formbuilder")


@lru_cache(maxsize=1)
def get_client() -> MongoClient:
    logger.info("Connecting to MongoDB database %s", DATABASE_NAME)
    return MongoClient(DATABASE_URL)


def get_db() -> Database:
    """FastAPI dependency returning the application database."""
    return get_client()[DATABASE_NAME]


def ensure_indexes(db: Database) -> None:
    db["submission"].create_index([("formId", ASCENDING), ("submittedAt", DESCENDING)])


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id from a URL; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a stored document JSON friendly (ObjectId -> str)."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            value = str(value)
        out[key] = value
    return out


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document and return its id as a string."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(mode="python")
    else:
        doc = dict(data)
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
