"""Helpers for turning MongoDB documents into JSON-friendly dicts."""

from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what pymongo hands back from the database."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def to_object_id(value: Any) -> ObjectId | None:
    """Parse an id string, returning None for anything that is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict | None) -> dict | None:
    """Rename ``_id`` to ``id`` and stringify ObjectIds and datetimes, recursively."""
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = d.pop("_id")
    return serialize_value(d)
