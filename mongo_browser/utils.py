import re
from typing import Any
from datetime import datetime

from bson import ObjectId
from bson.decimal128 import Decimal128

_ISODATE_RE = re.compile(r'^ISODate\("(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{3})?Z)"\)$')
_OBJECTID_RE = re.compile(r'^ObjectId\("([0-9a-fA-F]{24})"\)$')


def to_jsonable(obj: Any) -> Any:
    """Recursively convert Mongo objects (e.g., ObjectId) to JSON-serializable types."""
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, Decimal128):
        # Convert Decimal128 to string to preserve precision in JSON
        return str(obj.to_decimal())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(i) for i in obj]
    return obj


def from_extended_json(obj: Any) -> Any:
    """Turn shell-style ``ISODate("...")`` / ``ObjectId("...")`` strings into BSON values."""
    if isinstance(obj, str):
        m = _ISODATE_RE.match(obj)
        if m:
            return datetime.fromisoformat(m.group(1).replace("Z", "+00:00"))
        m = _OBJECTID_RE.match(obj)
        if m:
            return ObjectId(m.group(1))
        return obj
    if isinstance(obj, dict):
        return {k: from_extended_json(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [from_extended_json(i) for i in obj]
    return obj


def bson_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, ObjectId):
        return "ObjectId"
    if isinstance(value, datetime):
        return "Date"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, Decimal128)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__
