"""Conversion between MongoDB values and the JSON text carried by tool calls.

Results are rendered as relaxed MongoDB Extended JSON so that BSON types such
as ObjectId and datetime survive the trip to the caller. Incoming records go
the other way, so an identifier returned by one call can be used as a filter
in the next.
"""

import json
import logging
from typing import Any

from bson import json_util

logger = logging.getLogger(__name__)


def serialize_mongodb_result(data: Any) -> str:
    """Serialize MongoDB query results to JSON string with BSON type support.

    Args:
        data: MongoDB result data (can be dict, list, or BSON types)

    Returns:
        JSON formatted string representation of the data with proper indentation

    Raises:
        TypeError: If data contains non-serializable types

    Example:
        >>> from bson import ObjectId
        >>> serialize_mongodb_result({"insertedId": ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")})
        '{\\n  "insertedId": {\\n    "$oid": "65a1f0c2e4b0a1b2c3d4e5f6"\\n  }\\n}'
    """
    try:
        # json_util also covers floats: NaN and Infinity become {"$numberDouble": ...}
        return json_util.dumps(data, indent=2)

    except TypeError as e:
        logger.error(f"Failed to serialize MongoDB result: {e}")
        raise


def deserialize_mongodb_result(json_str: str) -> Any:
    """Deserialize JSON string to MongoDB types using BSON utilities.

    Raises:
        json.JSONDecodeError: If JSON is malformed
    """
    try:
        return json.loads(json_str, object_hook=json_util.object_hook)

    except json.JSONDecodeError as e:
        logger.error(f"Failed to deserialize JSON: {e}")
        raise


def decode_extended_json(value: Any) -> Any:
    """Turn Extended JSON markers inside an incoming record into BSON values.

    ``{"_id": {"$oid": "..."}}`` becomes ``{"_id": ObjectId("...")}`` and
    ``{"$date": ...}`` becomes a datetime. Plain values and query operators
    such as ``$gt`` are left untouched, and key order is preserved.
    """
    return deserialize_mongodb_result(json_util.dumps(value))
