from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from errors import InvalidIdentifier


def encode(native: ObjectId) -> str:
    return str(native)


def decode(id_str: Any) -> ObjectId:
    """Parse a wire id into an ObjectId, raising InvalidIdentifier on junk."""
    if isinstance(id_str, ObjectId):
        return id_str
    if not isinstance(id_str, str):
        raise InvalidIdentifier()
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidIdentifier()


def decode_or_none(id_str: Any) -> Optional[ObjectId]:
    # Weak references (materialId) are stored as null when unparseable
    try:
        return decode(id_str)
    except InvalidIdentifier:
        return None


def encode_or_none(native: Optional[ObjectId]) -> Optional[str]:
    return encode(native) if native is not None else None
