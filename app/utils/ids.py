"""ObjectId parsing for path parameters."""
from bson import ObjectId
from bson.errors import InvalidId

from app.errors import NotFoundError


def parse_object_id(value: str, entity: str = "Document") -> ObjectId:
    """
    Parse a string ID, treating a malformed ID like a missing document.

    Raises:
        NotFoundError: If ``value`` is not a valid ObjectId
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found")
