"""
Mapping between MongoDB documents and catalog domain models.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from bson import ObjectId
from bson.errors import InvalidId

from catalog.aggregation import average_rating
from catalog.exceptions import NotFoundError
from catalog.models import Book, Review


def to_object_id(value: Any, entity: str = "Resource") -> ObjectId:
    """
    Convert an external identifier to an ObjectId.

    Malformed identifiers cannot match any record, so they are reported the
    same way as unknown ones.
    """
    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise NotFoundError(f"{entity} not found")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found")


def book_from_document(doc: Dict[str, Any], ratings: Iterable[int] = ()) -> Book:
    """Build a Book from its stored document and the ratings of its reviews."""
    ratings = list(ratings)
    return Book(
        id=str(doc["_id"]),
        title=doc["title"],
        author=doc["author"],
        genre=doc["genre"],
        description=doc["description"],
        published_year=doc.get("published_year"),
        isbn=doc.get("isbn"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
        average_rating=average_rating(ratings),
        review_count=len(ratings),
        score=doc.get("score"),
    )


def review_from_document(
    doc: Dict[str, Any],
    usernames: Optional[Mapping[str, str]] = None
) -> Review:
    """Build a Review, attaching the owner's username when known."""
    user_id = str(doc["user"])
    return Review(
        id=str(doc["_id"]),
        book_id=str(doc["book"]),
        user_id=user_id,
        username=(usernames or {}).get(user_id),
        rating=doc["rating"],
        comment=doc["comment"],
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )
