"""
Review store: creation with per-(book, user) uniqueness, owner-only update
and delete, and newest-first listing scoped to a book.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List

import structlog
from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from catalog.aggregation import paginate, validate_page
from catalog.database import CatalogDatabase
from catalog.documents import review_from_document, to_object_id
from catalog.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, UnauthenticatedError, ValidationError
)
from catalog.models import Review, ReviewInput, ReviewPage

logger = structlog.get_logger(__name__)

REVIEW_SORT = [("created_at", DESCENDING), ("_id", DESCENDING)]


def _validate_review(rating, comment) -> ReviewInput:
    try:
        return ReviewInput(rating=rating, comment=comment)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


def _require_caller(caller_id: str) -> None:
    if not caller_id:
        raise UnauthenticatedError()


class ReviewStore:
    """Persistence and authorization rules for reviews."""

    def __init__(self, db: CatalogDatabase):
        self.db = db
        self.books = db.books
        self.reviews = db.reviews
        self.users = db.users

    async def create_review(self, book_id: str, caller_id: str, rating, comment) -> Review:
        """
        Create a review owned by the caller.

        The unique (book, user) index turns the insert itself into the
        uniqueness check, so concurrent creators for one pair cannot both
        succeed.

        Raises:
            ValidationError: rating outside 1-5 or blank comment
            NotFoundError: the book does not exist
            ConflictError: the caller already reviewed this book
        """
        _require_caller(caller_id)
        data = _validate_review(rating, comment)
        book_oid = to_object_id(book_id, "Book")

        if await self.books.find_one({"_id": book_oid}, {"_id": 1}) is None:
            raise NotFoundError("Book not found")

        now = datetime.utcnow()
        doc = {
            "book": book_oid,
            "user": caller_id,
            "rating": data.rating,
            "comment": data.comment,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.reviews.insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Duplicate review rejected", book_id=str(book_oid), user_id=caller_id)
            raise ConflictError("You have already reviewed this book")
        except Exception as e:
            logger.error("Failed to create review", book_id=str(book_oid), error=str(e))
            raise

        doc["_id"] = result.inserted_id
        logger.info("Review created", review_id=str(result.inserted_id), book_id=str(book_oid))

        usernames = await self._usernames([caller_id])
        return review_from_document(doc, usernames)

    async def update_review(self, review_id: str, caller_id: str, rating, comment) -> Review:
        """
        Replace rating and comment of a review owned by the caller.

        Ownership is part of the update filter, so no other writer can slip
        in between the check and the write.

        Raises:
            ValidationError: rating outside 1-5 or blank comment
            NotFoundError: unknown review
            ForbiddenError: caller does not own the review
        """
        _require_caller(caller_id)
        data = _validate_review(rating, comment)
        review_oid = to_object_id(review_id, "Review")

        doc = await self.reviews.find_one_and_update(
            {"_id": review_oid, "user": caller_id},
            {"$set": {
                "rating": data.rating,
                "comment": data.comment,
                "updated_at": datetime.utcnow(),
            }},
            return_document=ReturnDocument.AFTER
        )

        if doc is None:
            await self._raise_missing_or_forbidden(review_oid, caller_id, "update")

        logger.info("Review updated", review_id=str(review_oid))
        usernames = await self._usernames([caller_id])
        return review_from_document(doc, usernames)

    async def delete_review(self, review_id: str, caller_id: str) -> Dict[str, str]:
        """
        Permanently delete a review owned by the caller.

        Raises:
            NotFoundError: unknown review
            ForbiddenError: caller does not own the review
        """
        _require_caller(caller_id)
        review_oid = to_object_id(review_id, "Review")

        result = await self.reviews.delete_one({"_id": review_oid, "user": caller_id})
        if result.deleted_count == 0:
            await self._raise_missing_or_forbidden(review_oid, caller_id, "delete")

        logger.info("Review deleted", review_id=str(review_oid))
        return {"message": "Review deleted successfully"}

    async def list_reviews(self, book_id, page: int = 1, limit: int = 10) -> ReviewPage:
        """One page of a book's reviews, newest first."""
        page_request = validate_page(page, limit)
        book_oid = to_object_id(book_id, "Book")
        query = {"book": book_oid}

        total = await self.reviews.count_documents(query)
        info = paginate(total, page_request.page, page_request.limit)

        docs = []
        if info.take:
            cursor = self.reviews.find(query).sort(REVIEW_SORT).skip(info.skip).limit(info.take)
            docs = await cursor.to_list(length=info.take)

        usernames = await self._usernames(doc["user"] for doc in docs)
        return ReviewPage(
            items=[review_from_document(doc, usernames) for doc in docs],
            current_page=info.current_page,
            total_pages=info.total_pages,
            total_reviews=info.total_items,
        )

    async def ratings_for_books(self, book_ids: Iterable[ObjectId]) -> Dict[str, List[int]]:
        """
        Current ratings of every review for the given books.

        Returns:
            Mapping of book id (string) to the ratings of its reviews
        """
        book_ids = list(book_ids)
        ratings: Dict[str, List[int]] = defaultdict(list)
        if not book_ids:
            return ratings

        cursor = self.reviews.find(
            {"book": {"$in": book_ids}},
            {"book": 1, "rating": 1}
        ).sort("_id", ASCENDING)
        async for doc in cursor:
            ratings[str(doc["book"])].append(doc["rating"])
        return ratings

    async def _raise_missing_or_forbidden(self, review_oid: ObjectId, caller_id: str, action: str) -> None:
        existing = await self.reviews.find_one({"_id": review_oid}, {"user": 1})
        if existing is None:
            raise NotFoundError("Review not found")
        logger.warning(
            "Review ownership check failed",
            review_id=str(review_oid),
            user_id=caller_id,
            action=action
        )
        raise ForbiddenError(f"Not authorized to {action} this review")

    async def _usernames(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Resolve display names for caller ids from the users collection."""
        object_ids = {ObjectId(user_id) for user_id in user_ids if ObjectId.is_valid(user_id)}
        if not object_ids:
            return {}

        cursor = self.users.find({"_id": {"$in": list(object_ids)}}, {"username": 1})
        return {str(doc["_id"]): doc["username"] async for doc in cursor}
