"""
Book store: creation with ISBN uniqueness, filtered listing, detail view with
paginated reviews, and relevance-ranked text search.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from catalog.aggregation import paginate, validate_page
from catalog.database import CatalogDatabase
from catalog.documents import book_from_document, to_object_id
from catalog.exceptions import ConflictError, NotFoundError, ValidationError
from catalog.models import Book, BookCreate, BookDetail, BookPage
from catalog.review_store import ReviewStore

logger = structlog.get_logger(__name__)

BOOK_SORT = [("created_at", ASCENDING), ("_id", ASCENDING)]
TEXT_SCORE = {"$meta": "textScore"}


class BookStore:
    """Persistence and query rules for books."""

    def __init__(self, db: CatalogDatabase, review_store: Optional[ReviewStore] = None):
        self.db = db
        self.books = db.books
        self.review_store = review_store or ReviewStore(db)

    async def create_book(self, fields: Dict[str, Any]) -> Book:
        """
        Validate and persist a new book.

        Args:
            fields: Raw book fields (title, author, genre, description,
                publishedYear, isbn)

        Returns:
            The stored book with no reviews

        Raises:
            ValidationError: one or more fields are invalid, all are listed
            ConflictError: another book already has this ISBN
        """
        try:
            data = BookCreate.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e)

        doc = data.model_dump(exclude_none=True)
        now = datetime.utcnow()
        doc["created_at"] = now
        doc["updated_at"] = now

        try:
            result = await self.books.insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Duplicate ISBN rejected", isbn=data.isbn)
            raise ConflictError(f"A book with ISBN '{data.isbn}' already exists")
        except Exception as e:
            logger.error("Failed to create book", title=data.title, error=str(e))
            raise

        doc["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), title=data.title)
        return book_from_document(doc)

    async def list_books(
        self,
        author: Optional[str] = None,
        genre: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> BookPage:
        """
        List books in creation order, optionally filtered.

        Args:
            author: Case-insensitive substring of the author
            genre: Case-insensitive substring of the genre
            page: Page number (starts from 1)
            limit: Books per page
        """
        page_request = validate_page(page, limit)

        filter_query = {}
        if author:
            filter_query["author"] = {"$regex": re.escape(author), "$options": "i"}
        if genre:
            filter_query["genre"] = {"$regex": re.escape(genre), "$options": "i"}

        try:
            total = await self.books.count_documents(filter_query)
            info = paginate(total, page_request.page, page_request.limit)

            items = []
            if info.take:
                cursor = self.books.find(filter_query).sort(BOOK_SORT).skip(info.skip).limit(info.take)
                docs = await cursor.to_list(length=info.take)
                items = await self._with_ratings(docs)

        except Exception as e:
            logger.error("Failed to list books", author=author, genre=genre, error=str(e))
            raise

        return BookPage(
            items=items,
            current_page=info.current_page,
            total_pages=info.total_pages,
            total_items=info.total_items,
        )

    async def get_book(self, book_id: str, page: int = 1, limit: int = 10) -> BookDetail:
        """
        Get a book with one page of its reviews, newest first.

        The review page has its own pagination figures; the average rating
        covers every review of the book.

        Raises:
            NotFoundError: no book with this id
        """
        validate_page(page, limit)
        book_oid = to_object_id(book_id, "Book")

        doc = await self.books.find_one({"_id": book_oid})
        if doc is None:
            raise NotFoundError("Book not found")

        ratings = await self.review_store.ratings_for_books([book_oid])
        reviews = await self.review_store.list_reviews(book_oid, page, limit)

        return BookDetail(
            book=book_from_document(doc, ratings.get(str(book_oid), [])),
            reviews=reviews,
        )

    async def search_books(self, query: Optional[str], page: int = 1, limit: int = 10) -> BookPage:
        """
        Full-text search over title and author, best match first.

        Raises:
            ValidationError: query missing or blank
        """
        search_text = (query or "").strip()
        if not search_text:
            raise ValidationError.for_field("q", "Search query is required")
        page_request = validate_page(page, limit)

        filter_query = {"$text": {"$search": search_text}}

        try:
            total = await self.books.count_documents(filter_query)
            info = paginate(total, page_request.page, page_request.limit)

            items = []
            if info.take:
                cursor = (
                    self.books.find(filter_query, {"score": TEXT_SCORE})
                    .sort([("score", TEXT_SCORE)] + BOOK_SORT)
                    .skip(info.skip)
                    .limit(info.take)
                )
                docs = await cursor.to_list(length=info.take)
                items = await self._with_ratings(docs)

        except Exception as e:
            logger.error("Failed to search books", query=search_text, error=str(e))
            raise

        return BookPage(
            items=items,
            current_page=info.current_page,
            total_pages=info.total_pages,
            total_items=info.total_items,
        )

    async def _with_ratings(self, docs: List[Dict[str, Any]]) -> List[Book]:
        """Attach read-time aggregates using one ratings query per page."""
        ratings = await self.review_store.ratings_for_books(doc["_id"] for doc in docs)
        return [book_from_document(doc, ratings.get(str(doc["_id"]), [])) for doc in docs]
