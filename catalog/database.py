"""
MongoDB database utilities for async operations.
Handles connection, indexing and health checks for the catalog collections.
"""

from typing import Any, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.errors import ConnectionFailure

logger = structlog.get_logger(__name__)

BOOK_TEXT_INDEX = "book_text_search"
REVIEW_UNIQUE_INDEX = "unique_review_per_book_and_user"


class CatalogDatabase:
    """
    Async MongoDB manager for the catalog.
    Owns the client and exposes the books, reviews and users collections.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        books_collection: str = "books",
        reviews_collection: str = "reviews",
        users_collection: str = "users"
    ):
        """
        Initialize the database manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            books_collection: Name of the books collection
            reviews_collection: Name of the reviews collection
            users_collection: Name of the users collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_names = {
            "books": books_collection,
            "reviews": reviews_collection,
            "users": users_collection,
        }
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.books: Optional[AsyncIOMotorCollection] = None
        self.reviews: Optional[AsyncIOMotorCollection] = None
        self.users: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and ensure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.books = self.database[self.collection_names["books"]]
            self.reviews = self.database[self.collection_names["reviews"]]
            self.users = self.database[self.collection_names["users"]]

            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes backing search, filtering and the uniqueness rules.
        The unique indexes are what make duplicate inserts fail atomically.
        """
        try:
            # Relevance-ranked search over title and author
            await self.books.create_index(
                [("title", TEXT), ("author", TEXT)],
                name=BOOK_TEXT_INDEX
            )

            # ISBN unique only when present
            await self.books.create_index(
                "isbn",
                unique=True,
                partialFilterExpression={"isbn": {"$type": "string"}}
            )

            await self.books.create_index("author")
            await self.books.create_index("genre")
            await self.books.create_index([("created_at", ASCENDING), ("_id", ASCENDING)])

            # One review per (book, user)
            await self.reviews.create_index(
                [("book", ASCENDING), ("user", ASCENDING)],
                unique=True,
                name=REVIEW_UNIQUE_INDEX
            )

            # Newest-first review listing per book
            await self.reviews.create_index([("book", ASCENDING), ("created_at", DESCENDING)])

            await self.users.create_index("username", unique=True)
            await self.users.create_index("api_key_hash", unique=True)

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            books_count = await self.books.estimated_document_count()
            reviews_count = await self.reviews.estimated_document_count()

            return {
                "status": "healthy",
                "books_count": books_count,
                "reviews_count": reviews_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
