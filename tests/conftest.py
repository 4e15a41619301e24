"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId


class FakeCursor:
    """Motor-like cursor over a fixed list of documents."""

    def __init__(self, documents):
        self.documents = list(documents)
        self.sort_spec = None
        self.skip_count = 0
        self.limit_count = 0

    def sort(self, *args):
        self.sort_spec = args[0] if len(args) == 1 else list(args)
        return self

    def skip(self, count):
        self.skip_count = count
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _selected(self):
        docs = self.documents[self.skip_count:]
        return docs[:self.limit_count] if self.limit_count else docs

    async def to_list(self, length=None):
        return self._selected()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._selected():
            yield doc


def _matches(doc, query):
    """Equality and $in matching; server-side operators ($regex, $text) pass."""
    for field, condition in query.items():
        if field.startswith("$"):
            continue
        if isinstance(condition, dict):
            if "$in" in condition and doc.get(field) not in condition["$in"]:
                return False
            continue
        if doc.get(field) != condition:
            return False
    return True


def mock_collection(documents=()):
    """
    Mocked Motor collection. ``find`` filters the given documents and
    returns a FakeCursor; write methods are AsyncMocks to configure per test.
    """
    collection = MagicMock()
    collection.documents = list(documents)
    collection.cursors = []

    def _find(query=None, projection=None):
        cursor = FakeCursor(doc for doc in collection.documents if _matches(doc, query or {}))
        collection.cursors.append(cursor)
        return cursor

    collection.find = MagicMock(side_effect=_find)
    collection.find_one = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(
        side_effect=lambda query, **kwargs: len([d for d in collection.documents if _matches(d, query)])
    )
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=0))
    return collection


@pytest.fixture
def mock_catalog_db():
    """Catalog database with mocked books, reviews and users collections."""
    db = MagicMock()
    db.books = mock_collection()
    db.reviews = mock_collection()
    db.users = mock_collection()
    return db


@pytest.fixture
def now():
    return datetime(2024, 5, 1, 12, 0, 0)


def make_book_doc(title="Dune", author="Frank Herbert", created_at=None, **extra):
    """Stored book document as MongoDB returns it."""
    created_at = created_at or datetime(2024, 1, 1)
    doc = {
        "_id": ObjectId(),
        "title": title,
        "author": author,
        "genre": "Science Fiction",
        "description": "Spice, sand and politics.",
        "created_at": created_at,
        "updated_at": created_at,
    }
    doc.update(extra)
    return doc


def make_review_doc(book_id, user_id, rating=4, comment="Great read", created_at=None):
    """Stored review document as MongoDB returns it."""
    created_at = created_at or datetime(2024, 2, 1)
    return {
        "_id": ObjectId(),
        "book": book_id,
        "user": user_id,
        "rating": rating,
        "comment": comment,
        "created_at": created_at,
        "updated_at": created_at,
    }


@pytest.fixture
def book_doc():
    return make_book_doc(isbn="9780441013593", published_year=1965)


@pytest.fixture
def user_doc():
    return {"_id": ObjectId(), "username": "paul", "is_active": True}


@pytest.fixture
def other_user_doc():
    return {"_id": ObjectId(), "username": "chani", "is_active": True}


@pytest.fixture
def review_docs(book_doc, user_doc, other_user_doc):
    base = datetime(2024, 3, 1)
    return [
        make_review_doc(book_doc["_id"], str(user_doc["_id"]), rating=4, created_at=base),
        make_review_doc(book_doc["_id"], str(other_user_doc["_id"]), rating=5,
                        comment="Masterpiece", created_at=base + timedelta(days=1)),
    ]


@pytest.fixture
def make_book():
    return make_book_doc


@pytest.fixture
def make_review():
    return make_review_doc


@pytest.fixture
def make_collection():
    return mock_collection
