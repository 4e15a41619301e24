"""
Pydantic models for catalog input validation and domain entities.
Input models collect every field violation in one pass; domain models are
what the stores hand back to callers.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

MIN_PUBLISHED_YEAR = 1000
MIN_RATING = 1
MAX_RATING = 5


def _reject_bool(value, field_name: str):
    # JSON true/false would otherwise coerce to 1/0
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    return value


class BookCreate(BaseModel):
    """Fields accepted when creating a book."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: str = Field(..., description="Book genre")
    description: str = Field(..., description="Book description")
    published_year: Optional[int] = Field(None, alias="publishedYear", description="Year of publication")
    isbn: Optional[str] = Field(None, description="ISBN, unique when present")

    @field_validator("title", "author", "genre", "description")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        """Trim text fields and reject empty values."""
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("published_year", mode="before")
    @classmethod
    def reject_boolean_year(cls, v):
        return _reject_bool(v, "publishedYear")

    @field_validator("published_year")
    @classmethod
    def validate_published_year(cls, v: Optional[int]) -> Optional[int]:
        """Ensure the year lies between 1000 and the current year."""
        if v is None:
            return v
        current_year = datetime.utcnow().year
        if v < MIN_PUBLISHED_YEAR or v > current_year:
            raise ValueError(f"publishedYear must be between {MIN_PUBLISHED_YEAR} and {current_year}")
        return v

    @field_validator("isbn")
    @classmethod
    def normalize_isbn(cls, v: Optional[str]) -> Optional[str]:
        """Blank ISBNs are treated as absent so they never collide."""
        if v is None:
            return v
        return v.strip() or None


class ReviewInput(BaseModel):
    """Rating and comment supplied when creating or updating a review."""

    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Rating (1-5)")
    comment: str = Field(..., description="Review text")

    @field_validator("rating", mode="before")
    @classmethod
    def reject_boolean_rating(cls, v):
        return _reject_bool(v, "rating")

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("comment must not be empty")
        return v


class PageRequest(BaseModel):
    """Validated page/limit pair."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class CallerIdentity(BaseModel):
    """Authenticated caller as supplied by the identity provider."""

    user_id: str
    username: str


class Book(BaseModel):
    """Book entity with its read-time aggregates."""

    id: str
    title: str
    author: str
    genre: str
    description: str
    published_year: Optional[int] = None
    isbn: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    average_rating: float = 0.0
    review_count: int = 0
    score: Optional[float] = None


class Review(BaseModel):
    """Review entity; username is resolved on read, never stored."""

    id: str
    book_id: str
    user_id: str
    username: Optional[str] = None
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime


class BookPage(BaseModel):
    items: List[Book]
    current_page: int
    total_pages: int
    total_items: int


class ReviewPage(BaseModel):
    items: List[Review]
    current_page: int
    total_pages: int
    total_reviews: int


class BookDetail(BaseModel):
    """A book together with one page of its reviews."""

    book: Book
    reviews: ReviewPage
