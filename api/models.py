"""
API response schemas for the FastAPI application.
Field names are rendered in camelCase through aliases.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class APIModel(BaseModel):
    """Base for response models: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(populate_by_name=True)


class BookResponse(APIModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: str = Field(..., description="Book genre")
    description: str = Field(..., description="Book description")
    published_year: Optional[int] = Field(None, alias="publishedYear", description="Year of publication")
    isbn: Optional[str] = Field(None, description="ISBN")
    average_rating: float = Field(0, alias="averageRating", description="Mean review rating, one decimal")
    review_count: int = Field(0, alias="reviewCount", description="Number of reviews")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")


class SearchResultResponse(BookResponse):
    """Book matched by a text search."""
    score: float = Field(..., description="Relevance score, higher is better")


class BookListResponse(APIModel):
    """Response model for book list with pagination."""
    items: List[BookResponse] = Field(..., description="Books on this page")
    current_page: int = Field(..., alias="currentPage", description="Current page number")
    total_pages: int = Field(..., alias="totalPages", description="Total number of pages")
    total_items: int = Field(..., alias="totalItems", description="Total number of matching books")


class SearchResponse(BookListResponse):
    """Response model for search results, best match first."""
    items: List[SearchResultResponse] = Field(..., description="Matching books on this page")


class ReviewUserResponse(APIModel):
    """Owner of a review."""
    id: str = Field(..., description="User identifier")
    username: Optional[str] = Field(None, description="Display name")


class ReviewResponse(APIModel):
    """Review response model for API."""
    id: str = Field(..., description="Unique review identifier")
    book: str = Field(..., description="Reviewed book identifier")
    user: ReviewUserResponse = Field(..., description="Review owner")
    rating: int = Field(..., ge=1, le=5, description="Rating (1-5)")
    comment: str = Field(..., description="Review text")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp")


class ReviewPageResponse(APIModel):
    """One page of a book's reviews."""
    items: List[ReviewResponse] = Field(..., description="Reviews on this page, newest first")
    current_page: int = Field(..., alias="currentPage", description="Current review page")
    total_pages: int = Field(..., alias="totalPages", description="Total review pages")
    total_reviews: int = Field(..., alias="totalReviews", description="Total reviews of the book")


class BookDetailResponse(APIModel):
    """Single book with paginated reviews."""
    book: BookResponse
    reviews: ReviewPageResponse


class MessageResponse(APIModel):
    """Acknowledgment for mutations without a body."""
    message: str


class FieldErrorResponse(APIModel):
    """One violated field."""
    field: str
    message: str


class ErrorResponse(APIModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")
    errors: Optional[List[FieldErrorResponse]] = Field(None, description="Violated fields")


class HealthResponse(APIModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
