"""
Conversion from catalog domain models to API response models.

Pure functions; the storage representation never reaches the response.
"""

from catalog.models import Book, BookDetail, BookPage, Review, ReviewPage
from api.models import (
    BookDetailResponse, BookListResponse, BookResponse, ReviewPageResponse,
    ReviewResponse, ReviewUserResponse, SearchResponse, SearchResultResponse
)

BOOK_FIELDS = (
    "id", "title", "author", "genre", "description", "published_year", "isbn",
    "average_rating", "review_count", "created_at", "updated_at"
)


def serialize_book(book: Book) -> BookResponse:
    return BookResponse(**{field: getattr(book, field) for field in BOOK_FIELDS})


def serialize_search_result(book: Book) -> SearchResultResponse:
    return SearchResultResponse(
        score=book.score or 0.0,
        **{field: getattr(book, field) for field in BOOK_FIELDS}
    )


def serialize_review(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        book=review.book_id,
        user=ReviewUserResponse(id=review.user_id, username=review.username),
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def serialize_book_page(page: BookPage) -> BookListResponse:
    return BookListResponse(
        items=[serialize_book(book) for book in page.items],
        current_page=page.current_page,
        total_pages=page.total_pages,
        total_items=page.total_items,
    )


def serialize_search_page(page: BookPage) -> SearchResponse:
    return SearchResponse(
        items=[serialize_search_result(book) for book in page.items],
        current_page=page.current_page,
        total_pages=page.total_pages,
        total_items=page.total_items,
    )


def serialize_review_page(page: ReviewPage) -> ReviewPageResponse:
    return ReviewPageResponse(
        items=[serialize_review(review) for review in page.items],
        current_page=page.current_page,
        total_pages=page.total_pages,
        total_reviews=page.total_reviews,
    )


def serialize_book_detail(detail: BookDetail) -> BookDetailResponse:
    return BookDetailResponse(
        book=serialize_book(detail.book),
        reviews=serialize_review_page(detail.reviews),
    )
