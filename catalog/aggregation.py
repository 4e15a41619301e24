"""
Read-time aggregation: average rating and pagination arithmetic.

Average rating is never stored. It is recomputed from the current reviews of
a book on every read, so creating, updating or deleting a review needs no
invalidation step.
"""

from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from catalog.exceptions import ValidationError
from catalog.models import PageRequest

RATING_PRECISION = Decimal("0.1")


class PageInfo(BaseModel):
    """Pagination figures for one page of a larger result set."""

    current_page: int
    total_pages: int
    total_items: int
    skip: int
    take: int


def _rating_of(review: Any) -> int:
    if isinstance(review, Mapping):
        return review["rating"]
    if isinstance(review, int):
        return review
    return review.rating


def average_rating(reviews: Iterable[Any]) -> float:
    """
    Mean rating rounded to one decimal place, half-up.

    Args:
        reviews: Review models, mappings with a ``rating`` key, or bare ints

    Returns:
        0.0 for no reviews, otherwise the rounded mean
    """
    ratings = [_rating_of(review) for review in reviews]
    if not ratings:
        return 0.0

    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(RATING_PRECISION, rounding=ROUND_HALF_UP))


def validate_page(page: int, limit: int) -> PageRequest:
    """Validate pagination input, reporting both fields together."""
    try:
        return PageRequest(page=page, limit=limit)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


def total_pages(total: int, limit: int) -> int:
    return -(-total // limit)


def paginate(total: int, page: int, limit: int) -> PageInfo:
    """
    Compute pagination figures. Pages past the end are valid and simply
    select nothing.

    ``take`` is how many items the page actually holds, never more than
    ``total``. Callers skip the query when it is 0, so an arbitrarily large
    page or limit never reaches the database.
    """
    skip = (page - 1) * limit
    return PageInfo(
        current_page=page,
        total_pages=total_pages(total, limit),
        total_items=total,
        skip=skip,
        take=max(0, min(limit, total - skip)),
    )
