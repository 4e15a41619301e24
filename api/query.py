"""
Query parameter parsing for the API.

Turns raw query strings into typed store inputs. Only type coercion happens
here; range rules (page >= 1, limit >= 1, non-empty search) are enforced by
the catalog stores.
"""

from typing import Optional

from fastapi import Query
from pydantic import BaseModel, Field

from utilities.config import config


class PageParams(BaseModel):
    """Page and limit as handed to the stores."""
    page: int = Field(..., description="Page number")
    limit: int = Field(..., description="Items per page")


class BookFilterParams(BaseModel):
    """Optional author/genre filters for book listings."""
    author: Optional[str] = Field(None, description="Author substring")
    genre: Optional[str] = Field(None, description="Genre substring")


def coerce_int(value: Optional[str], default: int) -> int:
    """
    Parse an integer query value, falling back to the default when the value
    is absent or not numeric.
    """
    if value is None:
        return default
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return default


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def pagination_params(
    page: Optional[str] = Query(None, description="Page number (starts from 1)"),
    limit: Optional[str] = Query(None, description="Items per page")
) -> PageParams:
    return PageParams(
        page=coerce_int(page, config.default_page),
        limit=coerce_int(limit, config.default_limit),
    )


def book_filter_params(
    author: Optional[str] = Query(None, description="Filter by author (case-insensitive)"),
    genre: Optional[str] = Query(None, description="Filter by genre (case-insensitive)")
) -> BookFilterParams:
    return BookFilterParams(author=_blank_to_none(author), genre=_blank_to_none(genre))


def search_params(
    q: Optional[str] = Query(None, description="Search text matched against title and author")
) -> Optional[str]:
    return q
