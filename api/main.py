"""
FastAPI main application for the Book Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import auth
from api.auth import IdentityProvider, get_current_caller
from api.config import config as api_config
from api.models import (
    BookDetailResponse, BookListResponse, BookResponse, ErrorResponse, FieldErrorResponse,
    HealthResponse, MessageResponse, ReviewResponse, SearchResponse
)
from api.query import (
    BookFilterParams, PageParams, book_filter_params, pagination_params, search_params
)
from api.serializers import (
    serialize_book, serialize_book_detail, serialize_book_page, serialize_review,
    serialize_search_page
)
from catalog.book_store import BookStore
from catalog.database import CatalogDatabase
from catalog.exceptions import CatalogError, UnauthenticatedError
from catalog.models import CallerIdentity
from catalog.review_store import ReviewStore
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)

# Set during lifespan startup
db_manager: Optional[CatalogDatabase] = None
book_store: Optional[BookStore] = None
review_store: Optional[ReviewStore] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global db_manager, book_store, review_store

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Catalog API")

    try:
        db_manager = CatalogDatabase(
            connection_url=config.mongodb_url,
            database_name=config.mongodb_database,
            books_collection=config.books_collection,
            reviews_collection=config.reviews_collection,
            users_collection=config.users_collection
        )
        await db_manager.connect()

        review_store = ReviewStore(db_manager)
        book_store = BookStore(db_manager, review_store)
        auth.identity_provider = IdentityProvider(db_manager.users)

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    yield

    logger.info("Shutting down Book Catalog API")
    await db_manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    summary=api_config.api_description,
    description="""
    Book catalog with user reviews.

    ## Features

    * **Books**: create, list with author/genre filters, full-text search
    * **Reviews**: one review per user and book, editable only by its author
    * **Ratings**: average rating computed from current reviews
    * **Pagination**: `page` and `limit` on every listing

    ## Authentication

    Creating books and writing reviews require an API key:

    ```
    Authorization: Bearer your_api_key_here
    ```
    """,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


def get_book_store() -> BookStore:
    if book_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available"
        )
    return book_store


def get_review_store() -> ReviewStore:
    if review_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available"
        )
    return review_store


# Exception handlers
@app.exception_handler(CatalogError)
async def catalog_exception_handler(request, exc: CatalogError):
    """Render domain errors with their status code and field list."""
    errors = getattr(exc, "errors", None)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            status_code=exc.status_code,
            errors=[FieldErrorResponse(**e) for e in errors] if errors else None
        ).model_dump(exclude_none=True),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    """Malformed request bodies are reported like domain validation errors."""
    errors = [
        FieldErrorResponse(
            field=".".join(str(part) for part in error["loc"] if part != "body") or "body",
            message=error["msg"]
        )
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Validation failed",
            status_code=status.HTTP_400_BAD_REQUEST,
            errors=errors
        ).model_dump(exclude_none=True)
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.detail,
            status_code=exc.status_code
        ).model_dump(exclude_none=True),
        headers=exc.headers
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump(exclude_none=True)
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if db_manager:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=api_config.api_version,
        database_status=db_status
    )


# Books endpoints
@app.post(
    "/api/books",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"]
)
async def create_book(
    payload: Dict[str, Any] = Body(...),
    caller: CallerIdentity = Depends(get_current_caller),
    store: BookStore = Depends(get_book_store)
):
    """
    Create a book.

    - **title**, **author**, **genre**, **description**: required text
    - **publishedYear**: optional, 1000 to the current year
    - **isbn**: optional, unique across books
    """
    book = await store.create_book(payload)
    logger.info("Book created via API", book_id=book.id, user_id=caller.user_id)
    return serialize_book(book)


@app.get("/api/books", response_model=BookListResponse, tags=["Books"])
async def list_books(
    filters: BookFilterParams = Depends(book_filter_params),
    pagination: PageParams = Depends(pagination_params),
    store: BookStore = Depends(get_book_store)
):
    """
    List books in creation order.

    - **author**: case-insensitive author filter
    - **genre**: case-insensitive genre filter
    - **page**: page number (starts from 1)
    - **limit**: books per page
    """
    result = await store.list_books(
        author=filters.author,
        genre=filters.genre,
        page=pagination.page,
        limit=pagination.limit
    )
    return serialize_book_page(result)


@app.get("/api/books/search", response_model=SearchResponse, tags=["Books"])
async def search_books(
    q: Optional[str] = Depends(search_params),
    pagination: PageParams = Depends(pagination_params),
    store: BookStore = Depends(get_book_store)
):
    """
    Search titles and authors, best match first.

    - **q**: search text (required)
    """
    result = await store.search_books(q, page=pagination.page, limit=pagination.limit)
    return serialize_search_page(result)


@app.get("/api/books/{book_id}", response_model=BookDetailResponse, tags=["Books"])
async def get_book(
    book_id: str,
    pagination: PageParams = Depends(pagination_params),
    store: BookStore = Depends(get_book_store)
):
    """
    Get a book with its average rating and a page of reviews, newest first.

    - **page**, **limit**: paginate the reviews
    """
    detail = await store.get_book(book_id, page=pagination.page, limit=pagination.limit)
    return serialize_book_detail(detail)


# Reviews endpoints
@app.post(
    "/api/books/{book_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Reviews"]
)
async def create_review(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    caller: CallerIdentity = Depends(get_current_caller),
    store: ReviewStore = Depends(get_review_store)
):
    """
    Review a book. Each user may review a book once.

    - **rating**: integer 1-5
    - **comment**: required text
    """
    review = await store.create_review(
        book_id, caller.user_id, payload.get("rating"), payload.get("comment")
    )
    return serialize_review(review)


@app.put("/api/reviews/{review_id}", response_model=ReviewResponse, tags=["Reviews"])
async def update_review(
    review_id: str,
    payload: Dict[str, Any] = Body(...),
    caller: CallerIdentity = Depends(get_current_caller),
    store: ReviewStore = Depends(get_review_store)
):
    """Update rating and comment of your own review."""
    review = await store.update_review(
        review_id, caller.user_id, payload.get("rating"), payload.get("comment")
    )
    return serialize_review(review)


@app.delete("/api/reviews/{review_id}", response_model=MessageResponse, tags=["Reviews"])
async def delete_review(
    review_id: str,
    caller: CallerIdentity = Depends(get_current_caller),
    store: ReviewStore = Depends(get_review_store)
):
    """Delete your own review."""
    result = await store.delete_review(review_id, caller.user_id)
    return MessageResponse(**result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
