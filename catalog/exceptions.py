"""
Domain errors raised by the catalog stores.

Each error carries the HTTP status the API layer renders it with, so the
stores never import anything from the web framework.
"""

from typing import Dict, List

from pydantic import ValidationError as PydanticValidationError


class CatalogError(Exception):
    """Base class for all catalog domain errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Malformed or out-of-range input; lists every violated field."""

    status_code = 400

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Collect all field errors reported by a pydantic model."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "body"
            ctx_error = (error.get("ctx") or {}).get("error")
            errors.append({
                "field": field,
                "message": str(ctx_error) if ctx_error else error["msg"],
            })
        return cls(errors)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


class NotFoundError(CatalogError):
    """Referenced entity does not exist."""

    status_code = 404


class ConflictError(CatalogError):
    """Uniqueness violation (duplicate ISBN, duplicate review)."""

    status_code = 409


class ForbiddenError(CatalogError):
    """Caller is authenticated but does not own the resource."""

    status_code = 403


class UnauthenticatedError(CatalogError):
    """No or invalid caller identity."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
