"""
FastAPI RESTful API for the Book Catalog service.

This module provides a REST API for:
- Book creation, filtered listing and full-text search
- Book detail with paginated reviews and average rating
- Owner-only review updates and deletion
- API key-based caller identification
"""
