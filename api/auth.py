"""
Caller identification for the FastAPI API.

Callers present a bearer API key. The key's hash is looked up in the users
collection and resolved to a CallerIdentity; the catalog trusts that
identity as-is for review ownership.
"""

import hashlib
import secrets
from datetime import datetime
from typing import Dict, List, Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError

from catalog.exceptions import ConflictError, UnauthenticatedError
from catalog.models import CallerIdentity

logger = structlog.get_logger(__name__)

# Missing credentials are reported as 401 by get_current_caller
security = HTTPBearer(auto_error=False)

# Set by the application lifespan once the database is connected
identity_provider: Optional["IdentityProvider"] = None


class APIKeyManager:
    """Generates and hashes API keys."""

    @staticmethod
    def generate_api_key() -> str:
        """Generate a new API key."""
        return f"bc_{secrets.token_urlsafe(32)}"

    @staticmethod
    def hash_api_key(api_key: str) -> str:
        return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class IdentityProvider:
    """Resolves API keys to caller identities using the users collection."""

    def __init__(self, users: AsyncIOMotorCollection):
        self.users = users

    async def authenticate(self, api_key: str) -> Optional[CallerIdentity]:
        """
        Resolve an API key to the active user it was issued to.

        Args:
            api_key: Raw bearer token

        Returns:
            CallerIdentity if the key is valid, None otherwise
        """
        if not api_key:
            return None

        user = await self.users.find_one({
            "api_key_hash": APIKeyManager.hash_api_key(api_key),
            "is_active": True
        })
        if user is None:
            return None

        return CallerIdentity(user_id=str(user["_id"]), username=user["username"])

    async def create_user(self, username: str) -> Dict:
        """
        Register a user and issue an API key.

        The raw key is only returned here; only its hash is stored.
        """
        api_key = APIKeyManager.generate_api_key()
        doc = {
            "username": username,
            "api_key_hash": APIKeyManager.hash_api_key(api_key),
            "is_active": True,
            "created_at": datetime.utcnow()
        }

        try:
            result = await self.users.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError(f"User '{username}' already exists")

        logger.info("User created", username=username, user_id=str(result.inserted_id))
        return {
            "user_id": str(result.inserted_id),
            "username": username,
            "api_key": api_key
        }

    async def revoke(self, username: str) -> bool:
        """
        Deactivate a user's API key.

        Returns:
            True if revoked, False if not found
        """
        result = await self.users.update_one({"username": username}, {"$set": {"is_active": False}})
        if result.modified_count > 0:
            logger.info("API key revoked", username=username)
            return True
        return False

    async def list_users(self) -> List[Dict]:
        """List users without their key hashes."""
        cursor = self.users.find({}, {"api_key_hash": 0}).sort("created_at", 1)
        return await cursor.to_list(length=None)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CallerIdentity:
    """
    Identify the caller from the Authorization header.

    Raises:
        UnauthenticatedError: header missing or key unknown/revoked
    """
    if credentials is None:
        raise UnauthenticatedError("Authentication required")

    if identity_provider is None:
        logger.error("Identity provider not configured")
        raise UnauthenticatedError("Authentication unavailable")

    caller = await identity_provider.authenticate(credentials.credentials)
    if caller is None:
        logger.warning("Invalid API key attempted", api_key=credentials.credentials[:10] + "...")
        raise UnauthenticatedError("Invalid API key")

    return caller
