"""
Tests for API key caller identification.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from fastapi.security import HTTPAuthorizationCredentials
from pymongo.errors import DuplicateKeyError

from api.auth import APIKeyManager, IdentityProvider, get_current_caller
from catalog.exceptions import ConflictError, UnauthenticatedError
from catalog.models import CallerIdentity


class TestAPIKeyManager:
    """Test cases for APIKeyManager."""

    def test_generated_keys_are_unique(self):
        assert APIKeyManager.generate_api_key() != APIKeyManager.generate_api_key()

    def test_hash_is_stable(self):
        key = APIKeyManager.generate_api_key()
        assert APIKeyManager.hash_api_key(key) == APIKeyManager.hash_api_key(key)
        assert len(APIKeyManager.hash_api_key(key)) == 64


class TestIdentityProvider:
    """Test cases for IdentityProvider."""

    @pytest.fixture
    def users(self, make_collection):
        return make_collection()

    @pytest.mark.asyncio
    async def test_authenticate_known_key(self, users):
        user_id = ObjectId()
        users.find_one.return_value = {"_id": user_id, "username": "paul", "is_active": True}
        provider = IdentityProvider(users)

        caller = await provider.authenticate("bc_secret")

        assert caller == CallerIdentity(user_id=str(user_id), username="paul")
        query = users.find_one.call_args[0][0]
        assert query == {"api_key_hash": APIKeyManager.hash_api_key("bc_secret"), "is_active": True}

    @pytest.mark.asyncio
    async def test_authenticate_unknown_key(self, users):
        users.find_one.return_value = None
        provider = IdentityProvider(users)

        assert await provider.authenticate("bc_unknown") is None

    @pytest.mark.asyncio
    async def test_create_user_stores_only_hash(self, users):
        users.insert_one.return_value = MagicMock(inserted_id=ObjectId())
        provider = IdentityProvider(users)

        user = await provider.create_user("paul")

        stored = users.insert_one.call_args[0][0]
        assert stored["api_key_hash"] == APIKeyManager.hash_api_key(user["api_key"])
        assert user["api_key"] not in stored.values()

    @pytest.mark.asyncio
    async def test_create_duplicate_user(self, users):
        users.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")
        provider = IdentityProvider(users)

        with pytest.raises(ConflictError):
            await provider.create_user("paul")

    @pytest.mark.asyncio
    async def test_revoke(self, users):
        users.update_one.return_value = MagicMock(modified_count=1)
        provider = IdentityProvider(users)

        assert await provider.revoke("paul") is True


class TestGetCurrentCaller:
    """Test cases for the get_current_caller dependency."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(UnauthenticatedError):
            await get_current_caller(None)

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        provider = AsyncMock()
        provider.authenticate.return_value = None
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="bc_wrong_key")

        with patch('api.auth.identity_provider', provider):
            with pytest.raises(UnauthenticatedError):
                await get_current_caller(credentials)

    @pytest.mark.asyncio
    async def test_valid_key(self):
        identity = CallerIdentity(user_id="u1", username="paul")
        provider = AsyncMock()
        provider.authenticate.return_value = identity
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="bc_right_key")

        with patch('api.auth.identity_provider', provider):
            assert await get_current_caller(credentials) == identity
