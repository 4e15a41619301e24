#!/usr/bin/env python3
"""
User Management Utility

Issues and revokes the API keys callers use to identify themselves:
- Create a user and print a new API key
- List users
- Revoke a user's API key
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.auth import IdentityProvider
from catalog.database import CatalogDatabase
from catalog.exceptions import ConflictError
from utilities.config import config
from utilities.logger import setup_logging


def _db_manager() -> CatalogDatabase:
    return CatalogDatabase(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        books_collection=config.books_collection,
        reviews_collection=config.reviews_collection,
        users_collection=config.users_collection
    )


async def create_user(username: str):
    """Create a user and print its API key once."""
    db_manager = _db_manager()
    try:
        await db_manager.connect()
        provider = IdentityProvider(db_manager.users)

        user = await provider.create_user(username)
        print("✅ USER CREATED")
        print(f"   User ID:  {user['user_id']}")
        print(f"   Username: {user['username']}")
        print(f"   API Key:  {user['api_key']}")
        print("   Store this key now, it cannot be shown again.")

    except ConflictError as e:
        print(f"❌ {e.message}")
    finally:
        await db_manager.disconnect()


async def list_users():
    """List all users."""
    print("\n" + "=" * 80)
    print("📋 USERS")
    print("=" * 80)

    db_manager = _db_manager()
    try:
        await db_manager.connect()
        provider = IdentityProvider(db_manager.users)

        users = await provider.list_users()
        if not users:
            print("❌ No users found in database")
            return

        for i, user in enumerate(users, 1):
            state = "active" if user.get("is_active") else "revoked"
            print(f"{i:3d}. {user['username']} ({user['_id']}) - {state}, created {user.get('created_at')}")

    finally:
        await db_manager.disconnect()


async def revoke_user(username: str):
    """Revoke a user's API key."""
    db_manager = _db_manager()
    try:
        await db_manager.connect()
        provider = IdentityProvider(db_manager.users)

        if await provider.revoke(username):
            print(f"✅ API key revoked for {username}")
        else:
            print(f"ℹ️  No active user named {username}")

    finally:
        await db_manager.disconnect()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_users.py [create|list|revoke] [username]")
        print()
        print("Commands:")
        print("  create   - Create a user and issue an API key")
        print("  list     - List all users")
        print("  revoke   - Revoke a user's API key")
        sys.exit(1)

    command = sys.argv[1].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if command == "list":
        await list_users()
    elif command in ("create", "revoke"):
        if len(sys.argv) < 3:
            print(f"❌ Error: username required for {command} command")
            print(f"Usage: python manage_users.py {command} <username>")
            sys.exit(1)
        if command == "create":
            await create_user(sys.argv[2])
        else:
            await revoke_user(sys.argv[2])
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: create, list, revoke")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
