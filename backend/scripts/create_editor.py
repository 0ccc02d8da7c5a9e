#!/usr/bin/env python3
"""Create an editor account (bootstrap for a fresh database)."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from config import get_settings
from database import async_session
from models.user import User, UserRole
from services.auth_service import AuthService, GoTrueClient


async def create_editor(name: str, email: str, password: str):
    """Create an active editor, mirrored in the auth provider when configured."""
    async with async_session() as db:
        result = await db.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none():
            print(f"User {email} already exists.")
            return

        values = {}
        if get_settings().supabase_enabled:
            provider_user = await GoTrueClient.create_user(
                email, password, {"name": name, "role": UserRole.EDITOR.value}
            )
            if "error" in provider_user:
                print(f"Auth provider rejected {email}: {provider_user['error']}")
                sys.exit(1)
            values["id"] = provider_user["id"]

        user = User(
            name=name,
            email=email,
            password_hash=AuthService.hash_password(password),
            role=UserRole.EDITOR,
            active=True,
            **values,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        print("Editor created successfully!")
        print(f"  Email: {email}")
        print(f"  ID: {user.id}")


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print("Usage: python3 create_editor.py <name> <email> <password>")
        print("Example: python3 create_editor.py 'Jane Editor' editor@example.com secretpassword")
        sys.exit(1)

    asyncio.run(create_editor(*sys.argv[1:4]))
