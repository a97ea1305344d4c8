from __future__ import annotations

import asyncio
import os

from studio.core.config import get_settings
from studio.db.session import get_sessionmaker
from studio.models.user import UserRole, UserStatus
from studio.schemas.user import UserCreate
from studio.services.user_service import create_user, get_user_by_email

EMAIL = os.environ.get("DEV_ADMIN_EMAIL", "admin@studio.example.com")
PASSWORD = os.environ.get("DEV_ADMIN_PASS", "admin1234")


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        if await get_user_by_email(session, EMAIL) is not None:
            print(f"User {EMAIL} already exists")
            return
        await create_user(
            session,
            UserCreate(
                email=EMAIL,
                password=PASSWORD,
                full_name="Studio Admin",
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
            ),
        )
        print(f"Created admin {EMAIL} / {PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
