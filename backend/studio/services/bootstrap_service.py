"""Bootstrap helpers for default data."""

from __future__ import annotations

import logging

from studio.core.config import get_settings
from studio.db.session import get_sessionmaker
from studio.models import UserRole, UserStatus
from studio.schemas.user import UserCreate
from studio.services.user_service import create_user, get_user_by_email

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Studio Admin"


async def ensure_default_admin() -> None:
    """Create the configured admin user if one does not yet exist."""

    settings = get_settings()
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        return
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        if await get_user_by_email(session, settings.bootstrap_admin_email) is not None:
            return
        payload = UserCreate(
            email=settings.bootstrap_admin_email,
            password=settings.bootstrap_admin_password,
            full_name=DEFAULT_ADMIN_NAME,
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
        )
        await create_user(session, payload)
        logger.info("Created bootstrap admin %s", payload.email)
