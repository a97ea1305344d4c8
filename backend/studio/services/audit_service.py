"""Helper utilities for recording audit events."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.audit_event import AuditEvent


async def record_event(
    session: AsyncSession,
    *,
    event_type: str,
    user_id: uuid.UUID | None = None,
    description: str | None = None,
    payload: dict[str, Any] | None = None,
    commit: bool = False,
) -> AuditEvent:
    """Add an audit event to the session, committing only when asked.

    Callers usually record the event inside the same transaction as the
    change it describes, so the default leaves the commit to them.
    """
    event = AuditEvent(
        user_id=user_id,
        event_type=event_type,
        description=description,
        payload=payload,
    )
    session.add(event)
    if commit:
        await session.commit()
        await session.refresh(event)
    return event
