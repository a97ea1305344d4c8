"""In-process change notifications keyed by table name."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Deque

logger = logging.getLogger(__name__)

_MAX_EVENTS = 500
_QUEUE_SIZE = 100
_BUFFER: Deque["ChangeEvent"] = deque(maxlen=_MAX_EVENTS)
_SUBSCRIBERS: dict[asyncio.Queue["ChangeEvent"], frozenset[str]] = {}


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    table: str
    event: str
    row_id: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event": self.event,
            "row_id": self.row_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


def publish(table: str, event: str, row_id: uuid.UUID | str | None = None) -> ChangeEvent:
    """Record a committed change and fan it out to live subscribers."""
    change = ChangeEvent(
        table=table, event=event, row_id=str(row_id) if row_id is not None else None
    )
    _BUFFER.append(change)
    for queue, tables in list(_SUBSCRIBERS.items()):
        if tables and table not in tables:
            continue
        try:
            queue.put_nowait(change)
        except asyncio.QueueFull:
            logger.warning("Dropping %s %s event for a slow subscriber", table, event)
    return change


@asynccontextmanager
async def subscribe(
    tables: Iterable[str] = (),
) -> AsyncIterator[asyncio.Queue[ChangeEvent]]:
    """Yield a queue receiving events for ``tables`` (all tables when empty)."""
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=_QUEUE_SIZE)
    _SUBSCRIBERS[queue] = frozenset(tables)
    try:
        yield queue
    finally:
        _SUBSCRIBERS.pop(queue, None)


def snapshot(limit: int = 100, tables: Iterable[str] = ()) -> list[ChangeEvent]:
    """Return up to ``limit`` most recent events, optionally filtered by table."""
    if limit <= 0:
        return []
    wanted = frozenset(tables)
    events = [evt for evt in _BUFFER if not wanted or evt.table in wanted]
    return events[-limit:]


def clear() -> None:
    """Clear buffered events (mainly for tests)."""
    _BUFFER.clear()
