"""Server-sent change notifications for live availability views."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from studio.services import change_feed

router = APIRouter(prefix="/changes", tags=["changes"])

_KEEPALIVE_SECONDS = 15.0


def _tables(value: str | None) -> list[str]:
    if not value:
        return []
    return [table.strip() for table in value.split(",") if table.strip()]


@router.get("/recent", summary="Recent change events")
async def recent_changes(tables: str | None = None, limit: int = 50) -> list[dict]:
    return [event.as_dict() for event in change_feed.snapshot(min(limit, 500), _tables(tables))]


@router.get("", summary="Stream change events")
async def stream_changes(request: Request, tables: str | None = None) -> StreamingResponse:
    wanted = _tables(tables)

    async def _events() -> AsyncIterator[str]:
        async with change_feed.subscribe(wanted) as queue:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), _KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: {event.event}\ndata: {json.dumps(event.as_dict())}\n\n"

    return StreamingResponse(
        _events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
