"""Optional Redis-backed rate limiting for public endpoints."""

from __future__ import annotations

from fastapi import Depends, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from studio.core.config import get_settings

_SECONDS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """Parse ``"10/minute"`` into ``(10, 60)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    return count, _SECONDS.get(window_str.strip().lower(), fallback[1])


def rate_dependency(limit: tuple[int, int]):
    async def _dependency(request: Request, response: Response) -> None:
        # Limiting is skipped when Redis was not reachable at startup.
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


_settings = get_settings()

LOGIN_RATE_DEP = rate_dependency(parse_rate(_settings.rate_limit_login, fallback=(10, 60)))
DEFAULT_RATE_DEP = rate_dependency(
    parse_rate(_settings.rate_limit_default, fallback=(100, 60))
)
