"""Per-channel request quotas, counted in Redis with an in-process fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis

from config import settings


logger = logging.getLogger(__name__)

_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def quota_key(prefix: str, request: Request) -> str:
    """Quotas are counted per client and per channel, so one busy chat cannot starve another."""
    channel = str(request.path_params.get("channel") or "-").strip().lower()
    return f"clipcat:rate:{prefix}:{channel}:{_client_identifier(request)}"


async def _consume_redis_quota(key: str, window_seconds: int) -> int:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        current = await redis_client.incr(key)
        if current == 1:
            await redis_client.expire(key, window_seconds)
        return int(current)
    finally:
        await redis_client.aclose()


async def _consume_local_quota(key: str, window_seconds: int) -> int:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count


def rate_limit(prefix: str, limit: int, window_seconds: int) -> Callable[..., None]:
    """Return a FastAPI dependency that rejects a client once it exceeds `limit` calls per window."""

    async def _dependency(request: Request):
        if not settings.RATE_LIMIT_ENABLED or getattr(request.app.state, "disable_rate_limits", False):
            return

        key = quota_key(prefix, request)
        try:
            current = await _consume_redis_quota(key, window_seconds)
        except Exception as exc:
            logger.warning("Rate limit store unreachable, counting %s locally: %s", prefix, exc)
            current = await _consume_local_quota(key, window_seconds)

        if current > limit:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {prefix}. Try again later.",
                headers={"Retry-After": str(window_seconds)},
            )

    return _dependency
