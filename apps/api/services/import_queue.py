"""Deferred catalog import jobs (Redis/RQ)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from redis import Redis
from rq import Queue, Retry
from rq.job import Job

from config import settings
from database import async_session_maker
from services.catalog import import_batch


logger = logging.getLogger(__name__)

IMPORT_QUEUE_NAME = "import_jobs"


def get_redis_connection() -> Redis:
    """Build Redis connection used by RQ."""
    return Redis.from_url(settings.REDIS_URL)


def get_import_queue() -> Queue:
    return Queue(
        name=IMPORT_QUEUE_NAME,
        connection=get_redis_connection(),
        default_timeout=600,
    )


def enqueue_import_job(channel: str, platform: str, raw_clips: List[Dict[str, Any]]) -> Job:
    """Hand an import batch to the worker. Batches for one channel are serialized by the allocator."""
    queue = get_import_queue()
    return queue.enqueue(
        "services.import_queue.process_import_job",
        channel,
        platform,
        raw_clips,
        retry=Retry(max=3, interval=[5, 30, 120]),
        job_timeout=600,
        result_ttl=86400,
        failure_ttl=86400,
    )


async def process_import_job_async(channel: str, platform: str, raw_clips: List[Dict[str, Any]]) -> Dict[str, Any]:
    async with async_session_maker() as db:
        summary = await import_batch(db, channel, platform, raw_clips)
    logger.info("Deferred import for %s finished: inserted=%s", channel, summary["inserted"])
    return summary


def process_import_job(channel: str, platform: str, raw_clips: List[Dict[str, Any]]) -> Dict[str, Any]:
    """RQ worker entrypoint for import batches."""
    return asyncio.run(process_import_job_async(channel, platform, raw_clips))
