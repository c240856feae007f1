"""
ARQ Background Worker
Releases escrow for bookings the customer never confirmed and cleans up
calls whose clients went away.

Run with: arq xaosao.worker.WorkerSettings
"""

import logging
import os
from urllib.parse import urlparse

from arq.connections import RedisSettings
from arq.cron import cron

# Import models at module level so SQLAlchemy can resolve relationships
from . import models  # noqa: F401
from .database import session_scope
from .domain.bookings.service import BookingService
from .domain.calls.service import CallService

logger = logging.getLogger(__name__)

REDIS_CONNECT_OPTIONS = {"conn_timeout": 15, "conn_retry_delay": 1}


def get_redis_settings() -> RedisSettings:
    """REDIS_URL (redis:// or rediss://) wins over the individual REDIS_* variables"""
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        parsed = urlparse(redis_url)
        return RedisSettings(
            host=parsed.hostname or "localhost",
            port=parsed.port or 6379,
            password=parsed.password,
            ssl=parsed.scheme == "rediss",
            **REDIS_CONNECT_OPTIONS,
        )

    return RedisSettings(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        password=os.getenv("REDIS_PASSWORD"),
        ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        **REDIS_CONNECT_OPTIONS,
    )


async def auto_release_payments_task(ctx):
    """
    Hourly: complete bookings left in awaiting_confirmation past their
    auto-release time and pay the model.
    """
    logger.info("💸 Starting auto-release of pending booking payments")
    try:
        with session_scope() as db:
            summary = BookingService(db).process_auto_release()
    except Exception as e:
        logger.error(f"❌ Auto-release task failed: {e}")
        raise

    logger.info(f"💸 Auto-release complete: {summary['released']}/{summary['processed']} released")
    return summary


async def sweep_stale_calls_task(ctx):
    """Every minute: time out unanswered calls and end calls without heartbeats"""
    try:
        with session_scope() as db:
            summary = CallService(db).sweep_stale_calls()
    except Exception as e:
        logger.error(f"❌ Stale call sweep failed: {e}")
        raise

    if summary["missed"] or summary["ended"]:
        logger.info(f"📞 Stale call sweep: {summary['missed']} missed, {summary['ended']} ended")
    return summary


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [auto_release_payments_task, sweep_stale_calls_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "300"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))
    max_tries = 3

    cron_jobs = [
        cron(auto_release_payments_task, minute=0),
        cron(sweep_stale_calls_task, second=0),
    ]
