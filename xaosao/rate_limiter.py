"""
Login and registration throttling

Counters live in process memory and are pushed to Redis every few seconds,
so several API workers converge on the same window. When Redis is down the
limiter keeps counting per process.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED

logger = logging.getLogger(__name__)


def connect_redis() -> redis.Redis:
    """Client from REDIS_URL, falling back to REDIS_HOST/PORT/PASSWORD/DB/SSL"""
    options = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
        "retry_on_timeout": True,
        "health_check_interval": 30,
    }
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return redis.from_url(redis_url, **options)
    return redis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        password=os.getenv("REDIS_PASSWORD"),
        db=int(os.getenv("REDIS_DB", "0")),
        ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        **options,
    )


class HybridRateLimiter:
    """Fixed-window counters keyed by "<prefix>:<client ip>" """

    def __init__(self, sync_interval: int = 10, cleanup_interval: int = 60, reconnect_interval: int = 30):
        self.sync_interval = sync_interval
        self.cleanup_interval = cleanup_interval
        self.reconnect_interval = reconnect_interval
        # {key: {"count": int, "reset_at": int, "synced_at": int}}
        self.windows: dict[str, dict] = {}
        self._lock = Lock()
        self._client: Optional[redis.Redis] = None
        self._failed_at = 0.0
        self._cleaned_at = 0

    def get_client(self) -> Optional[redis.Redis]:
        """Shared client, or None while Redis is unreachable"""
        if self._client is not None:
            return self._client
        if time.time() - self._failed_at < self.reconnect_interval:
            return None

        try:
            client = connect_redis()
            client.ping()
        except (redis.RedisError, ValueError) as e:
            self._failed_at = time.time()
            logger.warning(f"⚠️ Redis unavailable, rate limiting in memory only: {e}")
            return None

        logger.info("✅ Redis connected for rate limiting")
        self._client = client
        return client

    def _drop_expired(self, now: int) -> None:
        if now - self._cleaned_at < self.cleanup_interval:
            return
        expired = [key for key, window in self.windows.items() if now >= window["reset_at"]]
        for key in expired:
            del self.windows[key]
        if expired:
            logger.debug(f"🧹 Dropped {len(expired)} expired rate limit windows")
        self._cleaned_at = now

    def _open_window(self, key: str, window_seconds: int, now: int, client: Optional[redis.Redis]) -> dict:
        window = {"count": 0, "reset_at": now + window_seconds, "synced_at": now}
        if client is None:
            return window
        try:
            count, ttl = client.get(key), client.ttl(key)
            if count and ttl > 0:
                window.update(count=int(count), reset_at=now + ttl)
        except redis.RedisError as e:
            logger.warning(f"⚠️ Could not read {key} from Redis: {e}")
        return window

    def hit(
        self, key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
    ) -> tuple[bool, int, int]:
        """
        Count one attempt against `key`.

        Returns:
            (allowed, attempts in the current window, seconds until it resets)
        """
        now = int(time.time())
        with self._lock:
            self._drop_expired(now)
            window = self.windows.get(key)
            if window is None:
                window = self.windows[key] = self._open_window(key, window_seconds, now, client)
            elif now >= window["reset_at"]:
                window.update(count=0, reset_at=now + window_seconds, synced_at=0)

            allowed = window["count"] < limit
            if allowed:
                window["count"] += 1

            if client is not None and now - window["synced_at"] >= self.sync_interval:
                try:
                    client.set(key, window["count"], ex=window_seconds)
                    window["synced_at"] = now
                except redis.RedisError as e:
                    logger.warning(f"⚠️ Could not sync {key} to Redis: {e}")

            return allowed, window["count"], max(0, window["reset_at"] - now)

    def reset(self, key: str) -> None:
        with self._lock:
            self.windows.pop(key, None)


limiter = HybridRateLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """FastAPI dependency allowing `limit` attempts per client IP every `window_seconds`"""

    async def enforce_rate_limit(request: Request):
        if not RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{client_ip(request)}"
        allowed, attempts, retry_after = limiter.hit(key, limit, window_seconds, limiter.get_client())
        if not allowed:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({attempts}/{limit})")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many attempts. Please try again in {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)},
            )

    return enforce_rate_limit
