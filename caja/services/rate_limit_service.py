"""
Sliding-window rate limiting for the checkout endpoint.

A single limiter instance lives for the whole process (created by the app
factory). The in-memory backend is enough for one instance; the redis backend
shares windows across Gunicorn workers and hosts, degrading to memory when
redis is unreachable.
"""

import logging
import threading
import time
import uuid
from collections import deque
from typing import Callable, Deque, Dict, Optional

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    In-memory sliding window: at most ``limit`` hits per ``window_seconds``.

    Keys whose window emptied are dropped on every hit for that key and by
    ``sweep()``, so the map never grows with idle cashiers.
    """

    def __init__(self, limit: int = 5, window_seconds: float = 10.0,
                 clock: Optional[Callable[[], float]] = None):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def hit(self, key: str) -> bool:
        """Record a request for ``key``. Returns False when over quota."""
        now = self._clock()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def remaining(self, key: str) -> int:
        """Requests still allowed for ``key`` in the current window."""
        now = self._clock()
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return self.limit
            self._prune(hits, now)
            return max(self.limit - len(hits), 0)

    def sweep(self) -> int:
        """Drop every key whose window is empty. Returns how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = []
            for key, hits in self._hits.items():
                self._prune(hits, now)
                if not hits:
                    expired.append(key)
            for key in expired:
                del self._hits[key]
        if expired:
            logger.debug(f"[RATE] Swept {len(expired)} idle keys")
        return len(expired)

    def reset(self) -> None:
        """Forget every window."""
        with self._lock:
            self._hits.clear()

    def __len__(self):
        return len(self._hits)


class RedisRateLimiter:
    """
    Redis sorted-set sliding window, shared by every worker.

    Keys pattern: {prefix}:ratelimit:{key}
    """

    def __init__(self, client: "redis.Redis", limit: int = 5, window_seconds: float = 10.0,
                 prefix: str = 'caja', fallback: Optional[SlidingWindowRateLimiter] = None):
        self.client = client
        self.limit = limit
        self.window_seconds = window_seconds
        self._prefix = prefix
        self._fallback = fallback or SlidingWindowRateLimiter(limit, window_seconds)

    def _build_key(self, key: str) -> str:
        return f"{self._prefix}:ratelimit:{key}"

    def hit(self, key: str) -> bool:
        """Record a request for ``key``. Returns False when over quota."""
        redis_key = self._build_key(key)
        now = time.time()
        try:
            pipeline = self.client.pipeline()
            pipeline.zremrangebyscore(redis_key, 0, now - self.window_seconds)
            pipeline.zcard(redis_key)
            _, count = pipeline.execute()
            if count >= self.limit:
                return False
            pipeline = self.client.pipeline()
            pipeline.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
            pipeline.expire(redis_key, int(self.window_seconds) + 1)
            pipeline.execute()
            return True
        except RedisError as e:
            logger.warning(f"[RATE] ✗ Redis error, using in-memory window: {e}")
            return self._fallback.hit(key)

    def sweep(self) -> int:
        """Redis expires idle windows itself; only the fallback needs sweeping."""
        return self._fallback.sweep()

    def reset(self) -> None:
        self._fallback.reset()


_rate_limiter = None


def init_rate_limiter(app: Flask) -> None:
    """Initialize the process-wide checkout rate limiter."""
    global _rate_limiter

    limit = app.config.get('CHECKOUT_RATE_LIMIT', 5)
    window = app.config.get('CHECKOUT_RATE_WINDOW_SECONDS', 10)
    memory_limiter = SlidingWindowRateLimiter(limit, window)
    _rate_limiter = memory_limiter

    if app.config.get('RATE_LIMIT_BACKEND') == 'redis':
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
            )
            client.ping()
            _rate_limiter = RedisRateLimiter(
                client, limit, window,
                prefix=app.config.get('CACHE_KEY_PREFIX', 'caja'),
                fallback=memory_limiter,
            )
            logger.info(f"[RATE] ✓ Redis rate limiter: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[RATE] ⚠ Redis connection failed: {e}. Using in-memory limiter.")

    app.extensions['rate_limiter'] = _rate_limiter


def get_rate_limiter():
    """Get rate limiter instance."""
    if _rate_limiter is None:
        raise RuntimeError("Rate limiter not initialized.")
    return _rate_limiter
