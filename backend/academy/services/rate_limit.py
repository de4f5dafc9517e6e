# backend/academy/services/rate_limit.py
"""
Fixed-window request counters for the public kiosk endpoints.

``InMemoryRateLimiter`` keeps its windows in this process only, so it is
correct for a single worker. Multi-worker or multi-instance deployments set
``RATE_LIMIT_BACKEND=redis`` and share the counters through redis.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import redis

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: int   # seconds until the current window ends


class RateLimiter(ABC):
    @abstractmethod
    def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        """Count one request for ``key`` and say whether it may proceed."""


class InMemoryRateLimiter(RateLimiter):
    def __init__(self, sweep_interval: int = 60, clock: Callable[[], float] = time.monotonic):
        self._windows: Dict[str, Tuple[int, float]] = {}   # key -> (count, reset_at)
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in expired:
            del self._windows[k]
        self._next_sweep = now + self._sweep_interval

    def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)

            count, reset_at = self._windows.get(key, (0, 0.0))
            if reset_at <= now:
                count, reset_at = 0, now + window_seconds

            reset_in = max(0, int(round(reset_at - now)))
            if count >= max_requests:
                return RateLimitResult(False, 0, reset_in)

            count += 1
            self._windows[key] = (count, reset_at)
            return RateLimitResult(True, max_requests - count, reset_in)

    def __len__(self):
        return len(self._windows)


class RedisRateLimiter(RateLimiter):
    def __init__(self, client: "redis.Redis", prefix: str = "ratelimit:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimiter":
        return cls(redis.from_url(url, decode_responses=True))

    def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        name = f"{self.prefix}{key}"
        count = int(self.client.incr(name))
        if count == 1:
            self.client.expire(name, window_seconds)
        ttl = self.client.ttl(name)
        if ttl is None or ttl < 0:
            # key lost its expiry (e.g. crash between INCR and EXPIRE)
            self.client.expire(name, window_seconds)
            ttl = window_seconds

        if count > max_requests:
            return RateLimitResult(False, 0, int(ttl))
        return RateLimitResult(True, max_requests - count, int(ttl))


def build_rate_limiter(backend: str = None) -> RateLimiter:
    backend = (backend or settings.RATE_LIMIT_BACKEND).lower()
    if backend == "redis":
        logger.info("Using redis rate limiter at %s", settings.REDIS_URL)
        return RedisRateLimiter.from_url(settings.REDIS_URL)
    if backend != "memory":
        raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {backend}")
    return InMemoryRateLimiter(sweep_interval=settings.RATE_LIMIT_SWEEP_SECONDS)


_limiter: RateLimiter = None


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency; one limiter per process."""
    global _limiter
    if _limiter is None:
        _limiter = build_rate_limiter()
    return _limiter
