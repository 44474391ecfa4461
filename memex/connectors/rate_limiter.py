"""Token-bucket rate limiting for the upstream APIs.

DexScreener allows roughly 300 search requests a minute; Basescan's free
tier allows 5 calls a second per key.  Each upstream gets its own bucket
in the process-wide ``rate_limiter`` registry; limits can be retuned
from config at startup with ``configure``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class BucketConfig:
    rate: float          # tokens added per second
    burst: int           # bucket capacity
    name: str = ""


DEFAULT_LIMITS: dict[str, BucketConfig] = {
    "dexscreener": BucketConfig(rate=4.0, burst=10, name="DexScreener"),
    "basescan": BucketConfig(rate=4.0, burst=5, name="Basescan"),
}

_FALLBACK = BucketConfig(rate=2.0, burst=5)


class TokenBucket:
    """Thread-safe token bucket.  ``acquire`` suspends the caller until a token is free."""

    def __init__(self, config: BucketConfig):
        self.config = config
        self._tokens = float(config.burst)
        self._stamp = time.monotonic()
        self._lock = Lock()
        self._granted = 0
        self._throttled = 0

    def _take(self) -> float:
        """Take a token if one is available; otherwise return seconds to wait."""
        with self._lock:
            now = time.monotonic()
            self._tokens = min(
                float(self.config.burst),
                self._tokens + (now - self._stamp) * self.config.rate,
            )
            self._stamp = now
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                self._granted += 1
                return 0.0
            return (1.0 - self._tokens) / self.config.rate

    def try_acquire(self) -> bool:
        return self._take() == 0.0

    async def acquire(self) -> None:
        while True:
            delay = self._take()
            if delay == 0.0:
                return
            self._throttled += 1
            await asyncio.sleep(delay)

    @property
    def stats(self) -> dict[str, int]:
        return {"total_requests": self._granted, "total_waits": self._throttled}


class RateLimiterRegistry:
    """Per-upstream buckets, created on first use."""

    def __init__(self) -> None:
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = Lock()

    def configure(self, endpoint: str, rate: float, burst: int) -> None:
        """Replace an upstream's bucket with new limits."""
        with self._lock:
            self._buckets[endpoint] = TokenBucket(
                BucketConfig(rate=rate, burst=burst, name=endpoint)
            )

    def get(self, endpoint: str) -> TokenBucket:
        with self._lock:
            bucket = self._buckets.get(endpoint)
            if bucket is None:
                bucket = TokenBucket(DEFAULT_LIMITS.get(endpoint, _FALLBACK))
                self._buckets[endpoint] = bucket
            return bucket

    def stats(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {name: b.stats for name, b in self._buckets.items()}


rate_limiter = RateLimiterRegistry()
