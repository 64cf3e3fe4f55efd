"""Sliding-window rate limiting for comment submissions.

``RateLimiter.try_admit`` is the only entry point. The check-and-append is
atomic per author in both backends:

- ``InMemoryRateLimitBackend``: per-key asyncio.Lock, correct within one process
- ``RedisRateLimitBackend``: one Lua script over a sorted set, correct across
  every process sharing the Redis
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from uuid import UUID, uuid4

import structlog

from blog_comments.core.redis import rate_limit_key


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one admission attempt."""

    admitted: bool
    retry_after: float = 0.0
    remaining: int = 0


class RateLimitBackend(Protocol):
    """Storage for per-key submission history."""

    async def hit(
        self, key: str, now: float, window: float, limit: int
    ) -> RateLimitDecision:
        """Atomically drop expired entries, then admit and record ``now``
        if fewer than ``limit`` remain."""
        ...


class InMemoryRateLimitBackend:
    """Process-local history, one deque of timestamps per key.

    Keys whose whole history has expired are swept at most once per window,
    together with their locks.
    """

    def __init__(self) -> None:
        self._history: dict[str, deque[float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_sweep = float("-inf")

    @property
    def tracked_keys(self) -> int:
        return len(self._history)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    def _sweep(self, now: float, window: float) -> None:
        if now - self._last_sweep < window:
            return
        self._last_sweep = now
        cutoff = now - window
        idle = [
            key
            for key, history in self._history.items()
            if not history or history[-1] <= cutoff
        ]
        for key in idle:
            lock = self._locks.get(key)
            if lock is not None and lock.locked():
                continue
            del self._history[key]
            self._locks.pop(key, None)
        if idle:
            logger.debug("rate_limit_keys_swept", swept=len(idle), tracked=len(self._history))

    async def hit(
        self, key: str, now: float, window: float, limit: int
    ) -> RateLimitDecision:
        self._sweep(now, window)
        async with self._lock_for(key):
            history = self._history.setdefault(key, deque())
            cutoff = now - window
            while history and history[0] <= cutoff:
                history.popleft()

            if len(history) >= limit:
                retry_after = max(0.0, history[0] + window - now)
                return RateLimitDecision(admitted=False, retry_after=retry_after)

            history.append(now)
            return RateLimitDecision(admitted=True, remaining=limit - len(history))

    def reset(self, key: str | None = None) -> None:
        """Forget history for one key, or for everyone."""
        if key is None:
            self._history.clear()
            self._locks.clear()
        else:
            self._history.pop(key, None)
            self._locks.pop(key, None)


# KEYS[1] = history key
# ARGV = now, window, limit, member, ttl_ms
SLIDING_WINDOW_SCRIPT = """
redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', ARGV[1] - ARGV[2])
local count = redis.call('ZCARD', KEYS[1])
if count >= tonumber(ARGV[3]) then
    local oldest = redis.call('ZRANGE', KEYS[1], 0, 0, 'WITHSCORES')
    return {0, tostring(oldest[2] + ARGV[2] - ARGV[1]), 0}
end
redis.call('ZADD', KEYS[1], ARGV[1], ARGV[4])
redis.call('PEXPIRE', KEYS[1], ARGV[5])
return {1, '0', tonumber(ARGV[3]) - count - 1}
"""


class RedisRateLimitBackend:
    """Sorted-set sliding window shared across processes."""

    def __init__(self, redis: "Redis") -> None:
        self.redis = redis
        self._script = redis.register_script(SLIDING_WINDOW_SCRIPT)

    async def hit(
        self, key: str, now: float, window: float, limit: int
    ) -> RateLimitDecision:
        admitted, retry_after, remaining = await self._script(
            keys=[key],
            args=[now, window, limit, f"{now}:{uuid4().hex}", int(window * 1000)],
        )
        return RateLimitDecision(
            admitted=bool(int(admitted)),
            retry_after=max(0.0, float(retry_after)),
            remaining=int(remaining),
        )


class RateLimiter:
    """Admits at most ``limit`` submissions per author per sliding ``window``."""

    def __init__(
        self,
        backend: RateLimitBackend,
        limit: int = 5,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.backend = backend
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock

    async def try_admit(self, author_id: UUID) -> RateLimitDecision:
        """Record a submission attempt for ``author_id`` if capacity remains."""
        decision = await self.backend.hit(
            rate_limit_key(str(author_id)),
            now=self.clock(),
            window=self.window_seconds,
            limit=self.limit,
        )
        if not decision.admitted:
            logger.info(
                "comment_rate_limited",
                author_id=str(author_id),
                retry_after=round(decision.retry_after, 1),
                limit=self.limit,
                window_seconds=self.window_seconds,
            )
        return decision
