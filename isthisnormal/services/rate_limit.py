"""
Per-client fixed-window throttling for the analysis endpoint.

The default store is process-local and resets whenever the process restarts;
that is the accepted guarantee. Point RATE_LIMIT_STORAGE_URI at a `limits`
storage (e.g. redis://...) to share counters between instances.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Protocol

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter
from starlette.concurrency import run_in_threadpool

from isthisnormal.utils.exceptions import RateLimitError

logger = logging.getLogger("isthisnormal")

UNKNOWN_CLIENT_KEY = "unknown"

Clock = Callable[[], float]


def client_key(headers: Mapping[str, str]) -> str:
    """Derive the throttle key from proxy headers.

    Clients without any address header all share the "unknown" bucket.
    """
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = (headers.get("x-real-ip") or "").strip()
    return real_ip or UNKNOWN_CLIENT_KEY


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    key: str
    count: int
    window_reset_at: float
    seconds_until_reset: float


class RateLimitStore(Protocol):
    # True when hit() does network or disk I/O and must stay off the event loop
    blocking_io: bool

    def hit(self, key: str, limit: int, window_s: int) -> RateLimitDecision:
        """Count one request for `key` atomically and report whether it fits."""

    def reset(self) -> None:
        ...


class InMemoryRateLimitStore:
    """Dict of RateLimitEntry guarded by one lock.

    Expired entries are swept once the table reaches `evict_threshold` keys so
    a long-lived process does not grow without bound. At most one sweep runs
    per window.
    """

    blocking_io = False

    def __init__(self, clock: Clock = time.time, evict_threshold: int = 10_000):
        self._clock = clock
        self._evict_threshold = evict_threshold
        self._entries: Dict[str, RateLimitEntry] = {}
        self._next_sweep_at = float("-inf")
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)
            return RateLimitEntry(entry.count, entry.window_reset_at) if entry else None

    def hit(self, key: str, limit: int, window_s: int) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or now > entry.window_reset_at:
                if (
                    entry is None
                    and len(self._entries) >= self._evict_threshold
                    and now >= self._next_sweep_at
                ):
                    self._evict_expired(now)
                    self._next_sweep_at = now + window_s
                entry = RateLimitEntry(count=1, window_reset_at=now + window_s)
                self._entries[key] = entry
                allowed = True
            elif entry.count >= limit:
                allowed = False
            else:
                entry.count += 1
                allowed = True

            return RateLimitDecision(allowed, key, entry.count, entry.window_reset_at, entry.window_reset_at - now)

    def _evict_expired(self, now: float) -> None:
        stale = [k for k, e in self._entries.items() if now > e.window_reset_at]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.info({"function": "rate_limit_evict", "evicted": len(stale), "remaining": len(self._entries)})

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_sweep_at = float("-inf")


class LimitsRateLimitStore:
    """Adapter onto a `limits` storage backend using its fixed-window strategy."""

    blocking_io = True

    def __init__(self, storage: Storage):
        self._storage = storage
        self._strategy = FixedWindowRateLimiter(storage)

    @classmethod
    def from_uri(cls, uri: str) -> "LimitsRateLimitStore":
        return cls(storage_from_string(uri))

    def hit(self, key: str, limit: int, window_s: int) -> RateLimitDecision:
        item = RateLimitItemPerSecond(limit, window_s)
        allowed = self._strategy.hit(item, key)
        stats = self._strategy.get_window_stats(item, key)
        count = limit - stats.remaining if allowed else limit
        reset_at = float(stats.reset_time)
        return RateLimitDecision(allowed, key, count, reset_at, reset_at - time.time())

    def reset(self) -> None:
        self._storage.reset()


class RateLimiter:
    """Applies a `max_requests` per `window_s` budget to client keys."""

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 10,
        window_s: int = 60,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_s = window_s

    def hit(self, key: str) -> RateLimitDecision:
        return self.store.hit(key, self.max_requests, self.window_s)

    def check(self, key: str) -> RateLimitDecision:
        decision = self.hit(key)
        if not decision.allowed:
            retry_after = max(1, math.ceil(decision.seconds_until_reset))
            logger.info({"function": "rate_limit", "client": key, "count": decision.count, "retry_after": retry_after})
            raise RateLimitError(retry_after=retry_after)
        return decision

    async def acheck(self, key: str) -> RateLimitDecision:
        """`check` for async callers; blocking stores run in the threadpool."""
        if getattr(self.store, "blocking_io", False):
            return await run_in_threadpool(self.check, key)
        return self.check(key)

    def reset(self) -> None:
        self.store.reset()


def build_store(storage_uri: str = "", evict_threshold: int = 10_000) -> RateLimitStore:
    if storage_uri:
        return LimitsRateLimitStore.from_uri(storage_uri)
    return InMemoryRateLimitStore(evict_threshold=evict_threshold)


__all__ = [
    "UNKNOWN_CLIENT_KEY",
    "client_key",
    "RateLimitEntry",
    "RateLimitDecision",
    "RateLimitStore",
    "InMemoryRateLimitStore",
    "LimitsRateLimitStore",
    "RateLimiter",
    "build_store",
]
