from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_SECONDS = 900


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int


class RateLimiterService(ABC):
    @abstractmethod
    def check(self, *, client_key: str, group: str, limit: int | None = None) -> RateLimitDecision:
        """Decide whether one more request from ``client_key`` in ``group`` may proceed."""


class InMemoryRateLimiterService(RateLimiterService):
    """Sliding-window limiter kept in process memory, keyed by client + route group.

    Behind an interface so a shared store (Redis) can replace it when running
    more than one worker. Buckets with no request inside the window are
    dropped once per window, so idle clients do not accumulate.
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: dict[tuple[str, str], deque[float]] = {}
        self._lock = Lock()
        self._last_sweep = clock()

    def check(self, *, client_key: str, group: str, limit: int | None = None) -> RateLimitDecision:
        effective_limit = limit if limit is not None else self.limit
        now = self._clock()
        key = (client_key, group)
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._evict_idle(cutoff)
                self._last_sweep = now

            bucket = self._store.setdefault(key, deque())
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            if len(bucket) >= effective_limit:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return RateLimitDecision(
                    allowed=False,
                    limit=effective_limit,
                    remaining=0,
                    retry_after_seconds=retry_after,
                )

            bucket.append(now)
            return RateLimitDecision(
                allowed=True,
                limit=effective_limit,
                remaining=max(0, effective_limit - len(bucket)),
                retry_after_seconds=0,
            )

    def _evict_idle(self, cutoff: float) -> None:
        # Chamado com o lock já adquirido.
        idle = [key for key, bucket in self._store.items() if not bucket or bucket[-1] <= cutoff]
        for key in idle:
            del self._store[key]

    def bucket_count(self) -> int:
        with self._lock:
            return len(self._store)

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
