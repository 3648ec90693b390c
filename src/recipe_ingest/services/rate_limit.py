"""In-process admission control.

State lives in memory of the running instance only. It is lost when the
process (or warm serverless instance) is recycled, and separate instances do
not share counts, so this is best-effort protection rather than a guarantee.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from recipe_ingest.errors import RateLimitReason

_SWEEP_THRESHOLD = 1024


@dataclass(frozen=True)
class RateDecision:
    """Outcome of an admission check."""

    allowed: bool
    reason: RateLimitReason | None = None
    retry_after_seconds: float = 0.0


class RateLimiter(Protocol):
    """Admission control interface."""

    def admit(self, client_id: str) -> RateDecision:
        """Decide whether a request from ``client_id`` may proceed."""


class SlidingWindowRateLimiter(RateLimiter):
    """Per-client and global limits over a trailing time window."""

    def __init__(
        self,
        *,
        per_client_limit: int,
        global_limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.per_client_limit = per_client_limit
        self.global_limit = global_limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._clients: dict[str, deque[float]] = {}
        self._global: deque[float] = deque()
        self._lock = threading.Lock()

    def admit(self, client_id: str) -> RateDecision:
        """Prune, compare and record in one step.

        Must not await anywhere: two interleaved requests could otherwise both
        pass the check before either records its timestamp.
        """
        with self._lock:
            now = self._clock()
            cutoff = now - self.window_seconds
            _prune(self._global, cutoff)
            if not self._global:
                # every live client timestamp is also in the global bucket
                self._clients.clear()
            elif len(self._clients) > _SWEEP_THRESHOLD:
                self._sweep(cutoff)
            bucket = self._clients.get(client_id)
            if bucket is not None:
                _prune(bucket, cutoff)
                if not bucket:
                    del self._clients[client_id]
                    bucket = None

            if len(self._global) >= self.global_limit:
                return RateDecision(
                    allowed=False,
                    reason=RateLimitReason.GLOBAL_CAPACITY_EXCEEDED,
                    retry_after_seconds=self._retry_after(self._global, now),
                )
            if bucket is not None and len(bucket) >= self.per_client_limit:
                return RateDecision(
                    allowed=False,
                    reason=RateLimitReason.CLIENT_RATE_EXCEEDED,
                    retry_after_seconds=self._retry_after(bucket, now),
                )

            if bucket is None:
                bucket = self._clients[client_id] = deque()
            bucket.append(now)
            self._global.append(now)
            return RateDecision(allowed=True)

    def tracked_clients(self) -> int:
        """Return the number of clients with live timestamps."""
        with self._lock:
            return len(self._clients)

    def _sweep(self, cutoff: float) -> None:
        for key in list(self._clients):
            bucket = self._clients[key]
            _prune(bucket, cutoff)
            if not bucket:
                del self._clients[key]

    def _retry_after(self, timestamps: deque[float], now: float) -> float:
        return max(0.0, timestamps[0] + self.window_seconds - now)


def _prune(timestamps: deque[float], cutoff: float) -> None:
    while timestamps and timestamps[0] <= cutoff:
        timestamps.popleft()
