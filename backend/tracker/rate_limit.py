"""Sliding-window rate limiter for request throttling."""

from __future__ import annotations

import asyncio
import contextlib
import threading
import time
from typing import TYPE_CHECKING

import structlog

from shared.errors import ThrottleError

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_SECONDS = 60.0
CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes

logger = structlog.get_logger()


class SlidingWindowRateLimiter:
    """Rate limiter keyed by caller-composed strings such as ``"follow:<user_id>"``.

    Each key keeps the instants of its admitted attempts. A call is admitted
    while fewer than ``max_attempts`` instants fall inside the window. The
    check and the append happen under one lock, so concurrent calls on the
    same key cannot both take the last slot.

    Keys with no in-window history are evicted by ``compact()``; call
    start_cleanup() on app startup to run it periodically and stop_cleanup()
    on shutdown.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        self._clock = clock
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._history: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._cleanup_task: asyncio.Task[None] | None = None

    def _in_window(self, key: str, now: float, window: float) -> list[float]:
        return [t for t in self._history.get(key, ()) if now - t < window]

    def is_allowed(self, key: str, max_attempts: int | None = None, window_seconds: float | None = None) -> bool:
        """Admit the call and record it, or refuse without recording anything."""
        limit = self._max_attempts if max_attempts is None else max_attempts
        window = self._window if window_seconds is None else window_seconds
        with self._lock:
            now = self._clock()
            recent = self._in_window(key, now, window)
            if len(recent) >= limit:
                self._history[key] = recent
                return False
            recent.append(now)
            self._history[key] = recent
            return True

    def get_remaining_attempts(
        self,
        key: str,
        max_attempts: int | None = None,
        window_seconds: float | None = None,
    ) -> int:
        limit = self._max_attempts if max_attempts is None else max_attempts
        window = self._window if window_seconds is None else window_seconds
        with self._lock:
            return max(0, limit - len(self._in_window(key, self._clock(), window)))

    def get_time_until_next_attempt(
        self,
        key: str,
        max_attempts: int | None = None,
        window_seconds: float | None = None,
    ) -> float:
        """Seconds until the key is admitted again; 0 when it would be admitted now."""
        limit = self._max_attempts if max_attempts is None else max_attempts
        window = self._window if window_seconds is None else window_seconds
        with self._lock:
            now = self._clock()
            recent = self._in_window(key, now, window)
            if len(recent) < limit:
                return 0.0
            return max(0.0, window - (now - recent[0]))

    def check(self, key: str, max_attempts: int | None = None, window_seconds: float | None = None) -> None:
        """Raise ThrottleError unless the call is admitted."""
        if self.is_allowed(key, max_attempts, window_seconds):
            return
        retry_after = self.get_time_until_next_attempt(key, max_attempts, window_seconds)
        logger.info("rate limit exceeded", key=key, retry_after=round(retry_after, 3))
        raise ThrottleError("Too many requests. Please try again later.", retry_after=retry_after)

    def reset(self, key: str) -> None:
        with self._lock:
            self._history.pop(key, None)

    def compact(self, window_seconds: float | None = None) -> int:
        """Drop keys with no in-window history. Return count of evicted keys."""
        window = self._window if window_seconds is None else window_seconds
        with self._lock:
            now = self._clock()
            stale = [key for key in self._history if not self._in_window(key, now, window)]
            for key in stale:
                del self._history[key]
        if stale:
            logger.debug("evicted idle rate limit keys", count=len(stale))
        return len(stale)

    @property
    def key_count(self) -> int:
        return len(self._history)

    def start_cleanup(self) -> None:
        """Start the periodic compaction background task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        """Stop the periodic compaction background task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            self.compact()
