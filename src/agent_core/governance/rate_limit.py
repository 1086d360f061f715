"""Sliding-window rate limiting for governed tool calls."""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the call may proceed.
        retry_after_seconds: Seconds until the oldest call leaves the window
            (0 when allowed).
    """

    allowed: bool
    retry_after_seconds: float = 0.0


class SlidingWindowLimiter:
    """Allows at most ``max_calls`` per ``window_seconds`` for each key.

    One limiter is shared by every session of a process, so the per-key
    windows are guarded by a lock.
    """

    def __init__(
        self,
        max_calls: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_calls: Calls allowed inside one window.
            window_seconds: Length of the sliding window.
            clock: Monotonic time source, injectable for tests.

        Raises:
            ValueError: If max_calls or window_seconds is not positive.
        """
        if max_calls < 1:
            raise ValueError(f"max_calls must be >= 1, got {max_calls}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._calls: dict[str, deque[float]] = {}

    def check(self, key: str) -> RateLimitResult:
        """Record a call for ``key`` if it fits in the window.

        Args:
            key: Bucket to count against (the session id for tool calls).

        Returns:
            RateLimitResult; a rejected call is not recorded.
        """
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            calls = self._calls.setdefault(key, deque())
            while calls and calls[0] <= cutoff:
                calls.popleft()

            if len(calls) >= self.max_calls:
                retry_after = calls[0] + self.window_seconds - now
                return RateLimitResult(allowed=False, retry_after_seconds=max(retry_after, 0.0))

            calls.append(now)
            return RateLimitResult(allowed=True)

    def reset(self, key: str | None = None) -> None:
        """Forget recorded calls for one key, or for every key."""
        with self._lock:
            if key is None:
                self._calls.clear()
            else:
                self._calls.pop(key, None)
