# RCD service library - core - rate limiting
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

import threading
import time
from collections import deque
from collections.abc import Callable
from typing import NamedTuple

from rcdlib.core import logger as parent_logger

logger = parent_logger.getChild("ratelimit")


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    # seconds until the oldest request in the window expires.
    reset_after: float


class RateLimiter:
    """Sliding window request limiter, keyed by API key name."""

    _max_requests: int
    _window: float
    _clock: Callable[[], float]
    _requests: dict[str, deque[float]]
    _lock: threading.Lock

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._requests = {}
        # handlers may call in from the threadpool, not only the event loop.
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._max_requests

    def check(self, key: str) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            window_start = now - self._window

            timestamps = self._requests.setdefault(key, deque())
            while timestamps and timestamps[0] <= window_start:
                _ = timestamps.popleft()

            allowed = len(timestamps) < self._max_requests
            if allowed:
                timestamps.append(now)

            remaining = max(0, self._max_requests - len(timestamps))
            oldest = timestamps[0] if timestamps else now

        if not allowed:
            logger.warning(f"rate limit exceeded for '{key}'")

        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_after=max(0.0, oldest + self._window - now),
        )

    def clear(self, key: str) -> None:
        with self._lock:
            _ = self._requests.pop(key, None)
