"""
Simple in-memory rate limiter for auth endpoints.
"""

import time
from collections import defaultdict
from threading import Lock

from memeboard.settings import settings


class RateLimiter:
    """Sliding one-minute window per key."""

    def __init__(self, requests_per_minute: int = 10, window_seconds: int = 60):
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = Lock()

    def is_allowed(self, key: str) -> bool:
        """Record a request for ``key`` if it is under the limit."""
        now = time.time()
        window_start = now - self.window_seconds

        with self._lock:
            requests = [t for t in self._requests[key] if t > window_start]
            allowed = len(requests) < self.requests_per_minute
            if allowed:
                requests.append(now)
            self._requests[key] = requests
            return allowed

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()


auth_rate_limiter = RateLimiter(requests_per_minute=settings.rate_limit_auth_per_minute)
