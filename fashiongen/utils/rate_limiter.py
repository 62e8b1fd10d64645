"""Per-client rate limiting for generation requests."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    """Fixed-window counter for one client."""
    request_count: int = 0
    window_start: float = field(default_factory=time.time)
    last_request: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of checking one request.

    Attributes:
        allowed: Whether the request may proceed
        remaining: Requests left in the current window
        retry_after: Seconds until the window resets, when not allowed
    """
    allowed: bool
    remaining: int
    retry_after: Optional[int] = None


class RateLimiter:
    """In-memory limiter for the expensive ``/generate`` route.

    Each client (identified by IP address) may start ``max_requests``
    generations per ``window_seconds``. Entries idle for two windows are
    dropped during periodic cleanup.

    Example:
        limiter = RateLimiter(max_requests=20, window_seconds=60)
        decision = limiter.check("192.168.1.1")
        if not decision.allowed:
            print(f"Retry after {decision.retry_after} seconds")
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: int = 60,
        cleanup_interval: int = 300
    ):
        """Initialize the rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window length in seconds
            cleanup_interval: Seconds between cleanup passes

        Raises:
            ValueError: If max_requests or window_seconds is not positive
        """
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval

        self._clients: Dict[str, RateLimitEntry] = {}
        self._lock = Lock()
        self._last_cleanup = time.time()

        logger.info(f"RateLimiter initialized: {max_requests} requests per {window_seconds}s")

    def check(self, client_id: str) -> RateLimitDecision:
        """Count a request from ``client_id`` and decide whether it may proceed.

        Args:
            client_id: Unique identifier for the client (e.g., IP address)

        Returns:
            RateLimitDecision for this request
        """
        with self._lock:
            now = time.time()

            if now - self._last_cleanup > self.cleanup_interval:
                self._cleanup_old_entries(now)

            entry = self._clients.get(client_id)
            if entry is None or now - entry.window_start >= self.window_seconds:
                self._clients[client_id] = RateLimitEntry(request_count=1, window_start=now, last_request=now)
                return RateLimitDecision(allowed=True, remaining=self.max_requests - 1)

            if entry.request_count >= self.max_requests:
                retry_after = int(self.window_seconds - (now - entry.window_start)) + 1
                logger.warning(
                    f"Rate limit exceeded for {client_id}: "
                    f"{entry.request_count}/{self.max_requests} requests. Retry after {retry_after}s"
                )
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            entry.request_count += 1
            entry.last_request = now
            return RateLimitDecision(allowed=True, remaining=self.max_requests - entry.request_count)

    def get_stats(self) -> Dict:
        """Get overall rate limiter statistics."""
        with self._lock:
            now = time.time()
            return {
                "max_requests_per_window": self.max_requests,
                "window_seconds": self.window_seconds,
                "tracked_clients": len(self._clients),
                "active_clients": sum(
                    1 for entry in self._clients.values()
                    if now - entry.last_request < self.window_seconds
                ),
                "last_cleanup": datetime.fromtimestamp(self._last_cleanup).isoformat(),
            }

    def _cleanup_old_entries(self, now: float) -> None:
        cutoff = now - self.window_seconds * 2
        stale = [client_id for client_id, entry in self._clients.items() if entry.last_request < cutoff]
        for client_id in stale:
            del self._clients[client_id]
        if stale:
            logger.info(f"Cleaned up {len(stale)} old rate limit entries")
        self._last_cleanup = now

    def __repr__(self) -> str:
        return (
            f"RateLimiter(max_requests={self.max_requests}, "
            f"window_seconds={self.window_seconds}, "
            f"clients={len(self._clients)})"
        )
