"""
Per-Client Rate Limiter

Fixed-window admission control keyed by client address. Each client gets a
counter and the time its window opened; once more than window_seconds have
passed the counter restarts at zero. Because windows are fixed, a burst that
straddles a boundary can admit up to twice the ceiling.

State is process-local. Running several API instances behind a load balancer
multiplies the effective ceiling; a shared counter store is needed for that.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class ClientWindow:
    """Counter state for one client"""
    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of admitting one request"""
    allowed: bool
    count: int
    limit: int
    retry_after: float


class RateLimiter:
    """
    Process-wide fixed-window counter map.

    hit() and sweep() serialize on one lock, so an entry that is being
    incremented is never evicted underneath it.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._windows: Dict[str, ClientWindow] = {}
        self._lock = threading.Lock()

    def _expired(self, window: ClientWindow, now: float) -> bool:
        return now - window.window_start > self.window_seconds

    def hit(self, client_key: str) -> RateLimitDecision:
        """
        Count one request for a client.

        Args:
            client_key: Client network address

        Returns:
            RateLimitDecision; allowed is False once count exceeds max_requests
        """
        with self._lock:
            now = self._clock()
            window = self._windows.get(client_key)
            if window is None or self._expired(window, now):
                window = ClientWindow(count=0, window_start=now)
                self._windows[client_key] = window

            window.count += 1
            count = window.count
            retry_after = max(0.0, self.window_seconds - (now - window.window_start))

        return RateLimitDecision(
            allowed=count <= self.max_requests,
            count=count,
            limit=self.max_requests,
            retry_after=retry_after,
        )

    def sweep(self) -> int:
        """
        Evict clients whose window has expired.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, window in self._windows.items() if self._expired(window, now)]
            for key in stale:
                del self._windows[key]
            remaining = len(self._windows)

        if stale:
            logger.info(f"Rate limiter sweep evicted {len(stale)} clients ({remaining} tracked)")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def get_window(self, client_key: str) -> Optional[ClientWindow]:
        with self._lock:
            window = self._windows.get(client_key)
            if window is None:
                return None
            return ClientWindow(count=window.count, window_start=window.window_start)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
