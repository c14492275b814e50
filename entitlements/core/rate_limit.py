"""
Fixed-window rate limiting for webhook endpoints.

Window state is process-local: with several replicas the effective limit
multiplies by the replica count.
"""
import logging
import threading
import time
from typing import Callable, Dict, Tuple
from fastapi import Request

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request."""
    # Check for forwarded IP (from proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip() or UNKNOWN_CLIENT
    
    if request.client and request.client.host:
        return request.client.host
    
    return UNKNOWN_CLIENT


class RateLimiter:
    """Check-and-consume interface: returns True if the key may proceed."""

    max_requests: int
    window_seconds: int

    def hit(self, key: str) -> bool:
        raise NotImplementedError

    def reset(self) -> None:
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiter):
    """
    At most max_requests per key per fixed window.
    
    A window opens on the first request for a key and is replaced once the
    clock has moved past it. Expired windows of other keys are swept at most
    once per window length, so rotating keys cannot grow the map unbounded.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def _sweep_expired(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._windows = {
            key: window
            for key, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_sweep = now

    def hit(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._sweep_expired(now)
            window_start, count = self._windows.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0
            
            if count >= self.max_requests:
                self._windows[key] = (window_start, count)
                logger.warning(
                    f"Rate limit exceeded for {key} "
                    f"({count} requests in {self.window_seconds}s)"
                )
                return False
            
            self._windows[key] = (window_start, count + 1)
        
        logger.debug(f"Rate limit check passed for {key} ({count + 1}/{self.max_requests})")
        return True

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
