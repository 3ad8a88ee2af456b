# page_scout/compliance/rate_limiter.py
"""
Registry of per-domain fixed-window request limiters.

Limiters are created lazily and live for the whole process. Each domain has
its own lock, so admission for one domain is serialised while different
domains proceed independently.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict

from page_scout.logger import logger
from page_scout.models import DomainLimiterState

__all__ = ("RateLimiterRegistry",)


class _DomainLimiter:
    __slots__ = ("state", "lock")

    def __init__(self, state: DomainLimiterState) -> None:
        self.state = state
        self.lock = threading.Lock()


class RateLimiterRegistry:
    """``acquire(domain)`` admits at most ``max_requests`` calls per window."""

    def __init__(
        self,
        max_requests: int = 10,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window <= 0:
            raise ValueError("window must be > 0")
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._limiters: Dict[str, _DomainLimiter] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._limiters)

    def __contains__(self, domain: str) -> bool:
        return domain in self._limiters

    def acquire(self, domain: str) -> bool:
        """Consume one token for *domain*; False when the window's quota is used up."""
        limiter = self._limiter(domain)
        with limiter.lock:
            state = limiter.state
            now = self._clock()
            if now > state.window_start + state.window_size:
                state.window_start = now
                state.count = 0
            if state.count >= state.max_requests:
                logger.debug("Rate limit hit for %s (%d/%d)", domain, state.count, state.max_requests)
                return False
            state.count += 1
            return True

    def remaining(self, domain: str) -> int:
        limiter = self._limiters.get(domain)
        if limiter is None:
            return self.max_requests
        with limiter.lock:
            state = limiter.state
            if self._clock() > state.window_start + state.window_size:
                return state.max_requests
            return max(0, state.max_requests - state.count)

    def _limiter(self, domain: str) -> _DomainLimiter:
        limiter = self._limiters.get(domain)
        if limiter is not None:
            return limiter
        with self._registry_lock:
            limiter = self._limiters.get(domain)
            if limiter is None:
                limiter = _DomainLimiter(
                    DomainLimiterState(
                        domain=domain,
                        window_start=self._clock(),
                        window_size=self.window,
                        max_requests=self.max_requests,
                    )
                )
                self._limiters[domain] = limiter
            return limiter
