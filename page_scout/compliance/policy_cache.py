# page_scout/compliance/policy_cache.py
"""
Per-origin cache of parsed robots.txt documents with a fixed time-to-live.

Refresh is lazy: an expired entry is replaced on the next :meth:`PolicyCache.get`.
Misses for the same origin are serialised so that concurrent crawls fetch a
given robots.txt once; different origins never wait on each other.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

from page_scout.compliance.fetcher import TextResponse
from page_scout.compliance.robots import RobotsTxtRules
from page_scout.logger import logger
from page_scout.models import PolicyCacheEntry
from page_scout.utils import robots_url

__all__ = ("PolicyCache", "DEFAULT_TTL")

DEFAULT_TTL = 24 * 60 * 60

FetchText = Callable[[str], Awaitable[TextResponse]]
Clock = Callable[[], float]


class PolicyCache:
    """Owns every :class:`PolicyCacheEntry`; one entry per origin."""

    def __init__(
        self,
        fetch: FetchText,
        ttl: float = DEFAULT_TTL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, PolicyCacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, origin: str) -> Optional[PolicyCacheEntry]:
        """Return the stored entry (expired or not) without fetching."""
        return self._entries.get(origin)

    def invalidate(self, origin: str) -> None:
        self._entries.pop(origin, None)

    async def get(self, origin: str) -> RobotsTxtRules:
        """Return the cached policy of *origin*, fetching robots.txt on a miss.

        A non-success response yields an allow-all policy, which is cached
        like any other. Network errors propagate and nothing is stored.
        """
        entry = self._fresh(origin)
        if entry is not None:
            return entry.policy

        lock = self._locks.setdefault(origin, asyncio.Lock())
        async with lock:
            # another waiter may have refreshed it meanwhile
            entry = self._fresh(origin)
            if entry is not None:
                return entry.policy

            url = robots_url(origin)
            response = await self._fetch(url)
            if response.ok:
                policy = RobotsTxtRules(response.text)
            else:
                logger.debug("robots.txt %s -> HTTP %s, no restrictions", url, response.status)
                policy = RobotsTxtRules.allow_all()

            self._entries[origin] = PolicyCacheEntry(
                domain=origin, policy=policy, fetched_at=self._clock()
            )
            return policy

    def _fresh(self, origin: str) -> Optional[PolicyCacheEntry]:
        entry = self._entries.get(origin)
        if entry is None or entry.is_expired(self._clock(), self.ttl):
            return None
        return entry
