# page_scout/compliance/gate.py
"""
Compliance gate: the allow/deny decision every URL must pass before a page
is opened.

Checks run in a fixed order and stop at the first failure::

    INVALID_URL -> BLOCKED_DOMAIN -> BLOCKED_PATH -> ROBOTS_DENIED
        -> TOS_DENIED -> RATE_LIMITED

Only an allowed URL consumes a rate-limit token.
"""
from __future__ import annotations

import asyncio
from typing import Iterable, List
from urllib.parse import urlsplit

from aiohttp import ClientError

from page_scout.compliance.policy_cache import FetchText, PolicyCache
from page_scout.compliance.rate_limiter import RateLimiterRegistry
from page_scout.config import ComplianceConfig
from page_scout.errors import ComplianceDenied
from page_scout.logger import logger
from page_scout.models import ComplianceDecision, DecisionReason
from page_scout.parser.html_parser import find_keyword, policy_text
from page_scout.utils import domain_of, is_valid_url, origin_of

__all__ = ("ComplianceGate",)


class ComplianceGate:
    """Combines deny-lists, robots policy, a terms scan and per-domain throttling."""

    def __init__(
        self,
        config: ComplianceConfig,
        policy_cache: PolicyCache,
        limiters: RateLimiterRegistry,
        fetch: FetchText,
    ) -> None:
        self.config = config
        self.policy_cache = policy_cache
        self.limiters = limiters
        self._fetch = fetch

    async def evaluate(self, url: str) -> ComplianceDecision:
        decision = await self._evaluate(url)
        if decision.allowed:
            logger.debug("Compliance OK: %s", url)
        else:
            logger.info("Compliance denied (%s): %s", decision.reason.value, url)
        return decision

    async def evaluate_many(self, urls: Iterable[str]) -> List[ComplianceDecision]:
        """Evaluate *urls* one after another, in order."""
        return [await self.evaluate(url) for url in urls]

    async def ensure_allowed(self, url: str) -> ComplianceDecision:
        """Like :meth:`evaluate` but raises :class:`ComplianceDenied` on refusal."""
        decision = await self.evaluate(url)
        if not decision.allowed:
            raise ComplianceDenied(url, decision)
        return decision

    # ------------------------------------------------------------------ #

    async def _evaluate(self, url: str) -> ComplianceDecision:
        if not is_valid_url(url):
            return ComplianceDecision.deny(DecisionReason.INVALID_URL)

        host = (domain_of(url) or "").lower()
        if self.is_blocked_domain(host):
            return ComplianceDecision.deny(DecisionReason.BLOCKED_DOMAIN)

        if self.has_blocked_path(urlsplit(url).path):
            return ComplianceDecision.deny(DecisionReason.BLOCKED_PATH)

        origin = origin_of(url)
        if not await self._robots_allows(origin, url):
            return ComplianceDecision.deny(DecisionReason.ROBOTS_DENIED)

        if not await self._terms_allow(origin):
            return ComplianceDecision.deny(DecisionReason.TOS_DENIED)

        if not self.limiters.acquire(host):
            return ComplianceDecision.deny(DecisionReason.RATE_LIMITED)

        return ComplianceDecision.allow()

    def is_blocked_domain(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        return any(host == d or host.endswith(f".{d}") for d in self.config.blocked_domains)

    def has_blocked_path(self, path: str) -> bool:
        lowered = path.lower()
        return any(fragment in lowered for fragment in self.config.blocked_paths)

    async def _robots_allows(self, origin: str, url: str) -> bool:
        try:
            policy = await self.policy_cache.get(origin)
            return policy.is_allowed(url, self.config.user_agent)
        except Exception as exc:
            # robots.txt could not be checked: deny
            logger.error("Error checking robots.txt for %s: %s", origin, exc)
            return False

    async def _terms_allow(self, origin: str) -> bool:
        try:
            for path in self.config.tos_paths:
                tos_url = f"{origin}{path}"
                try:
                    response = await self._fetch(tos_url)
                except (ClientError, asyncio.TimeoutError, OSError) as exc:
                    logger.debug("Terms page %s unavailable: %s", tos_url, exc)
                    continue
                if not response.ok:
                    continue
                keyword = find_keyword(policy_text(response.text), self.config.tos_keywords)
                if keyword is not None:
                    logger.info("Terms page %s mentions %r", tos_url, keyword)
                    return False
            return True
        except Exception as exc:
            logger.error("Error checking terms of service for %s: %s", origin, exc)
            return False
