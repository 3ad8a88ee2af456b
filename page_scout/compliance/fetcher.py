# page_scout/compliance/fetcher.py
"""
Fetcher module: plain HTTP GET of policy documents (robots.txt, terms pages)
with retry/backoff and timeout.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from page_scout.config import ComplianceConfig
from page_scout.logger import logger

__all__ = ("TextResponse", "PolicyFetcher", "RETRY_STATUS")

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)


@dataclass(frozen=True, slots=True)
class TextResponse:
    """Status and decoded body of one GET."""

    url: str
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class PolicyFetcher:
    """Handles HTTP fetching with retries/backoff and timeout.

    A shared :class:`ClientSession` may be injected; otherwise each call opens
    its own short-lived session, so the fetcher is safe to reuse across event
    loops.
    """

    def __init__(
        self,
        config: ComplianceConfig,
        user_agent: str,
        session: Optional[ClientSession] = None,
        retry_status: Sequence[int] = RETRY_STATUS,
        retry_times: Optional[int] = None,
    ) -> None:
        self.config = config
        self.user_agent = user_agent
        self.session = session
        self._retry_status = retry_status
        self.retry_times = config.retry_times if retry_times is None else retry_times

    async def get_text(self, url: str) -> TextResponse:
        """
        GET *url* and return its status and text.

        Retryable statuses are retried up to ``self.retry_times``; the last response
        is returned when retries run out. Connection errors are retried the
        same way and re-raised at the end. Timeouts are raised immediately.
        """
        if self.session is not None:
            return await self._get_with_retry(self.session, url)
        async with ClientSession(
            timeout=ClientTimeout(total=self.config.http_timeout),
            headers={"User-Agent": self.user_agent},
        ) as session:
            return await self._get_with_retry(session, url)

    async def _get_with_retry(self, session: ClientSession, url: str) -> TextResponse:
        attempts = 0
        while True:
            try:
                async with session.get(url, allow_redirects=True) as resp:
                    text = await resp.text(errors="replace")
                    response = TextResponse(url, resp.status, text)
                if resp.status not in self._retry_status or attempts >= self.retry_times:
                    return response
                logger.debug("Retryable status %s for %s", resp.status, url)
            except asyncio.TimeoutError:
                # no retry on timeout
                raise
            except ClientError as exc:
                if attempts >= self.retry_times:
                    logger.debug("Giving up on %s: %s", url, exc)
                    raise
                logger.debug("Fetch error for %s: %s", url, exc)
            attempts += 1
            # exponential backoff, cap at 60s
            await asyncio.sleep(min(2**attempts, 60))
