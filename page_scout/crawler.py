# page_scout/crawler.py
"""
One-hop crawl orchestrator.

The seed page is gated and extracted first; then up to ``max_linked_pages``
of its internal links are visited in discovery order, each after a fixed
delay and its own compliance check, all on the same browser page.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncContextManager, Awaitable, Callable, List, Optional

from page_scout.browser import BrowserSession
from page_scout.compliance.gate import ComplianceGate
from page_scout.config import CrawlRequest, ScraperConfig
from page_scout.errors import InputError, ResourceFailure
from page_scout.extraction.pipeline import ExtractionPipeline, ExtractOptions
from page_scout.logger import LOGGER_NAME
from page_scout.models import CrawlResult, PageSnapshot
from page_scout.utils import is_valid_url, remove_duplicates

__all__ = ("Crawler",)

BrowserFactory = Callable[[], AsyncContextManager[Any]]


class Crawler:
    """Drives gate -> pipeline for the seed and its linked pages."""

    def __init__(
        self,
        config: ScraperConfig,
        gate: ComplianceGate,
        pipeline: Optional[ExtractionPipeline] = None,
        browser_factory: Optional[BrowserFactory] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.gate = gate
        self.pipeline = pipeline or ExtractionPipeline(config.extraction)
        self._browser_factory = browser_factory or (lambda: BrowserSession(config.browser))
        self._sleep = sleep
        self.logger = logging.getLogger(LOGGER_NAME)

    async def crawl(self, request: CrawlRequest) -> CrawlResult:
        """Crawl ``request.url`` and, when ``max_depth > 0``, its internal links.

        Raises :class:`InputError` or :class:`ComplianceDenied` for the seed
        before any browser is started, and :class:`ResourceFailure` when the
        browser cannot be acquired or released.
        """
        url = request.url
        if not is_valid_url(url):
            raise InputError(f"Invalid URL format: {url!r}")
        await self.gate.ensure_allowed(url)

        options = ExtractOptions.from_request(request)
        self.logger.info("Старт обхода: %s (max_depth=%d)", url, request.max_depth)
        start = time.monotonic()

        async with self._browser_factory() as page:
            main_page = await self.pipeline.extract(page, url, options)
            linked_pages: List[PageSnapshot] = []
            if request.max_depth > 0 and main_page.links:
                targets = self.select_links(main_page)
                self.logger.info("Linked pages to visit: %d", len(targets))
                for link in targets:
                    await self._sleep(self.config.crawl.inter_request_delay)
                    linked_pages.append(await self._visit(page, link, options))

        duration = time.monotonic() - start
        degraded = sum(1 for p in [main_page, *linked_pages] if p.is_degraded)
        self.logger.info(
            "Завершено: %d страниц за %.2f с (с ошибками: %d)",
            1 + len(linked_pages), duration, degraded,
        )
        return CrawlResult(main_page=main_page, linked_pages=linked_pages)

    def select_links(self, snapshot: PageSnapshot) -> List[str]:
        """Internal links of *snapshot*, deduplicated in first-seen order and capped."""
        unique = remove_duplicates(snapshot.internal_links())
        return unique[: self.config.crawl.max_linked_pages]

    async def _visit(self, page: Any, url: str, options: ExtractOptions) -> PageSnapshot:
        try:
            decision = await self.gate.evaluate(url)
            if not decision.allowed:
                return PageSnapshot.failed(url, f"{decision.message} ({decision.reason.value})")
            return await self.pipeline.extract(page, url, options)
        except ResourceFailure:
            raise
        except Exception as exc:
            self.logger.error("Error scraping linked page %s: %s", url, exc)
            return PageSnapshot.failed(url, str(exc) or type(exc).__name__)
