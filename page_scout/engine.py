# File: page_scout/engine.py
"""page_scout.engine: Orchestration layer: общее состояние процесса и запуск обходов."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from page_scout.compliance.fetcher import PolicyFetcher
from page_scout.compliance.gate import ComplianceGate
from page_scout.compliance.policy_cache import PolicyCache
from page_scout.compliance.rate_limiter import RateLimiterRegistry
from page_scout.config import CrawlRequest, ScraperConfig, load_config
from page_scout.crawler import BrowserFactory, Crawler
from page_scout.extraction.pipeline import ExtractionPipeline
from page_scout.logger import logger
from page_scout.models import ComplianceDecision, CrawlResult

__all__ = ["Engine", "start_crawl", "check_url"]


class Engine:
    """Фасад для CLI и тестов: владеет кэшем robots.txt и лимитерами и запускает обходы.

    Кэш политик и реестр лимитеров живут столько же, сколько Engine, и
    разделяются всеми обходами, запущенными через него.
    """

    @staticmethod
    def load_config(path: Optional[str]) -> ScraperConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(
        self,
        config: ScraperConfig,
        *,
        fetcher: Optional[PolicyFetcher] = None,
        policy_cache: Optional[PolicyCache] = None,
        limiters: Optional[RateLimiterRegistry] = None,
        browser_factory: Optional[BrowserFactory] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Собирает gate, pipeline и crawler; зависимости можно подменить в тестах."""
        self.config = config
        compliance = config.compliance
        self.fetcher = fetcher or PolicyFetcher(compliance, config.browser.user_agent)
        self.policy_cache = policy_cache or PolicyCache(self.fetcher.get_text, ttl=compliance.robots_ttl)
        self.limiters = limiters or RateLimiterRegistry(
            compliance.rate_limit_max, compliance.rate_limit_window
        )
        # terms pages are re-fetched on every check: one attempt per path by default
        if fetcher is None:
            self.terms_fetcher = PolicyFetcher(
                compliance, config.browser.user_agent, retry_times=compliance.tos_retry_times
            )
        else:
            self.terms_fetcher = fetcher
        self.gate = ComplianceGate(
            compliance, self.policy_cache, self.limiters, self.terms_fetcher.get_text
        )
        self.pipeline = ExtractionPipeline(config.extraction, sleep=sleep)
        self.crawler = Crawler(
            config, self.gate, self.pipeline, browser_factory=browser_factory, sleep=sleep
        )

    async def crawl(self, request: CrawlRequest) -> CrawlResult:
        return await self.crawler.crawl(request)

    async def check(self, url: str) -> ComplianceDecision:
        return await self.gate.evaluate(url)

    def start_crawl(self, request: CrawlRequest, timeout: Optional[float] = None) -> CrawlResult:
        """Запускает обход синхронно (для скриптов), с необязательным общим таймаутом."""
        logger.info("Starting crawl…")
        try:
            if timeout:
                return asyncio.run(asyncio.wait_for(self.crawl(request), timeout=timeout))
            return asyncio.run(self.crawl(request))
        except asyncio.TimeoutError:
            logger.error("Crawl did not finish within %s seconds", timeout)
            raise


async def start_crawl(config: ScraperConfig, request: CrawlRequest) -> CrawlResult:
    """Корутина для CLI: новый Engine на один обход."""
    return await Engine(config).crawl(request)


async def check_url(config: ScraperConfig, url: str) -> ComplianceDecision:
    """Корутина для CLI: только проверка соответствия, без браузера."""
    return await Engine(config).check(url)
