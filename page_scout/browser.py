# File: page_scout/browser.py
"""page_scout.browser: Жизненный цикл Chromium (Playwright) для одного обхода.

Один обход = один браузер, один контекст и одна вкладка, которая
используется последовательно для всех страниц.
"""
from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from page_scout.config import BrowserConfig
from page_scout.errors import ResourceFailure
from page_scout.logger import logger

__all__ = ["BrowserSession"]


class BrowserSession:
    """Async context manager yielding a ready :class:`Page`.

    Acquisition errors raise :class:`ResourceFailure` after releasing whatever
    was already started. Release always runs; a release error is raised as
    :class:`ResourceFailure` only when nothing else is propagating.
    """

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> Page:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                timeout=self.config.launch_timeout * 1000,
                args=list(self.config.args),
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
            )
            self.page = await self._context.new_page()
        except Exception as exc:
            logger.error("Could not start browser: %s", exc)
            try:
                await self._release()
            except Exception as close_exc:
                logger.debug("Cleanup after failed start also failed: %s", close_exc)
            raise ResourceFailure(f"Could not start browser: {exc}") from exc
        logger.debug("Browser started (headless=%s)", self.config.headless)
        return self.page

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self._release()
        except Exception as close_exc:
            logger.error("Could not close browser: %s", close_exc)
            if exc_type is None:
                raise ResourceFailure(f"Could not close browser: {close_exc}") from close_exc

    async def _release(self) -> None:
        browser, pw = self._browser, self._playwright
        self.page = self._context = self._browser = self._playwright = None
        error: Optional[BaseException] = None
        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                error = exc
        if pw is not None:
            try:
                await pw.stop()
            except Exception as exc:
                error = error or exc
        if error is not None:
            raise error
        logger.debug("Browser closed")
