# page_scout/extraction/pipeline.py
"""
Extraction pipeline: turns one browser page into a :class:`PageSnapshot`.

The page is navigated once and then read by an ordered list of stages.
Every stage is isolated: if it raises, the error is logged, recorded in
``PageSnapshot.stage_errors`` and its field stays unset, while later stages
still run. Only a failed navigation aborts, yielding ``{url, error}``.
"""
from __future__ import annotations

import asyncio
import base64
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_scout.config import CrawlRequest, ExtractionConfig
from page_scout.errors import ExtractionDegraded, NavigationFailed
from page_scout.extraction import scripts
from page_scout.extraction.capture import EventRecorder
from page_scout.logger import logger
from page_scout.models import PageSnapshot

__all__ = ("ExtractOptions", "ExtractionPipeline")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class ExtractOptions:
    """Per-page switches taken from the crawl request."""

    handle_infinite_scroll: bool = False
    max_scrolls: int = 5
    take_screenshots: bool = False
    generate_pdf: bool = False

    @classmethod
    def from_request(cls, request: CrawlRequest) -> ExtractOptions:
        return cls(
            handle_infinite_scroll=request.handle_infinite_scroll,
            max_scrolls=request.max_scrolls,
            take_screenshots=request.take_screenshots,
            generate_pdf=request.generate_pdf,
        )


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class ExtractionPipeline:
    """Runs the extraction stages against an already opened page handle."""

    def __init__(self, config: ExtractionConfig, sleep: Sleep = asyncio.sleep) -> None:
        self.config = config
        self._sleep = sleep

    async def extract(
        self, page: Any, url: str, options: Optional[ExtractOptions] = None
    ) -> PageSnapshot:
        options = options or ExtractOptions()
        recorder = EventRecorder(self.config.max_console_logs, self.config.max_network_requests)
        recorder.attach(page)
        try:
            try:
                await self.navigate(page, url)
            except NavigationFailed as exc:
                logger.error("Error scraping page %s: %s", url, exc)
                return PageSnapshot.failed(url, str(exc))
            logger.debug("Page loaded: %s", url)
            return await self._run_stages(page, url, options, recorder)
        finally:
            recorder.detach()

    async def navigate(self, page: Any, url: str) -> None:
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout * 1000,
            )
        except Exception as exc:
            raise NavigationFailed(url, exc) from exc

    async def _run_stages(
        self, page: Any, url: str, options: ExtractOptions, recorder: EventRecorder
    ) -> PageSnapshot:
        snap = PageSnapshot(url=url)

        async def run(stage: str, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
            logger.debug("Stage %s: %s", stage, url)
            try:
                return await func(*args)
            except Exception as exc:
                degraded = ExtractionDegraded(stage, exc)
                logger.warning("Stage failed for %s: %s", url, degraded)
                snap.stage_errors[stage] = str(degraded)
                return None

        if options.handle_infinite_scroll:
            await run("infinite_scroll", self.scroll_to_end, page, options.max_scrolls)
        await run("network_idle", self.wait_for_network_idle, page, url)

        basics = await run("basics", self.extract_basics, page)
        if basics is not None:
            snap.title, snap.description = basics
        snap.metadata = await run("metadata", self.extract_metadata, page)
        snap.structured_data = await run("structured_data", self.extract_structured_data, page)
        snap.content_structure = await run(
            "content_structure", self.extract_content_structure, page, snap.stage_errors
        )
        snap.links = await run("links", self.extract_links, page)
        snap.computed_styles = await run("computed_styles", self.extract_computed_styles, page)
        snap.storage_data = await run("storage", self.extract_storage, page)

        captured = await run("console_network", self.collect_events, page, recorder)
        if captured is not None:
            snap.console_logs, snap.network_requests = captured

        if options.take_screenshots:
            snap.screenshots = await run(
                "screenshots", self.take_screenshots, page, url, snap.stage_errors
            )
        if options.generate_pdf:
            snap.pdf = await run("pdf", self.render_pdf, page)

        snap.text_nodes = await run("text_content", self.extract_text_nodes, page)

        if snap.stage_errors:
            logger.info("Scraped %s with %d failed stage(s)", url, len(snap.stage_errors))
        else:
            logger.info("Scraping completed successfully: %s", url)
        return snap

    # ------------------------------------------------------------------ #
    # Waits
    # ------------------------------------------------------------------ #

    async def scroll_to_end(self, page: Any, max_scrolls: int) -> int:
        """Scroll to the bottom until the height stops growing; return scrolls made."""
        previous = None
        current = await page.evaluate(scripts.SCROLL_HEIGHT)
        count = 0
        while previous != current and count < max_scrolls:
            previous = current
            await page.evaluate(scripts.SCROLL_TO_BOTTOM)
            await self._sleep(self.config.scroll_delay)
            current = await page.evaluate(scripts.SCROLL_HEIGHT)
            count += 1
        await page.evaluate(scripts.SCROLL_TO_TOP)
        logger.debug("Infinite scroll: %d scroll(s), final height %s", count, current)
        return count

    async def wait_for_network_idle(self, page: Any, url: str) -> bool:
        try:
            await page.wait_for_load_state(
                "networkidle", timeout=self.config.network_idle_timeout * 1000
            )
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as exc:
            logger.warning("Network did not reach idle state within timeout for %s: %s", url, exc)
            return False
        return True

    # ------------------------------------------------------------------ #
    # Document stages
    # ------------------------------------------------------------------ #

    async def extract_basics(self, page: Any) -> tuple[str, str]:
        title = await page.title()
        description = await page.eval_on_selector_all(
            'meta[name="description"]',
            "els => els.length ? (els[0].getAttribute('content') || '') : ''",
        )
        return title or "", description or ""

    async def extract_metadata(self, page: Any) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        for tag in await page.eval_on_selector_all("meta", scripts.META_TAGS):
            if tag.get("name"):
                metadata[tag["name"]] = tag.get("content")
        # OG/Twitter keys win over a generic name/property clash
        for selector, attr in (('meta[property^="og:"]', "property"), ('meta[name^="twitter:"]', "name")):
            tags = await page.eval_on_selector_all(
                selector,
                f"els => els.map(el => ({{key: el.getAttribute('{attr}'), content: el.getAttribute('content')}}))",
            )
            for tag in tags:
                if tag.get("key"):
                    metadata[tag["key"]] = tag.get("content")
        return metadata

    async def extract_structured_data(self, page: Any) -> List[Dict[str, Any]]:
        structured: List[Dict[str, Any]] = []
        sources = await page.eval_on_selector_all(
            'script[type="application/ld+json"]', scripts.JSON_LD_SOURCES
        )
        for raw in sources:
            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                continue
            if data:
                structured.append({"type": "application/ld+json", "data": data})
        for item in await page.eval_on_selector_all("[itemtype]", scripts.MICRODATA):
            structured.append({"type": "microdata", "data": item})
        return structured

    async def extract_content_structure(
        self, page: Any, stage_errors: Dict[str, str]
    ) -> Dict[str, Any]:
        headings = {}
        for level in range(1, 7):
            headings[f"h{level}"] = await page.eval_on_selector_all(f"h{level}", scripts.HEADINGS)
        structure: Dict[str, Any] = {
            "headings": headings,
            "lists": await page.eval_on_selector_all("ul, ol", scripts.LISTS),
            "images": await page.eval_on_selector_all("img", scripts.IMAGES),
            "forms": await page.eval_on_selector_all("form", scripts.FORMS),
            "tables": await page.eval_on_selector_all("table", scripts.TABLES),
            "iframes": await page.eval_on_selector_all("iframe", scripts.IFRAMES),
            "shadowDOM": [],
        }
        try:
            structure["shadowDOM"] = await page.evaluate(scripts.SHADOW_ROOTS)
        except Exception as exc:
            degraded = ExtractionDegraded("content_structure.shadow_dom", exc)
            logger.warning("Error extracting shadow DOM: %s", degraded)
            stage_errors[degraded.stage] = str(degraded)
        return structure

    async def extract_links(self, page: Any) -> List[Dict[str, Any]]:
        return await page.eval_on_selector_all("a", scripts.LINKS)

    async def extract_computed_styles(self, page: Any) -> Dict[str, Any]:
        return await page.evaluate(scripts.COMPUTED_STYLES, list(scripts.STYLE_PROPERTIES))

    async def extract_storage(self, page: Any) -> Dict[str, Any]:
        return await page.evaluate(scripts.STORAGE)

    async def collect_events(
        self, page: Any, recorder: EventRecorder
    ) -> tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        await recorder.settle(page, self.config.capture_idle_timeout)
        return recorder.console_logs.snapshot(), recorder.network_requests.snapshot()

    async def extract_text_nodes(self, page: Any) -> List[str]:
        texts = await page.evaluate(scripts.TEXT_NODES)
        return [t.strip() for t in texts if isinstance(t, str) and t.strip()]

    # ------------------------------------------------------------------ #
    # Visual stages
    # ------------------------------------------------------------------ #

    async def take_screenshots(
        self, page: Any, url: str, stage_errors: Dict[str, str]
    ) -> Dict[str, Any]:
        shots: Dict[str, Any] = {}

        for key, kwargs in (("fullPage", {"full_page": True}), ("viewport", {})):
            try:
                logger.debug("Taking %s screenshot for %s", key, url)
                shots[key] = _b64(await page.screenshot(**kwargs))
            except Exception as exc:
                degraded = ExtractionDegraded(f"screenshots.{key}", exc)
                logger.warning("Screenshot failed for %s: %s", url, degraded)
                stage_errors[degraded.stage] = str(degraded)

        shots["elements"] = await self._element_screenshots(page, url)
        return shots

    async def _element_screenshots(self, page: Any, url: str) -> List[Dict[str, str]]:
        captured: List[Dict[str, str]] = []
        try:
            handles = await page.query_selector_all(scripts.MEDIA_SELECTOR)
        except Exception as exc:
            logger.warning("Could not query media elements on %s: %s", url, exc)
            return captured
        logger.debug("Found %d elements to screenshot for %s", len(handles), url)

        for index, handle in enumerate(handles[: self.config.max_element_screenshots]):
            try:
                if not await handle.evaluate(scripts.ELEMENT_IS_VISIBLE):
                    logger.debug("Skipping invisible element %d for %s", index, url)
                    continue
                try:
                    await handle.scroll_into_view_if_needed(
                        timeout=self.config.element_scroll_timeout * 1000
                    )
                except Exception as exc:
                    logger.debug("Could not scroll element %d into view for %s: %s", index, url, exc)
                await self._sleep(self.config.element_settle_delay)
                data = await handle.screenshot(
                    timeout=self.config.element_screenshot_timeout * 1000
                )
                try:
                    selector = await handle.evaluate(scripts.ELEMENT_SELECTOR)
                except Exception:
                    selector = f"element_{index}"
                captured.append({"selector": selector, "data": _b64(data)})
            except Exception as exc:
                logger.warning("Error taking screenshot of element %d for %s: %s", index, url, exc)
        return captured

    async def render_pdf(self, page: Any) -> str:
        return _b64(await page.pdf(format=self.config.pdf_format))
