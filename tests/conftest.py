# File: tests/conftest.py
from __future__ import annotations

from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_scout.compliance.fetcher import TextResponse
from page_scout.compliance.gate import ComplianceGate
from page_scout.compliance.policy_cache import PolicyCache
from page_scout.compliance.rate_limiter import RateLimiterRegistry
from page_scout.config import (
    ComplianceConfig,
    CrawlConfig,
    ExtractionConfig,
    ScraperConfig,
)
from page_scout.extraction import scripts
from page_scout.logger import init_logging

# --------------------------------------------------------------------------- #
#                               Clock & fetcher                               #
# --------------------------------------------------------------------------- #


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Async ``get_text`` replacement: url -> TextResponse | Exception, 404 otherwise."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[str] = []

    async def __call__(self, url: str) -> TextResponse:
        self.calls.append(url)
        value = self.responses.get(url)
        if value is None:
            return TextResponse(url, 404, "Not Found")
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, str):
            return TextResponse(url, 200, value)
        return value

    def count(self, url: str) -> int:
        return self.calls.count(url)


# --------------------------------------------------------------------------- #
#                          Fake page-driving capability                       #
# --------------------------------------------------------------------------- #

_SCRIPT_NAMES = {
    scripts.SHADOW_ROOTS: "shadow",
    scripts.COMPUTED_STYLES: "computed_styles",
    scripts.STORAGE: "storage",
    scripts.TEXT_NODES: "text",
    scripts.SCROLL_HEIGHT: "scroll_height",
    scripts.SCROLL_TO_BOTTOM: "scroll_bottom",
    scripts.SCROLL_TO_TOP: "scroll_top",
}


class FakeConsoleMessage:
    def __init__(self, text: str) -> None:
        self.type = "log"
        self.text = text
        self.location = {"url": "", "lineNumber": 1, "columnNumber": 1}


class FakeRequest:
    def __init__(self, url: str) -> None:
        self.url = url
        self.method = "GET"
        self.headers = {"accept": "*/*"}
        self.resource_type = "script"


class FakeElement:
    def __init__(self, name: str, visible: bool = True, broken: bool = False) -> None:
        self.name = name
        self.visible = visible
        self.broken = broken

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if script == scripts.ELEMENT_IS_VISIBLE:
            return self.visible
        if script == scripts.ELEMENT_SELECTOR:
            return f"#{self.name}"
        raise AssertionError(f"unexpected element script {script!r}")

    async def scroll_into_view_if_needed(self, timeout: float = None) -> None:
        return None

    async def screenshot(self, timeout: float = None) -> bytes:
        if self.broken:
            raise RuntimeError(f"element {self.name} detached")
        return f"PNG-{self.name}".encode()


class FakePage:
    """In-memory page: ``site`` maps URL -> page description dict.

    Unknown URLs fail navigation. Names in ``broken`` make the matching call
    raise (a selector, a script name from ``_SCRIPT_NAMES``, ``title``,
    ``screenshot``, ``screenshot_full``, ``pdf``, ``networkidle``); ``idle_timeout``
    makes network-idle waits time out.
    """

    def __init__(self, site: Dict[str, Dict[str, Any]], broken: Iterable[str] = ()) -> None:
        self.site = site
        self.broken = set(broken)
        self.visited: List[str] = []
        self.scroll_calls: List[str] = []
        self.current: Dict[str, Any] = {}
        self._height_index = 0
        self._listeners: Dict[str, List[Any]] = defaultdict(list)

    # events ---------------------------------------------------------------
    def on(self, event: str, handler: Any) -> None:
        self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Any) -> None:
        self._listeners[event].remove(handler)

    def listener_count(self) -> int:
        return sum(len(v) for v in self._listeners.values())

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._listeners[event]):
            handler(payload)

    # navigation -----------------------------------------------------------
    def _check(self, name: Optional[str]) -> None:
        if name in self.broken:
            raise RuntimeError(f"{name} exploded")

    async def goto(self, url: str, wait_until: str = None, timeout: float = None) -> None:
        self.visited.append(url)
        if url not in self.site:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.current = self.site[url]
        self._height_index = 0
        for i in range(self.current.get("console", 0)):
            self.emit("console", FakeConsoleMessage(f"log {i}"))
        for i in range(self.current.get("requests", 0)):
            self.emit("request", FakeRequest(f"{url}asset{i}.js"))

    async def wait_for_load_state(self, state: str, timeout: float = None) -> None:
        if "idle_timeout" in self.broken:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self._check("networkidle")

    # reading --------------------------------------------------------------
    async def title(self) -> str:
        self._check("title")
        return self.current.get("title", "")

    async def eval_on_selector_all(self, selector: str, script: str, arg: Any = None) -> Any:
        self._check(selector)
        desc = self.current
        if selector in {f"h{i}" for i in range(1, 7)}:
            return desc.get("headings", {}).get(selector, [])
        mapping = {
            'meta[name="description"]': desc.get("description", ""),
            "meta": desc.get("meta", []),
            'meta[property^="og:"]': [
                {"key": k, "content": v} for k, v in desc.get("og", {}).items()
            ],
            'meta[name^="twitter:"]': [
                {"key": k, "content": v} for k, v in desc.get("twitter", {}).items()
            ],
            'script[type="application/ld+json"]': desc.get("jsonld", []),
            "[itemtype]": desc.get("microdata", []),
            "ul, ol": desc.get("lists", []),
            "img": desc.get("images", []),
            "form": desc.get("forms", []),
            "table": desc.get("tables", []),
            "iframe": desc.get("iframes", []),
            "a": desc.get("links", []),
        }
        return mapping[selector]

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        name = _SCRIPT_NAMES.get(script)
        if name is None:
            raise AssertionError(f"unexpected page script {script!r}")
        self._check(name)
        desc = self.current
        if name == "scroll_height":
            heights = desc.get("heights", [1000])
            value = heights[min(self._height_index, len(heights) - 1)]
            return value
        if name == "scroll_bottom":
            self.scroll_calls.append("bottom")
            self._height_index += 1
            return None
        if name == "scroll_top":
            self.scroll_calls.append("top")
            return None
        if name == "shadow":
            return desc.get("shadow", [])
        if name == "computed_styles":
            assert arg and "color" in arg
            return desc.get("styles", {})
        if name == "storage":
            return desc.get(
                "storage", {"localStorage": {}, "sessionStorage": {}, "cookies": ""}
            )
        if name == "text":
            return desc.get("text", [])
        return None

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        self._check(selector)
        return list(self.current.get("elements", []))

    async def screenshot(self, full_page: bool = False, **kwargs: Any) -> bytes:
        self._check("screenshot_full" if full_page else "screenshot")
        return b"PNG-full" if full_page else b"PNG-viewport"

    async def pdf(self, format: str = "A4") -> bytes:
        self._check("pdf")
        return b"%PDF-1.4 fake"


def link(href: str, external: bool = False, text: str = "") -> Dict[str, Any]:
    return {
        "text": text,
        "href": href,
        "title": "",
        "target": "",
        "rel": "",
        "id": "",
        "classes": [],
        "isExternal": external,
    }


class FakeBrowser:
    """Browser factory handing out one FakePage and tracking its lifecycle."""

    def __init__(self, page: FakePage, fail_on_enter: bool = False) -> None:
        self.page = page
        self.fail_on_enter = fail_on_enter
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def _session(self):
        from page_scout.errors import ResourceFailure

        if self.fail_on_enter:
            raise ResourceFailure("Could not start browser: no chromium")
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1

    def __call__(self):
        return self._session()


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def fast_config() -> ScraperConfig:
    """Config with all waits switched off and no HTTP retries."""
    return ScraperConfig(
        compliance=ComplianceConfig(retry_times=0, http_timeout=2.0),
        extraction=ExtractionConfig(scroll_delay=0, element_settle_delay=0),
        crawl=CrawlConfig(inter_request_delay=0),
    )


@pytest.fixture()
def make_gate(fast_config, fetcher, clock):
    """Build a ComplianceGate over the shared fake fetcher and clock."""

    def _make(config: Optional[ComplianceConfig] = None, limiters: Optional[RateLimiterRegistry] = None):
        compliance = config or fast_config.compliance
        cache = PolicyCache(fetcher, ttl=compliance.robots_ttl, clock=clock)
        limiters = limiters or RateLimiterRegistry(
            compliance.rate_limit_max, compliance.rate_limit_window, clock=clock
        )
        return ComplianceGate(compliance, cache, limiters, fetcher)

    return _make


@pytest.fixture()
def make_page():
    return FakePage


@pytest.fixture()
def sample_page() -> Dict[str, Any]:
    """A page description exercising every extraction stage."""
    return {
        "title": "Example Shop",
        "description": "Best widgets in town",
        "meta": [
            {"name": "description", "content": "Best widgets in town"},
            {"name": "og:title", "content": "generic"},
            {"name": None, "content": None},
        ],
        "og": {"og:title": "Example Shop OG"},
        "twitter": {"twitter:card": "summary"},
        "jsonld": ['{"@type": "Organization", "name": "Example"}', "{not json"],
        "microdata": [{"type": "https://schema.org/Product", "id": None, "properties": []}],
        "headings": {"h1": [{"text": "Widgets", "id": "top", "classes": []}]},
        "lists": [{"type": "ul", "items": ["a", "b"], "id": "", "classes": []}],
        "images": [{"src": "https://example.com/w.png", "alt": "w", "width": 10, "height": 10}],
        "forms": [{"action": "https://example.com/search", "method": "get", "inputs": []}],
        "tables": [],
        "iframes": [],
        "shadow": [{"tagName": "MY-WIDGET", "id": "", "classes": [], "shadowContent": []}],
        "links": [
            link("https://example.com/about"),
            link("https://other.org/", external=True),
        ],
        "styles": {"#top": {"position": {"top": 0, "left": 0, "width": 10, "height": 10}, "styles": {}}},
        "storage": {"localStorage": {"k": "v"}, "sessionStorage": {}, "cookies": "a=1"},
        "text": ["Widgets", "  ", "Buy now "],
        "console": 3,
        "requests": 2,
        "elements": [FakeElement("hero"), FakeElement("hidden", visible=False)],
    }


@pytest.fixture()
def element():
    return FakeElement


@pytest.fixture()
def make_browser():
    return FakeBrowser


@pytest.fixture()
def make_link():
    return link


@pytest.fixture(autouse=True)
def fresh_logging():
    """Rebind the project logger to the current stderr (CliRunner swaps it)."""
    init_logging("WARNING")
    yield
    init_logging("WARNING")
