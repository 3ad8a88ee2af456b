# page_scout/extraction/capture.py
"""
Console and network capture for one page visit.

Listeners are attached before navigation and feed two capped, append-only
buffers. Collection ends when :meth:`EventRecorder.settle` finishes its
bounded network-idle wait, after which listeners are detached and the
buffers are frozen.
"""
from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, Generic, List, TypeVar

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_scout.logger import logger

__all__ = ("CappedBuffer", "EventRecorder")

T = TypeVar("T")


class CappedBuffer(Generic[T]):
    """Thread-safe append-only list that silently ignores items past ``capacity``."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._items: List[T] = []
        self._dropped = 0
        self._closed = False
        self._lock = threading.Lock()

    def append(self, item: T) -> bool:
        with self._lock:
            if self._closed or len(self._items) >= self.capacity:
                self._dropped += 1
                return False
            self._items.append(item)
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def dropped(self) -> int:
        return self._dropped

    def snapshot(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class EventRecorder:
    """Two producers (console, request events) feeding capped buffers."""

    def __init__(self, max_logs: int = 100, max_requests: int = 100) -> None:
        self.console_logs: CappedBuffer[Dict[str, Any]] = CappedBuffer(max_logs)
        self.network_requests: CappedBuffer[Dict[str, Any]] = CappedBuffer(max_requests)
        self._page: Any = None

    def attach(self, page: Any) -> None:
        self._page = page
        page.on("console", self._on_console)
        page.on("request", self._on_request)

    def detach(self) -> None:
        page, self._page = self._page, None
        if page is None:
            return
        for event, handler in (("console", self._on_console), ("request", self._on_request)):
            try:
                page.remove_listener(event, handler)
            except Exception as exc:  # pragma: no cover - page already gone
                logger.debug("Could not remove %s listener: %s", event, exc)
        self.console_logs.close()
        self.network_requests.close()

    async def settle(self, page: Any, timeout: float) -> None:
        """Keep collecting until the network is idle or *timeout* seconds pass."""
        try:
            await page.wait_for_load_state("networkidle", timeout=timeout * 1000)
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as exc:
            logger.debug("Network not idle within %.1fs during capture: %s", timeout, exc)
        finally:
            self.detach()

    def _on_console(self, msg: Any) -> None:
        self.console_logs.append(
            {"type": msg.type, "text": msg.text, "location": msg.location}
        )

    def _on_request(self, request: Any) -> None:
        self.network_requests.append(
            {
                "url": request.url,
                "method": request.method,
                "headers": request.headers,
                "resourceType": request.resource_type,
            }
        )
