# page_scout/models.py
"""
Data models for PageScout: compliance decisions, cache/limiter state and page snapshots.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = (
    "DecisionReason",
    "ComplianceDecision",
    "PolicyCacheEntry",
    "DomainLimiterState",
    "PageSnapshot",
    "CrawlResult",
    "LEGAL_NOTICE",
)

LEGAL_NOTICE = (
    "This data was collected in compliance with robots.txt, terms of service, and other "
    "legal requirements. Please ensure you have the right to use this data according to "
    "applicable laws and regulations."
)


class DecisionReason(str, Enum):
    OK = "OK"
    BLOCKED_DOMAIN = "BLOCKED_DOMAIN"
    BLOCKED_PATH = "BLOCKED_PATH"
    ROBOTS_DENIED = "ROBOTS_DENIED"
    TOS_DENIED = "TOS_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_URL = "INVALID_URL"


_MESSAGES: Dict[DecisionReason, str] = {
    DecisionReason.OK: "Scraping is allowed",
    DecisionReason.BLOCKED_DOMAIN: "Scraping is not allowed for this domain due to legal restrictions",
    DecisionReason.BLOCKED_PATH: "Scraping is not allowed for this path due to legal restrictions",
    DecisionReason.ROBOTS_DENIED: "Scraping is not allowed according to robots.txt",
    DecisionReason.TOS_DENIED: "Scraping is not allowed according to the website's terms of service",
    DecisionReason.RATE_LIMITED: "Too many requests to this domain. Please try again later.",
    DecisionReason.INVALID_URL: "Invalid URL format",
}


@dataclass(frozen=True, slots=True)
class ComplianceDecision:
    """Allow/deny verdict for one URL. Built fresh per check, never stored."""

    allowed: bool
    reason: DecisionReason

    @classmethod
    def allow(cls) -> ComplianceDecision:
        return cls(True, DecisionReason.OK)

    @classmethod
    def deny(cls, reason: DecisionReason) -> ComplianceDecision:
        if reason is DecisionReason.OK:
            raise ValueError("deny() needs a failure reason")
        return cls(False, reason)

    @property
    def message(self) -> str:
        return _MESSAGES[self.reason]

    def to_dict(self) -> Dict[str, Any]:
        return {"allowed": self.allowed, "reason": self.reason.value, "message": self.message}


@dataclass(frozen=True, slots=True)
class PolicyCacheEntry:
    """Cached robots policy of one origin; replaced on refresh, never mutated."""

    domain: str
    policy: Any
    fetched_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now >= self.fetched_at + ttl


@dataclass(slots=True)
class DomainLimiterState:
    """Fixed-window counter of one domain."""

    domain: str
    window_start: float
    count: int = 0
    window_size: float = 60.0
    max_requests: int = 10


# Python attribute -> wire name of the snapshot JSON
_WIRE_NAMES: Dict[str, str] = {
    "url": "url",
    "title": "title",
    "description": "description",
    "metadata": "metadata",
    "structured_data": "structuredData",
    "content_structure": "contentStructure",
    "links": "links",
    "computed_styles": "cssProperties",
    "storage_data": "storageData",
    "console_logs": "consoleLogs",
    "network_requests": "networkRequests",
    "screenshots": "screenshots",
    "pdf": "pdf",
    "text_nodes": "textContent",
    "stage_errors": "stageErrors",
    "error": "error",
}


@dataclass(slots=True)
class PageSnapshot:
    """Structured extraction result of a single URL.

    Fields left as ``None`` were not produced, either because the stage was
    not requested or because it failed (see :attr:`stage_errors`). A snapshot
    with :attr:`error` set comes from a page that could not be opened at all.
    """

    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    structured_data: Optional[List[Dict[str, Any]]] = None
    content_structure: Optional[Dict[str, Any]] = None
    links: Optional[List[Dict[str, Any]]] = None
    computed_styles: Optional[Dict[str, Any]] = None
    storage_data: Optional[Dict[str, Any]] = None
    console_logs: Optional[List[Dict[str, Any]]] = None
    network_requests: Optional[List[Dict[str, Any]]] = None
    screenshots: Optional[Dict[str, Any]] = None
    pdf: Optional[str] = None
    text_nodes: Optional[List[str]] = None
    stage_errors: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failed(cls, url: str, error: str) -> PageSnapshot:
        return cls(url=url, error=error)

    @property
    def is_degraded(self) -> bool:
        return self.error is not None or bool(self.stage_errors)

    def internal_links(self) -> List[str]:
        """hrefs of non-external links in document order (duplicates kept)."""
        return [
            link["href"]
            for link in self.links or []
            if not link.get("isExternal") and link.get("href")
        ]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for attr, wire in _WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None or (attr == "stage_errors" and not value):
                continue
            out[wire] = value
        return out


@dataclass(slots=True)
class CrawlResult:
    """Seed page snapshot plus snapshots of the pages it links to."""

    main_page: PageSnapshot
    linked_pages: List[PageSnapshot] = field(default_factory=list)
    legal_notice: str = LEGAL_NOTICE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mainPage": self.main_page.to_dict(),
            "linkedPages": [p.to_dict() for p in self.linked_pages],
            "legalNotice": self.legal_notice,
        }
