# File: page_scout/errors.py
"""page_scout.errors: Иерархия исключений PageScout.

* :class:`InputError` – URL отклонён до любой сетевой активности.
* :class:`ComplianceDenied` – проверка соответствия вернула отказ.
* :class:`ExtractionDegraded` – упал отдельный этап извлечения.
* :class:`NavigationFailed` – страницу не удалось открыть.
* :class:`ResourceFailure` – браузер/страницу не удалось получить или закрыть.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from page_scout.models import ComplianceDecision

__all__ = (
    "PageScoutError",
    "InputError",
    "ComplianceDenied",
    "ExtractionDegraded",
    "NavigationFailed",
    "ResourceFailure",
)


class PageScoutError(Exception):
    """Base class for every error raised by PageScout."""


class InputError(PageScoutError, ValueError):
    """Malformed crawl input (usually the URL)."""


class ComplianceDenied(PageScoutError):
    """The compliance gate refused the URL."""

    def __init__(self, url: str, decision: ComplianceDecision) -> None:
        self.url = url
        self.decision = decision
        super().__init__(f"{decision.message} ({decision.reason.value}): {url}")

    @property
    def reason(self):
        return self.decision.reason


class ExtractionDegraded(PageScoutError):
    """A single extraction stage failed; the snapshot is still returned."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {type(cause).__name__}: {cause}")


class NavigationFailed(PageScoutError):
    """The page could not be navigated to."""

    def __init__(self, url: str, cause: BaseException) -> None:
        self.url = url
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class ResourceFailure(PageScoutError):
    """Browser or page could not be acquired or released."""
