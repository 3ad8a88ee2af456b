# File: page_scout/utils.py
"""page_scout.utils: Утилитарные функции для разбора URL и списков ссылок."""

from __future__ import annotations

from typing import Collection, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from page_scout.logger import logger

__all__: Sequence[str] = (
    "is_valid_url",
    "origin_of",
    "domain_of",
    "robots_url",
    "remove_duplicates",
)

_ALLOWED_SCHEMES = ("http", "https")


def is_valid_url(url: str) -> bool:
    """Проверяет, что URL разбирается и содержит http(s)-схему, хост и корректный порт."""
    if not isinstance(url, str) or not url or any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlsplit(url)
        # .port бросает ValueError на нечисловом или вне диапазона
        _ = parts.port
    except ValueError as exc:
        logger.debug("URL parse error %s: %s", url, exc)
        return False
    valid = parts.scheme.lower() in _ALLOWED_SCHEMES and bool(parts.hostname)
    logger.debug("URL valid: %s -> %s", url, valid)
    return valid


def origin_of(url: str) -> str:
    """Возвращает origin (scheme://host[:port]) в нижнем регистре."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{parts.port}" if parts.port else host
    return urlunsplit((parts.scheme.lower(), netloc, "", "", ""))


def domain_of(url: str) -> Optional[str]:
    """Возвращает hostname без порта или None."""
    return urlsplit(url).hostname


def robots_url(origin: str) -> str:
    return f"{origin.rstrip('/')}/robots.txt"


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
