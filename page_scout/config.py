# === FILE: page_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации PageScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import json
import os
import errno
from pathlib import Path
from typing import Any, List, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

BOT_USER_AGENT = "PageScoutBot/1.0 (+https://pagescout.dev/bot; bot@pagescout.dev)"
POLICY_AGENT = "PageScoutBot/1.0"


class ComplianceConfig(BaseModel):
    """Настройки проверки соответствия (robots.txt, ToS, rate limit)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_agent: str = Field(POLICY_AGENT, min_length=1, description="User-Agent для robots.txt.")
    blocked_domains: Tuple[str, ...] = (
        "facebook.com",
        "instagram.com",
        "linkedin.com",
        "twitter.com",
        "youtube.com",
        "tiktok.com",
    )
    blocked_paths: Tuple[str, ...] = (
        "/login",
        "/signup",
        "/register",
        "/admin",
        "/dashboard",
        "/account",
        "/profile",
        "/api",
        "/private",
        "/secure",
        "/auth",
    )
    tos_paths: Tuple[str, ...] = ("/terms-of-service", "/terms", "/tos", "/legal")
    tos_keywords: Tuple[str, ...] = (
        "scraping",
        "crawling",
        "automated access",
        "data extraction",
        "web scraping",
        "web crawling",
    )
    robots_ttl: float = Field(24 * 60 * 60, gt=0, description="Время жизни кэша robots.txt (секунд).")
    rate_limit_max: int = Field(10, ge=1, description="Запросов на домен за окно.")
    rate_limit_window: float = Field(60.0, gt=0, description="Размер окна rate limit (секунд).")
    http_timeout: float = Field(10.0, gt=0, description="Таймаут HTTP-запроса (секунд).")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при 5xx/429.")
    tos_retry_times: int = Field(0, ge=0, description="Повторы для страниц условий использования.")

    @field_validator("blocked_domains", "tos_keywords", mode="after")
    def _lowercase(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(item.strip().lower() for item in v if item.strip())

    @field_validator("blocked_paths", "tos_paths", mode="after")
    def _leading_slash(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(p if p.startswith("/") else f"/{p}" for p in (i.strip().lower() for i in v) if p)


class BrowserConfig(BaseModel):
    """Параметры запуска Chromium."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    headless: bool = True
    user_agent: str = Field(BOT_USER_AGENT, min_length=1)
    launch_timeout: float = Field(120.0, gt=0, description="Таймаут запуска браузера (секунд).")
    viewport_width: int = Field(1280, ge=1)
    viewport_height: int = Field(720, ge=1)
    args: List[str] = Field(
        default_factory=lambda: [
            "--disable-dev-shm-usage",
            "--disable-setuid-sandbox",
            "--no-sandbox",
            "--disable-gpu",
        ]
    )


class ExtractionConfig(BaseModel):
    """Таймауты и лимиты конвейера извлечения."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    navigation_timeout: float = Field(90.0, gt=0)
    network_idle_timeout: float = Field(15.0, gt=0)
    capture_idle_timeout: float = Field(5.0, gt=0)
    scroll_delay: float = Field(1.0, ge=0)
    max_console_logs: int = Field(100, ge=0)
    max_network_requests: int = Field(100, ge=0)
    max_element_screenshots: int = Field(5, ge=0)
    element_settle_delay: float = Field(0.5, ge=0)
    element_scroll_timeout: float = Field(5.0, gt=0)
    element_screenshot_timeout: float = Field(10.0, gt=0)
    pdf_format: str = "A4"


class CrawlConfig(BaseModel):
    """Параметры обхода связанных страниц."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    inter_request_delay: float = Field(2.0, ge=0, description="Пауза между страницами (секунд).")
    max_linked_pages: int = Field(10, ge=0, description="Лимит связанных страниц.")


class ScraperConfig(BaseModel):
    """Полная конфигурация одного процесса PageScout."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)


class CrawlRequest(BaseModel):
    """Входной контракт запроса на обход."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    url: str = Field(..., min_length=1)
    handle_infinite_scroll: bool = Field(False, alias="handleInfiniteScroll")
    max_scrolls: int = Field(5, ge=0, alias="maxScrolls")
    take_screenshots: bool = Field(False, alias="takeScreenshots")
    generate_pdf: bool = Field(False, alias="generatePDF")
    max_depth: int = Field(1, ge=0, alias="maxDepth")

    @field_validator("url", mode="before")
    def _strip(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ScraperConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScraperConfig.
    Без пути берёт configs/default.yaml, а при его отсутствии – значения по умолчанию.
    Явно указанный, но отсутствующий файл – FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ScraperConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ScraperConfig(**data)


__all__ = [
    "BOT_USER_AGENT",
    "POLICY_AGENT",
    "ComplianceConfig",
    "BrowserConfig",
    "ExtractionConfig",
    "CrawlConfig",
    "ScraperConfig",
    "CrawlRequest",
    "load_config",
]
