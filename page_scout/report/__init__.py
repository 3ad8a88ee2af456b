# File: page_scout/report/__init__.py
"""page_scout.report: Генерация отчётов об обходе (JSON и HTML) для CLI."""

from __future__ import annotations

from page_scout.report.html_report import DEFAULT_TEMPLATE_DIR, render_html
from page_scout.report.json_report import render_json

__all__ = ["render_json", "render_html", "DEFAULT_TEMPLATE_DIR"]
