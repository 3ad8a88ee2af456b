# === FILE: page_scout/parser/html_parser.py ===
"""HTML text utilities used by the terms-of-service scan.

Legal pages are fetched over plain HTTP, not through the browser. Keyword
matching runs over the raw markup (meta tags, attributes and scripts
included) plus its visible text, so entity-encoded or tag-split wording is
found too:

* for the visible part, scripts, styles, ``<noscript>`` and ``<template>`` are dropped;
* remaining strings are stripped and joined by single spaces;
* matching is case-insensitive and returns the first keyword found.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Optional

from bs4 import BeautifulSoup

__all__: Sequence[str] = ("visible_text", "policy_text", "find_keyword")

_INVISIBLE = ["script", "style", "noscript", "template"]


def visible_text(html: str) -> str:
    """Return the human-visible text of *html* (plain text passes through)."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(_INVISIBLE):
        element.decompose()
    return " ".join(soup.stripped_strings)


def policy_text(html: str) -> str:
    """Raw *html* followed by its visible text: the haystack for the terms scan."""
    return f"{html} {visible_text(html)}"


def find_keyword(text: str, keywords: Iterable[str]) -> Optional[str]:
    """First keyword contained in *text*, ignoring case, or ``None``."""
    haystack = " ".join(text.lower().split())
    for keyword in keywords:
        if keyword and keyword.lower() in haystack:
            return keyword
    return None
