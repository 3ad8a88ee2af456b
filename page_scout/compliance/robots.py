# page_scout/compliance/robots.py
"""
Parser and checker for robots.txt rules (RFC 9309 subset).

Longest matching rule wins, ``allow`` wins a tie, ``*`` and ``$`` wildcards
are honoured and an empty ``Disallow`` allows everything.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

__all__ = ("RobotsTxtRules",)

_Directive = Tuple[str, str]


@dataclass(slots=True)
class _Group:
    agents: List[str] = field(default_factory=list)
    directives: List[_Directive] = field(default_factory=list)
    crawl_delay: Optional[float] = None

    @property
    def has_rules(self) -> bool:
        return bool(self.directives) or self.crawl_delay is not None


class RobotsTxtRules:
    """Parsed robots.txt of one origin."""

    _WILDCARD_RE = re.compile(r"[*$]")

    def __init__(self, text: str = "") -> None:
        self._groups: List[_Group] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    @classmethod
    def allow_all(cls) -> RobotsTxtRules:
        """Policy used when the origin serves no robots.txt."""
        return cls("")

    @property
    def is_empty(self) -> bool:
        return not self._groups

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group.directives:
            if not self._match_path(path, pattern):
                continue
            length = len(self._WILDCARD_RE.sub("", pattern))
            if length > best_len or (length == best_len and directive == "allow"):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def is_allowed(self, url: str, user_agent: str) -> bool:
        """Check a full URL: its path plus query is matched against the rules."""
        parts = urlsplit(url)
        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"
        return self.can_fetch(user_agent, target)

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.crawl_delay

    # ------------------------------------------------------------------ #

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            key, _, val = line.partition(":")
            key = key.strip().lower()
            val = val.strip()
            if key == "user-agent":
                # consecutive user-agent lines share one group
                if current is None or current.has_rules:
                    current = _Group()
                    self._groups.append(current)
                current.agents.append(val.lower())
                continue
            if key not in ("allow", "disallow", "crawl-delay"):
                continue
            if current is None:
                current = _Group(agents=["*"])
                self._groups.append(current)
            if key == "crawl-delay":
                try:
                    current.crawl_delay = float(val)
                except ValueError:
                    pass
            elif val:
                current.directives.append((key, val))

    def _match_group(self, user_agent: str) -> Optional[_Group]:
        # product token only: "PageScoutBot/1.0" -> "pagescoutbot"
        token = user_agent.split("/", 1)[0].strip().lower()
        best: Optional[_Group] = None
        best_len = -1
        for group in self._groups:
            for agent in group.agents:
                if agent and agent != "*" and token.startswith(agent.split("/", 1)[0]) and len(agent) > best_len:
                    best, best_len = group, len(agent)
        if best is not None:
            return best
        for group in self._groups:
            if "*" in group.agents:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        regex = self._regex_cache.get(pattern)
        if regex is None:
            anchored = pattern.endswith("$")
            body = pattern[:-1] if anchored else pattern
            esc = re.escape(body).replace(r"\*", ".*")
            regex = re.compile(f"^{esc}$" if anchored else f"^{esc}")
            self._regex_cache[pattern] = regex
        return bool(regex.match(path))
