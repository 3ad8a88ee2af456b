"""Compliance layer: robots.txt policy cache, per-domain rate limits and the gate."""

from page_scout.compliance.fetcher import PolicyFetcher, TextResponse
from page_scout.compliance.gate import ComplianceGate
from page_scout.compliance.policy_cache import PolicyCache
from page_scout.compliance.rate_limiter import RateLimiterRegistry
from page_scout.compliance.robots import RobotsTxtRules

__all__ = [
    "ComplianceGate",
    "PolicyCache",
    "PolicyFetcher",
    "RateLimiterRegistry",
    "RobotsTxtRules",
    "TextResponse",
]
