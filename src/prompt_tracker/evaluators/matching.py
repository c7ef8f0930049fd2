"""Text matching helpers shared by the evaluators."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def pattern_matches(pattern: str, text: str, ignore_case: bool = False) -> bool:
    """Regex search, falling back to substring match for invalid patterns."""
    flags = re.IGNORECASE if ignore_case else 0
    try:
        return re.search(pattern, text, flags) is not None
    except re.error:
        logger.warning("Invalid regex %r, using substring match", pattern)
        if ignore_case:
            return pattern.lower() in text.lower()
        return pattern in text


def contains(needle: str, haystack: str, case_sensitive: bool = False) -> bool:
    if case_sensitive:
        return needle in haystack
    return needle.lower() in haystack.lower()


def url_host(url: str | None) -> str:
    if not url:
        return ""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def glob_matches(pattern: str, name: str) -> bool:
    """Simple ``*`` wildcard match, case-insensitive, anywhere in the name."""
    if "*" not in pattern:
        return False
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.search(regex, name, re.IGNORECASE) is not None


def ratio_score(matched: int, expected: int) -> float:
    if expected <= 0:
        return 100.0
    return min(matched / expected, 1.0) * 100.0
