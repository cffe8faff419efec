"""
Partner-shop recommendation policy.

A pure predicate deciding whether the assistant should point the user at a
professional cleaner. Conditions are OR-ed and the first match wins:

1. A numeric success-rate signal between 0 and 60 (exclusive)
2. A premium fabric is mentioned (silk, cashmere, leather, ...)
3. The stain has been sitting for a while ("a few days", "48 hours", ...)
4. The user asks about professional service ("dry cleaning", "drop off", ...)

Keyword matching is case-insensitive substring matching, not whole-word:
"울" matches "울 니트" and "fur" matches "furry".
"""

from __future__ import annotations

from typing import Iterable

from cleaners.config import DEFAULT_KEYWORDS, SUCCESS_RATE_THRESHOLD, RecommendationKeywords


def contains_any(message: str, keywords: Iterable[str]) -> bool:
    """Return True if any keyword is a case-insensitive substring of message."""
    lowered = message.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def success_rate_is_low(
    success_rate: int | None,
    threshold: int = SUCCESS_RATE_THRESHOLD,
) -> bool:
    """A rate of 0 or None means 'no signal', not 'certain failure'."""
    return success_rate is not None and 0 < success_rate < threshold


def should_recommend(
    message: str,
    success_rate: int | None = None,
    keywords: RecommendationKeywords = DEFAULT_KEYWORDS,
    threshold: int = SUCCESS_RATE_THRESHOLD,
) -> bool:
    """
    Decide whether to suggest a professional partner shop.

    Args:
        message: The user's message text.
        success_rate: Optional estimated home-treatment success rate (percent).
        keywords: Keyword groups to match against.
        threshold: Success rates below this (and above 0) trigger a suggestion.

    Returns:
        True if any condition holds.
    """
    if success_rate_is_low(success_rate, threshold):
        return True
    if contains_any(message, keywords.premium_fabrics):
        return True
    if contains_any(message, keywords.stale_stain_phrases):
        return True
    if contains_any(message, keywords.professional_phrases):
        return True
    return False


__all__ = [
    "contains_any",
    "success_rate_is_low",
    "should_recommend",
]
