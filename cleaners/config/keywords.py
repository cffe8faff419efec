"""
Keyword lists for the partner-shop recommendation policy.

The lists are plain data. Deployments can extend them without code changes
by pointing RECOMMEND_KEYWORDS_PATH at a JSON file of the form:

    {
        "premium_fabrics": ["alpaca", "알파카"],
        "stale_stain_phrases": ["last month"],
        "professional_phrases": ["tailor"]
    }

Entries from the file are appended to the built-in defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from cleaners.config.logging import get_logger

logger = get_logger(__name__)


PREMIUM_FABRICS = (
    "실크", "silk",
    "캐시미어", "cashmere",
    "가죽", "leather",
    "울", "wool",
    "린넨", "linen",
    "벨벳", "velvet",
    "스웨이드", "suede",
    "모피", "fur",
)

# Stains left long enough (48h+) that home treatment rarely works
STALE_STAIN_PHRASES = (
    "며칠", "일주일", "몇일", "오래", "48시간",
    "2일", "3일", "이틀", "사흘", "나흘",
    "a few days", "a week", "48 hours", "2 days", "3 days",
)

PROFESSIONAL_PHRASES = (
    "맡기", "세탁소", "전문", "드라이클리닝", "드라이 클리닝",
    "맡길까", "맡기면", "클리닝", "업체",
    "dry cleaning", "dry cleaner", "professional", "drop off",
)

_FILE_KEYS = ("premium_fabrics", "stale_stain_phrases", "professional_phrases")


@dataclass(frozen=True)
class RecommendationKeywords:
    """The three keyword groups checked by the recommendation policy."""

    premium_fabrics: tuple[str, ...] = PREMIUM_FABRICS
    stale_stain_phrases: tuple[str, ...] = STALE_STAIN_PHRASES
    professional_phrases: tuple[str, ...] = PROFESSIONAL_PHRASES

    def extended(self, **extra: list[str]) -> "RecommendationKeywords":
        """Return a copy with extra keywords appended to the named groups."""
        return RecommendationKeywords(
            **{
                key: getattr(self, key) + tuple(extra.get(key) or ())
                for key in _FILE_KEYS
            }
        )


DEFAULT_KEYWORDS = RecommendationKeywords()


def load_keywords(path: str | Path | None = None) -> RecommendationKeywords:
    """
    Load recommendation keywords, extending the defaults from a JSON file.

    Args:
        path: Optional JSON file. Defaults to RECOMMEND_KEYWORDS_PATH.

    Returns:
        RecommendationKeywords with defaults plus any file entries.

    Raises:
        ValueError: If the file is not a JSON object of string lists.
    """
    if path is None:
        from cleaners.config import RECOMMEND_KEYWORDS_PATH

        path = RECOMMEND_KEYWORDS_PATH
    if not path:
        return DEFAULT_KEYWORDS

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Keyword file {path} must contain a JSON object")

    extra = {}
    for key in _FILE_KEYS:
        values = data.get(key, [])
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError(f"Keyword file {path}: '{key}' must be a list of strings")
        extra[key] = values

    unknown = set(data) - set(_FILE_KEYS)
    if unknown:
        logger.warning("Ignoring unknown keyword groups in %s: %s", path, sorted(unknown))

    logger.info(
        "Loaded keyword overrides from %s (%d extra)",
        path,
        sum(len(v) for v in extra.values()),
    )
    return DEFAULT_KEYWORDS.extended(**extra)


__all__ = [
    "PREMIUM_FABRICS",
    "STALE_STAIN_PHRASES",
    "PROFESSIONAL_PHRASES",
    "RecommendationKeywords",
    "DEFAULT_KEYWORDS",
    "load_keywords",
]
