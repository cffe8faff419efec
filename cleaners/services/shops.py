"""
Partner shop directory and recommendation evaluator.

The evaluator couples the keyword recommendation policy with a shop
directory. Lookups are best-effort: a failed lookup means "no
recommendation", never a failed chat turn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from cleaners.adapters import vector_store
from cleaners.api.metrics import record_fallback
from cleaners.config import (
    PARTNER_COLLECTION,
    SHOP_LOOKUP_LIMIT,
    SUCCESS_RATE_THRESHOLD,
    RecommendationKeywords,
    get_logger,
    load_keywords,
)
from cleaners.core import PartnerShop, ShopLookupError, should_recommend

if TYPE_CHECKING:
    from qdrant_client import QdrantClient

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


class ShopDirectory(Protocol):
    """Source of partner shops for a location key (typically a zipcode)."""

    def find_by_location(self, location_key: str) -> list[PartnerShop]:
        """
        Raises:
            ShopLookupError: If the backing directory cannot be queried.
        """
        ...


class StaticShopDirectory:
    """
    Fixed two-shop directory used when no partner index is configured.

    Every non-empty location gets the same shops, relabelled with the
    requested zipcode.
    """

    def find_by_location(self, location_key: str) -> list[PartnerShop]:
        if not location_key:
            return []
        return [
            PartnerShop(
                name="클린마스터 세탁소",
                zipcode=location_key,
                priority="partner",
                rating=4.8,
                specialties=frozenset({"실크", "캐시미어", "명품가방"}),
            ),
            PartnerShop(
                name="프리미엄 드라이클리닝",
                zipcode=location_key,
                priority="partner",
                rating=4.6,
                specialties=frozenset({"정장", "웨딩드레스", "가죽"}),
            ),
        ]


class QdrantShopDirectory:
    """Partner shops stored as payloads in a Qdrant collection."""

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str = PARTNER_COLLECTION,
        limit: int = SHOP_LOOKUP_LIMIT,
    ):
        self.client = client
        self.collection_name = collection_name
        self.limit = limit

    def find_by_location(self, location_key: str) -> list[PartnerShop]:
        if not location_key:
            return []
        try:
            return vector_store.find_partner_shops(
                self.client,
                location_key,
                collection_name=self.collection_name,
                limit=self.limit,
            )
        except Exception as e:
            raise ShopLookupError(f"Partner lookup failed for {location_key}: {e}") from e


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class RecommendationEvaluator:
    """
    Decides when to suggest a professional cleaner and which shops to show.

    Args:
        directory: Shop source. Defaults to the static directory.
        keywords: Keyword groups. Defaults to the configured keyword file
            (or built-in defaults when none is set).
        threshold: Success-rate threshold for the low-confidence trigger.
    """

    def __init__(
        self,
        directory: ShopDirectory | None = None,
        keywords: RecommendationKeywords | None = None,
        threshold: int = SUCCESS_RATE_THRESHOLD,
    ):
        self.directory = directory or StaticShopDirectory()
        self.keywords = keywords or load_keywords()
        self.threshold = threshold

    def should_recommend(self, message: str, success_rate: int | None = None) -> bool:
        return should_recommend(
            message,
            success_rate,
            keywords=self.keywords,
            threshold=self.threshold,
        )

    def get_shops_by_location(self, location_key: str) -> list[PartnerShop]:
        """Shops for a location; empty on a blank key or any lookup failure."""
        if not location_key:
            return []
        try:
            return list(self.directory.find_by_location(location_key))
        except Exception:
            logger.warning("Shop lookup failed for %s", location_key, exc_info=True)
            record_fallback("shop_lookup")
            return []


__all__ = [
    "ShopDirectory",
    "StaticShopDirectory",
    "QdrantShopDirectory",
    "RecommendationEvaluator",
]
