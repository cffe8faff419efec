"""
Qdrant vector store adapter.

Wraps Qdrant client operations for the two collections the assistant uses:
laundry knowledge articles (semantic search) and partner cleaner shops
(payload-filtered lookup by zipcode).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qdrant_client import QdrantClient

from cleaners.config import (
    EMBEDDING_DIM,
    KNOWLEDGE_COLLECTION,
    PARTNER_COLLECTION,
    QDRANT_API_KEY,
    QDRANT_TIMEOUT,
    QDRANT_URL,
    get_logger,
)
from cleaners.core import KnowledgeItem, PartnerShop
from cleaners.utils import require_import, thread_safe_singleton

logger = get_logger(__name__)

_POINT_NAMESPACE = uuid.UUID("5f0c3a52-8c1e-4d7b-9a57-0b6f7c2d9e11")

# Lower value sorts first
_PRIORITY_ORDER = {"premium": 0, "partner": 1, "standard": 2}

# Points per scroll request when reading a zipcode's partner shops
_SCROLL_PAGE_SIZE = 100


def point_id(item_id: str) -> str:
    """
    Derive a deterministic Qdrant point ID from an application ID.

    Qdrant only accepts UUIDs or unsigned integers as point IDs.
    """
    return str(uuid.uuid5(_POINT_NAMESPACE, item_id))


def is_configured() -> bool:
    """True if a Qdrant URL is set for this deployment."""
    return bool(QDRANT_URL)


@thread_safe_singleton
def get_client() -> "QdrantClient":
    """
    Get or create the global Qdrant client connection.

    Raises:
        ImportError: If qdrant-client is not installed.
        RuntimeError: If QDRANT_URL is not configured.
    """
    qdrant = require_import("qdrant_client", pip_name="qdrant-client")
    if not QDRANT_URL:
        raise RuntimeError("QDRANT_URL is not configured")

    if QDRANT_API_KEY:
        return qdrant.QdrantClient(url=QDRANT_URL, api_key=QDRANT_API_KEY, timeout=QDRANT_TIMEOUT)
    return qdrant.QdrantClient(url=QDRANT_URL, timeout=QDRANT_TIMEOUT)


def ensure_collection(
    client,
    collection_name: str = KNOWLEDGE_COLLECTION,
    dim: int = EMBEDDING_DIM,
) -> None:
    """Create a cosine collection if it does not exist yet."""
    from qdrant_client.models import Distance, VectorParams

    collections = client.get_collections().collections
    if any(c.name == collection_name for c in collections):
        return

    logger.info("Creating collection: %s", collection_name)
    client.create_collection(
        collection_name=collection_name,
        vectors_config=VectorParams(size=dim, distance=Distance.COSINE),
    )


def collection_exists(client, collection_name: str = KNOWLEDGE_COLLECTION) -> bool:
    """Check if a collection exists."""
    try:
        collections = client.get_collections().collections
        return any(c.name == collection_name for c in collections)
    except Exception as e:
        logger.debug("collection_exists check failed: %s", e)
        return False


# ---------------------------------------------------------------------------
# Knowledge collection
# ---------------------------------------------------------------------------


def _knowledge_from_payload(payload: dict, score: float | None = None) -> KnowledgeItem:
    return KnowledgeItem(
        id=payload.get("item_id", ""),
        title=payload.get("title") or "Unknown",
        content=payload.get("content") or "",
        category=payload.get("category") or "general",
        tags=list(payload.get("tags") or []),
        status=payload.get("status") or "active",
        score=score,
    )


def upsert_knowledge(
    client,
    item: KnowledgeItem,
    embedding: list[float],
    collection_name: str = KNOWLEDGE_COLLECTION,
) -> None:
    """Insert or replace a knowledge article."""
    from qdrant_client.models import PointStruct

    payload = {"item_id": item.id, **item.to_payload()}
    client.upsert(
        collection_name=collection_name,
        points=[PointStruct(id=point_id(item.id), vector=embedding, payload=payload)],
    )
    logger.info("Indexed knowledge %s into %s", item.id, collection_name)


def search_knowledge(
    client,
    query_embedding: list[float],
    collection_name: str = KNOWLEDGE_COLLECTION,
    limit: int = 3,
) -> list[KnowledgeItem]:
    """
    Search active knowledge articles by similarity.

    Returns:
        Items sorted by score descending.
    """
    from qdrant_client.models import FieldCondition, Filter, MatchValue

    results = client.query_points(
        collection_name=collection_name,
        query=query_embedding,
        query_filter=Filter(
            must=[FieldCondition(key="status", match=MatchValue(value="active"))]
        ),
        limit=limit,
        with_payload=True,
    )
    return [_knowledge_from_payload(hit.payload or {}, hit.score) for hit in results.points]


def list_knowledge(
    client,
    collection_name: str = KNOWLEDGE_COLLECTION,
    limit: int = 100,
) -> list[KnowledgeItem]:
    """List stored knowledge articles (first page only)."""
    points, _next = client.scroll(
        collection_name=collection_name,
        limit=limit,
        with_payload=True,
        with_vectors=False,
    )
    return [_knowledge_from_payload(p.payload or {}) for p in points]


def delete_knowledge(
    client,
    item_id: str,
    collection_name: str = KNOWLEDGE_COLLECTION,
) -> None:
    """Delete a knowledge article by application ID."""
    from qdrant_client.models import PointIdsList

    client.delete(
        collection_name=collection_name,
        points_selector=PointIdsList(points=[point_id(item_id)]),
    )
    logger.info("Deleted knowledge %s from %s", item_id, collection_name)


# ---------------------------------------------------------------------------
# Partner collection
# ---------------------------------------------------------------------------


def create_partner_indexes(client, collection_name: str = PARTNER_COLLECTION) -> None:
    """Create keyword payload indexes for the zipcode lookup filter."""
    from qdrant_client.models import PayloadSchemaType

    indexes = [
        ("zipcode", PayloadSchemaType.KEYWORD),
        ("subscription_status", PayloadSchemaType.KEYWORD),
    ]
    for field_name, field_schema in indexes:
        try:
            client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=field_schema,
            )
        except Exception as e:
            logger.error("Failed to create index for %s: %s", field_name, e)
            raise

    logger.info("Indexes created for: %s", ", ".join(f for f, _ in indexes))


def upsert_partner_shops(
    client,
    shops: list[PartnerShop],
    embeddings: list[list[float]],
    collection_name: str = PARTNER_COLLECTION,
) -> None:
    """Insert or replace partner shops, keyed by name and zipcode."""
    from qdrant_client.models import PointStruct

    if len(shops) != len(embeddings):
        raise ValueError(f"Got {len(shops)} shops but {len(embeddings)} embeddings")

    points = [
        PointStruct(
            id=point_id(f"shop:{shop.zipcode}:{shop.name}"),
            vector=embedding,
            payload=shop.to_dict(),
        )
        for shop, embedding in zip(shops, embeddings)
    ]
    client.upsert(collection_name=collection_name, points=points)
    logger.info("Upserted %d partner shops into %s", len(points), collection_name)


def _shop_from_payload(payload: dict) -> PartnerShop:
    return PartnerShop(
        name=payload.get("name") or "Unknown Shop",
        zipcode=payload.get("zipcode") or "",
        priority=payload.get("priority") or "partner",
        rating=float(payload.get("rating") or 0.0),
        specialties=frozenset(payload.get("specialties") or []),
        subscription_status=payload.get("subscription_status") or "active",
    )


def find_partner_shops(
    client,
    zipcode: str,
    collection_name: str = PARTNER_COLLECTION,
    limit: int = 3,
) -> list[PartnerShop]:
    """
    Find active partner shops for a zipcode.

    Every matching point is read before ordering by priority tier, then
    rating descending, then name, so repeated lookups return the same
    sequence.
    """
    from qdrant_client.models import FieldCondition, Filter, MatchValue

    scroll_filter = Filter(
        must=[
            FieldCondition(key="zipcode", match=MatchValue(value=zipcode)),
            FieldCondition(key="subscription_status", match=MatchValue(value="active")),
        ]
    )
    shops = []
    offset = None
    while True:
        points, offset = client.scroll(
            collection_name=collection_name,
            scroll_filter=scroll_filter,
            limit=_SCROLL_PAGE_SIZE,
            offset=offset,
            with_payload=True,
            with_vectors=False,
        )
        shops.extend(_shop_from_payload(p.payload or {}) for p in points)
        if offset is None:
            break

    shops.sort(key=lambda s: (_PRIORITY_ORDER.get(s.priority, 99), -s.rating, s.name))
    return shops[:limit]


__all__ = [
    "point_id",
    "is_configured",
    "get_client",
    "ensure_collection",
    "collection_exists",
    "upsert_knowledge",
    "search_knowledge",
    "list_knowledge",
    "delete_knowledge",
    "create_partner_indexes",
    "upsert_partner_shops",
    "find_partner_shops",
]
