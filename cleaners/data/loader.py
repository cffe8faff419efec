"""
Load seed knowledge articles and partner shops from JSON files.
"""

import json
from pathlib import Path

from cleaners.adapters import vector_store
from cleaners.config import DATA_DIR, PARTNER_COLLECTION, get_logger
from cleaners.core import KnowledgeItem, PartnerShop

logger = get_logger(__name__)

KNOWLEDGE_FILE = DATA_DIR / "knowledge.json"
PARTNER_FILE = DATA_DIR / "partner_shops.json"


def _read_list(path: Path) -> list[dict]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise ValueError(f"{path} must contain a JSON array of objects")
    return data


def load_knowledge_file(path: str | Path = KNOWLEDGE_FILE) -> list[KnowledgeItem]:
    """
    Load knowledge articles.

    Each entry needs ``title`` and ``content``; ``id``, ``category`` and
    ``tags`` are optional.

    Raises:
        ValueError: If the file is malformed or an entry lacks title/content.
    """
    items = []
    for i, row in enumerate(_read_list(Path(path))):
        if not row.get("title") or not row.get("content"):
            raise ValueError(f"{path} entry {i}: title and content are required")
        items.append(
            KnowledgeItem(
                id=str(row.get("id") or ""),
                title=row["title"],
                content=row["content"],
                category=row.get("category") or "general",
                tags=list(row.get("tags") or []),
                status=row.get("status") or "active",
            )
        )
    logger.info("Loaded %d knowledge articles from %s", len(items), path)
    return items


def load_partner_file(path: str | Path = PARTNER_FILE) -> list[PartnerShop]:
    """
    Load partner shops.

    Raises:
        ValueError: If the file is malformed or an entry lacks name/zipcode.
    """
    shops = []
    for i, row in enumerate(_read_list(Path(path))):
        if not row.get("name") or not row.get("zipcode"):
            raise ValueError(f"{path} entry {i}: name and zipcode are required")
        shops.append(
            PartnerShop(
                name=row["name"],
                zipcode=str(row["zipcode"]),
                priority=row.get("priority") or "partner",
                rating=float(row.get("rating") or 0.0),
                specialties=frozenset(row.get("specialties") or []),
                subscription_status=row.get("subscription_status") or "active",
            )
        )
    logger.info("Loaded %d partner shops from %s", len(shops), path)
    return shops


def seed_knowledge(service, items: list[KnowledgeItem]) -> int:
    """Index articles through a KnowledgeService. Returns the count indexed."""
    for item in items:
        service.index_knowledge(item)
    return len(items)


def seed_partners(
    client,
    embedder,
    shops: list[PartnerShop],
    collection_name: str = PARTNER_COLLECTION,
) -> int:
    """
    Embed and upsert partner shops, creating the collection if needed.

    Shops are embedded from their name and specialties so the collection
    can later serve semantic lookups as well as zipcode filters.
    """
    if not shops:
        return 0

    texts = [f"{s.name} {' '.join(sorted(s.specialties))}" for s in shops]
    embeddings = embedder.embed(texts)

    if not vector_store.collection_exists(client, collection_name):
        vector_store.ensure_collection(client, collection_name, dim=len(embeddings[0]))
        vector_store.create_partner_indexes(client, collection_name)

    vector_store.upsert_partner_shops(client, shops, embeddings, collection_name)
    return len(shops)
