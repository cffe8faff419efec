"""
Seed the Qdrant knowledge and partner collections.

Loads knowledge articles and partner shops from JSON, embeds them with the
OpenAI embeddings API, and upserts them into Qdrant. Re-running is safe:
points are keyed by article id (or shop name and zipcode).

Usage:
    python scripts/seed.py
    python scripts/seed.py --knowledge data/knowledge.json --partners data/partner_shops.json
    python scripts/seed.py --skip-partners

Requires QDRANT_URL and OPENAI_API_KEY. Run from project root.
"""

import argparse

from cleaners.adapters.embeddings import get_embedder
from cleaners.adapters.vector_store import get_client, is_configured
from cleaners.config import get_logger, log_banner, log_kv
from cleaners.data.loader import (
    KNOWLEDGE_FILE,
    PARTNER_FILE,
    load_knowledge_file,
    load_partner_file,
    seed_knowledge,
    seed_partners,
)
from cleaners.services.knowledge import KnowledgeService

logger = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Seed Qdrant collections")
    parser.add_argument("--knowledge", default=str(KNOWLEDGE_FILE), help="Knowledge JSON file")
    parser.add_argument("--partners", default=str(PARTNER_FILE), help="Partner shops JSON file")
    parser.add_argument("--skip-knowledge", action="store_true")
    parser.add_argument("--skip-partners", action="store_true")
    args = parser.parse_args()

    if not is_configured():
        parser.error("QDRANT_URL is not set")

    log_banner(logger, "SEED QDRANT")
    client = get_client()
    embedder = get_embedder()

    if not args.skip_knowledge:
        items = load_knowledge_file(args.knowledge)
        count = seed_knowledge(KnowledgeService(client, embedder), items)
        log_kv(logger, "Knowledge articles", count)

    if not args.skip_partners:
        shops = load_partner_file(args.partners)
        count = seed_partners(client, embedder, shops)
        log_kv(logger, "Partner shops", count)

    logger.info("Seeding complete")


if __name__ == "__main__":
    main()
