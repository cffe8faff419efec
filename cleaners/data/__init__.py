"""
Cleaners seed data loading.

Reads knowledge articles and partner shops from JSON files and indexes
them into Qdrant.
"""

from cleaners.data.loader import (
    load_knowledge_file,
    load_partner_file,
    seed_knowledge,
    seed_partners,
)

__all__ = [
    "load_knowledge_file",
    "load_partner_file",
    "seed_knowledge",
    "seed_partners",
]
