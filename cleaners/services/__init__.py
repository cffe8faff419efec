"""
Cleaners services layer.

Orchestration logic that coordinates between core domain logic and adapters:
session memory, knowledge retrieval, partner shop recommendation, and the
chat turn orchestrator.
"""

# Session memory
from cleaners.services.session_store import SessionStore

# Knowledge retrieval
from cleaners.services.knowledge import (
    KnowledgeRetriever,
    KnowledgeService,
    NullKnowledgeRetriever,
    VectorKnowledgeRetriever,
)

# Partner shops
from cleaners.services.shops import (
    QdrantShopDirectory,
    RecommendationEvaluator,
    ShopDirectory,
    StaticShopDirectory,
)

# Orchestrator
from cleaners.services.chat import ChatService

__all__ = [
    # Session memory
    "SessionStore",
    # Knowledge
    "KnowledgeRetriever",
    "NullKnowledgeRetriever",
    "VectorKnowledgeRetriever",
    "KnowledgeService",
    # Shops
    "ShopDirectory",
    "StaticShopDirectory",
    "QdrantShopDirectory",
    "RecommendationEvaluator",
    # Chat
    "ChatService",
]
