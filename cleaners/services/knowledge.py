"""
Knowledge retrieval service.

Turns a user query into a best-effort context block of laundry knowledge.
``KnowledgeService`` also manages the knowledge collection itself (index,
list, delete) for the admin endpoints.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from cleaners.adapters import vector_store
from cleaners.api.metrics import observe_embedding_duration, observe_retrieval_duration
from cleaners.config import KNOWLEDGE_COLLECTION, KNOWLEDGE_TOP_K, get_logger
from cleaners.core import KnowledgeItem, RetrievalError, format_knowledge_context
from cleaners.utils import new_id, timed_operation

if TYPE_CHECKING:
    from qdrant_client import QdrantClient

    from cleaners.adapters.embeddings import OpenAIEmbedder

logger = get_logger(__name__)


class KnowledgeRetriever(Protocol):
    """Returns relevant context for a query, or an empty string."""

    def get_context(self, query: str) -> str:
        """
        Raises:
            RetrievalError: If the backing index cannot be queried.
        """
        ...


class NullKnowledgeRetriever:
    """Retriever used when no knowledge index is configured."""

    def get_context(self, query: str) -> str:
        return ""


class VectorKnowledgeRetriever:
    """
    Semantic search over the Qdrant knowledge collection.

    Args:
        client: Qdrant client.
        embedder: Embedder for queries (and documents, in subclasses).
        collection_name: Knowledge collection to search.
        top_k: Number of articles folded into the context block.
    """

    def __init__(
        self,
        client: QdrantClient,
        embedder: OpenAIEmbedder,
        collection_name: str = KNOWLEDGE_COLLECTION,
        top_k: int = KNOWLEDGE_TOP_K,
    ):
        self.client = client
        self.embedder = embedder
        self.collection_name = collection_name
        self.top_k = top_k

    def search_knowledge(self, query: str, top_k: int | None = None) -> list[KnowledgeItem]:
        """
        Find the most relevant active knowledge articles.

        Raises:
            RetrievalError: If embedding or vector search fails.
        """
        try:
            with timed_operation("Knowledge search", logger, observe_retrieval_duration):
                with timed_operation("Query embedding", None, observe_embedding_duration):
                    embedding = self.embedder.embed_single(query)
                return vector_store.search_knowledge(
                    self.client,
                    embedding,
                    collection_name=self.collection_name,
                    limit=top_k or self.top_k,
                )
        except Exception as e:
            raise RetrievalError(f"Knowledge search failed: {e}") from e

    def get_context(self, query: str) -> str:
        """Format the top matches as a numbered context block ("" if none)."""
        return format_knowledge_context(self.search_knowledge(query))


class KnowledgeService(VectorKnowledgeRetriever):
    """Knowledge retrieval plus collection management."""

    def index_knowledge(self, item: KnowledgeItem) -> KnowledgeItem:
        """Embed and store an article, assigning an ID if it has none."""
        if not item.id:
            item.id = new_id()
        embedding = self.embedder.embed_single(f"{item.title}\n{item.content}")
        vector_store.ensure_collection(self.client, self.collection_name, dim=len(embedding))
        vector_store.upsert_knowledge(
            self.client, item, embedding, collection_name=self.collection_name
        )
        return item

    def list_knowledge(self) -> list[KnowledgeItem]:
        return vector_store.list_knowledge(self.client, collection_name=self.collection_name)

    def delete_knowledge(self, item_id: str) -> None:
        vector_store.delete_knowledge(self.client, item_id, collection_name=self.collection_name)


__all__ = [
    "KnowledgeRetriever",
    "NullKnowledgeRetriever",
    "VectorKnowledgeRetriever",
    "KnowledgeService",
]
