"""
Cleaners adapters layer.

External service wrappers that implement the interfaces expected by the
service layer: model gateways, embeddings, the Qdrant vector store, and the
optional SQL conversation store.
"""

# Model gateways
from cleaners.adapters.llm import (
    AnthropicGateway,
    ModelGateway,
    OpenAIGateway,
    OpenRouterGateway,
    get_gateway,
)

# Embeddings
from cleaners.adapters.embeddings import (
    OpenAIEmbedder,
    get_embedder,
)

# Vector store
from cleaners.adapters.vector_store import (
    collection_exists,
    delete_knowledge,
    ensure_collection,
    find_partner_shops,
    get_client,
    list_knowledge,
    search_knowledge,
    upsert_knowledge,
)

# Durable conversations
from cleaners.adapters.conversation_store import SQLConversationStore

__all__ = [
    # Gateways
    "ModelGateway",
    "OpenAIGateway",
    "OpenRouterGateway",
    "AnthropicGateway",
    "get_gateway",
    # Embeddings
    "OpenAIEmbedder",
    "get_embedder",
    # Vector store
    "get_client",
    "ensure_collection",
    "collection_exists",
    "upsert_knowledge",
    "search_knowledge",
    "list_knowledge",
    "delete_knowledge",
    "find_partner_shops",
    # Conversations
    "SQLConversationStore",
]
