"""
Embedding adapter.

Wraps the OpenAI embeddings endpoint used to vectorize knowledge articles
and user queries for the Qdrant knowledge index.
"""

from __future__ import annotations

from typing import Any

from cleaners.config import (
    EMBEDDING_DIM,
    EMBEDDING_MODEL,
    EMBEDDING_TIMEOUT,
    OPENAI_API_KEY,
    get_logger,
)
from cleaners.utils import require_import, thread_safe_singleton

logger = get_logger(__name__)


class OpenAIEmbedder:
    """
    Text embedder backed by the OpenAI embeddings API.

    Queries and documents share one model; no prefixing is needed.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIM,
        timeout: float = EMBEDDING_TIMEOUT,
        client: Any = None,
    ):
        openai = require_import("openai")
        self.client = client or openai.OpenAI(
            api_key=api_key or OPENAI_API_KEY,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model
        self.dimensions = dimensions

    def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts.

        Args:
            texts: Non-empty strings to embed.

        Returns:
            One vector per input, in input order.
        """
        if not texts:
            return []
        response = self.client.embeddings.create(model=self.model, input=texts)
        vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        logger.debug("Embedded %d texts with %s", len(vectors), self.model)
        return vectors

    def embed_single(self, text: str) -> list[float]:
        """Embed one text."""
        return self.embed([text])[0]


@thread_safe_singleton
def get_embedder() -> OpenAIEmbedder:
    """Get or create the shared embedder."""
    return OpenAIEmbedder()


__all__ = ["OpenAIEmbedder", "get_embedder"]
