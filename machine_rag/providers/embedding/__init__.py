"""Embedding provider adapters.

- OpenAIEmbeddingProvider -- any OpenAI-compatible embeddings API, with
  vectors fitted to the configured collection dimension.
"""

from machine_rag.providers.embedding.openai_embedding_provider import (
    OpenAIEmbeddingProvider,
    fit_to_dimension,
)

__all__ = ["OpenAIEmbeddingProvider", "fit_to_dimension"]
