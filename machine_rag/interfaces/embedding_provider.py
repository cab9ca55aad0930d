"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-length vectors.  Every
implementation must return vectors of exactly :meth:`get_dimension`
elements; vectors from a model with another native size are fitted
(truncated or zero-padded) by the adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider
# Located in: machine_rag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding services used by ingestion and retrieval.

    Embeddings are consumed by
    :class:`~machine_rag.interfaces.vector_store_provider.IVectorStoreProvider`
    for indexing and query-time similarity search.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*, each of
            length :meth:`get_dimension`.

        Raises
        ------
        machine_rag.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the (fitted) dimensionality of the embedding vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-BAAI/bge-m3"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
