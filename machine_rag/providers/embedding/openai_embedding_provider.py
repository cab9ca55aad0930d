"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
The collection dimension is fixed by configuration (``RAG_EMBED_DIM``);
vectors from a model with another native size are fitted to it with
:func:`fit_to_dimension`.  Fitting is lossy: a truncated or zero-padded
vector is not equivalent to a native embedding of that size.
"""

from __future__ import annotations

import openai
import structlog

from machine_rag.config.settings import Settings
from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
from machine_rag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048


def fit_to_dimension(vector: list[float], dimension: int) -> list[float]:
    """Truncate or zero-pad *vector* to exactly *dimension* elements."""
    if dimension < 0:
        raise ValueError("dimension must be non-negative")
    if len(vector) == dimension:
        return list(vector)
    if len(vector) > dimension:
        return list(vector[:dimension])
    return list(vector) + [0.0] * (dimension - len(vector))


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``BAAI/bge-m3`` by default.  Handles batching for inputs exceeding
    the per-call limit and logs the model's native dimension once.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        if client is None:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(settings.llm_timeout_seconds, connect=5.0),
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)

        self._client = client
        self._model = settings.openai_embedding_model
        self._dimension = settings.rag_embed_dim
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )
        self._native_dimension: int | None = None

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate fitted embedding vectors for a batch of texts."""
        if not texts:
            return []

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                for item in response.data:
                    self._note_native_dimension(len(item.embedding))
                    all_embeddings.append(fit_to_dimension(item.embedding, self._dimension))
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APIError as exc:
            raise RAGError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(all_embeddings) != len(texts):
            raise RAGError(
                message=f"Expected {len(texts)} embeddings, got {len(all_embeddings)}",
                provider_name=self.get_provider_name(),
            )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    @property
    def native_dimension(self) -> int | None:
        """Dimension the model actually returned, once known."""
        return self._native_dimension

    def _note_native_dimension(self, size: int) -> None:
        if self._native_dimension is not None:
            return
        self._native_dimension = size
        if size == self._dimension:
            logger.info("embedding_dimension", model=self._model, dimension=size)
        else:
            logger.warning(
                "embedding_dimension_fitted",
                model=self._model,
                native_dimension=size,
                target_dimension=self._dimension,
            )
