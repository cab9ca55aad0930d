"""Shared pytest fixtures for the machine-rag test suite."""

from __future__ import annotations

import hashlib
import math
import struct
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest
import structlog

from machine_rag.config.settings import Settings
from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider
from machine_rag.models.rag import SearchHit, VectorRecord
from machine_rag.utils.errors import RAGError

_EMBEDDING_DIM = 32


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_structlog_config():
    """Undo structlog configuration made during a test.

    CLI tests call ``configure_logging`` while pytest's capture streams are
    active; without this, later tests would log to a closed stream.
    """
    saved = structlog.get_config()
    configured = structlog.is_configured()
    yield
    if configured:
        structlog.configure(**saved)
    else:
        structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    """Build settings that ignore the developer's ``.env`` file."""
    defaults: dict[str, Any] = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "rag_embed_dim": _EMBEDDING_DIM,
        "rag_token_chunk_min": 20,
        "rag_token_chunk_max": 40,
        "rag_token_chunk_overlap": 8,
        "rag_section_min_tokens": 5,
        "timeseries_api_url": "",
        "alerta_api_url": "",
        "vector_store_backend": "chromadb",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# PDF helpers
# ---------------------------------------------------------------------------


def make_pdf(pages: list[str]) -> bytes:
    """Render each string onto its own PDF page and return the document bytes."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length unit vector by hashing *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    # Unsigned ints avoid NaN/inf bit patterns that raw float unpacking can produce.
    values = [v / 2**32 - 0.5 for v in struct.unpack(f"<{dim}I", raw[: dim * 4])]
    magnitude = max(math.sqrt(sum(v * v for v in values)), 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self, dimension: int = _EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store keyed by collection, then record id.

    Search ranks by dot product (vectors from the mock embedder are unit
    length, so this is cosine similarity).  Like ChromaDB, one upsert call
    rejects duplicate record ids.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, VectorRecord]] = {}
        self.ensure_calls: list[tuple[str, int, str]] = []
        self.upsert_calls = 0

    async def ensure_collection(self, name: str, dimension: int, metric: str = "COSINE") -> None:
        self.ensure_calls.append((name, dimension, metric))
        self.collections.setdefault(name, {})

    async def upsert(self, name: str, records: list[VectorRecord]) -> int:
        self.upsert_calls += 1
        ids = [record.record_id for record in records]
        if len(set(ids)) != len(ids):
            raise RAGError(message=f"Expected IDs to be unique in {name}", provider_name="mock-vector-store")
        store = self.collections.setdefault(name, {})
        for record in records:
            store[record.record_id] = record
        return len(records)

    async def search(
        self,
        name: str,
        query_vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        scored: list[tuple[float, VectorRecord]] = []
        for record in self.collections.get(name, {}).values():
            if filters and any(record.labels.get(k) != v for k, v in filters.items()):
                continue
            score = sum(a * b for a, b in zip(query_vector, record.embedding))
            scored.append((score, record))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            SearchHit(record_id=r.record_id, name=r.name, score=s, labels=dict(r.labels))
            for s, r in scored[:top_k]
        ]

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def records(self, name: str) -> list[VectorRecord]:
        return list(self.collections.get(name, {}).values())


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; override ``complete.return_value`` / ``side_effect`` per test."""
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="mock answer")
    return mock


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def pdf_factory():
    return make_pdf
