"""ChromaDB vector store provider adapter.

Wraps a ``chromadb`` client to implement :class:`IVectorStoreProvider`.
Fully local: collections persist under ``CHROMADB_PERSIST_DIR``.  Embeddings
are always computed by our own :class:`IEmbeddingProvider`, so collections
are opened with a no-op embedding function.
"""

from __future__ import annotations

import os
from typing import Any

# Must be set before chromadb is imported.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider
from machine_rag.models.rag import SearchHit, VectorRecord
from machine_rag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_METRIC_TO_SPACE: dict[str, str] = {"COSINE": "cosine", "L2": "l2", "IP": "ip"}

_UPSERT_BATCH_SIZE = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never called; all vectors are precomputed."""

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "machine-rag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Record labels are stored as ChromaDB metadata, the ``text`` label also
    as the document.  Scores are reported as similarities (``1 - distance``
    for cosine collections, ``-distance`` otherwise).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        if client is None:
            client = chromadb.PersistentClient(
                path=persist_directory,
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )
        self._client = client
        self._collections: dict[str, Any] = {}
        self._spaces: dict[str, str] = {}

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def ensure_collection(self, name: str, dimension: int, metric: str = "COSINE") -> None:
        space = _METRIC_TO_SPACE.get(metric.upper())
        if space is None:
            raise RAGError(message=f"Unsupported metric: {metric}", provider_name="chromadb")
        try:
            collection = self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": space, "dimension": dimension},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except Exception as exc:
            raise RAGError(
                message=f"Failed to open collection {name}: {exc}",
                provider_name="chromadb",
            ) from exc
        self._collections[name] = collection
        self._spaces[name] = (collection.metadata or {}).get("hnsw:space", space)
        logger.info("chromadb_collection_ready", collection=name, dimension=dimension, space=space)

    async def upsert(self, name: str, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        collection = self._get_collection(name)
        try:
            for start in range(0, len(records), _UPSERT_BATCH_SIZE):
                batch = records[start : start + _UPSERT_BATCH_SIZE]
                collection.upsert(
                    ids=[r.record_id for r in batch],
                    embeddings=[r.embedding for r in batch],
                    documents=[str(r.labels.get("text", "")) for r in batch],
                    metadatas=[self._record_to_metadata(r) for r in batch],
                )
        except Exception as exc:
            raise RAGError(
                message=f"Failed to upsert into {name}: {exc}",
                provider_name="chromadb",
            ) from exc
        logger.info("chromadb_upsert", collection=name, records=len(records))
        return len(records)

    async def search(
        self,
        name: str,
        query_vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        collection = self._get_collection(name)
        kwargs: dict[str, Any] = {
            "query_embeddings": [query_vector],
            "n_results": top_k,
            "include": ["metadatas", "distances"],
        }
        where = self._translate_filters(filters)
        if where:
            kwargs["where"] = where
        try:
            result = collection.query(**kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"Search in {name} failed: {exc}",
                provider_name="chromadb",
            ) from exc

        ids = (result.get("ids") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]
        space = self._spaces.get(name, "cosine")

        hits: list[SearchHit] = []
        for record_id, metadata, distance in zip(ids, metadatas, distances, strict=False):
            labels = dict(metadata or {})
            labels.pop("_content_type", None)
            hits.append(
                SearchHit(
                    record_id=record_id,
                    name=str(labels.pop("_name", "")),
                    score=1.0 - distance if space == "cosine" else -distance,
                    labels=labels,
                )
            )
        return hits

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_collection(self, name: str) -> Any:
        collection = self._collections.get(name)
        if collection is None:
            try:
                collection = self._client.get_collection(
                    name=name, embedding_function=_NoopEmbeddingFunction()
                )
            except Exception as exc:
                raise RAGError(
                    message=f"Collection {name} does not exist; call ensure_collection first",
                    provider_name="chromadb",
                ) from exc
            self._collections[name] = collection
            self._spaces[name] = (collection.metadata or {}).get("hnsw:space", "cosine")
        return collection

    @staticmethod
    def _record_to_metadata(record: VectorRecord) -> dict[str, Any]:
        metadata: dict[str, Any] = dict(record.labels)
        metadata["_name"] = record.name
        metadata["_content_type"] = record.content_type
        return metadata

    @staticmethod
    def _translate_filters(filters: dict[str, Any] | None) -> dict[str, Any] | None:
        """Translate ``{label: value}`` equality filters into a ChromaDB where clause."""
        if not filters:
            return None
        clauses = [{key: {"$eq": value}} for key, value in filters.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
