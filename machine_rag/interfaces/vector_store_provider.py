"""Abstract base class for vector-store service providers.

Defines the minimal contract the pipelines need: make sure a collection
exists, upsert records, and search by vector.  Schema administration
beyond that is left to the store's own tooling.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from machine_rag.models.rag import SearchHit, VectorRecord


# Concrete implementations: ChromaDBProvider (embedded, local disk) and
# MilvusRestProvider (Milvus REST v2 API).
# Located in: machine_rag/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for vector stores used by ingestion and retrieval.

    **Filter syntax** (the *filters* dict of :meth:`search`): a flat mapping
    of label name to required value, e.g. ``{"kind": "pdf-text"}`` or
    ``{"machine_id": "urn:iff:asset:42", "kind": "jsonld"}``.  All entries
    must match.  Providers translate it into their own query language.
    """

    @abstractmethod
    async def ensure_collection(self, name: str, dimension: int, metric: str = "COSINE") -> None:
        """Create collection *name* if it does not exist yet.

        Parameters
        ----------
        name:
            Collection name.
        dimension:
            Vector dimensionality of the collection.
        metric:
            Distance metric, one of ``"COSINE"``, ``"L2"`` or ``"IP"``.

        Raises
        ------
        machine_rag.utils.errors.RAGError
            If the store is unreachable or rejects the request.
        """

    @abstractmethod
    async def upsert(self, name: str, records: list[VectorRecord]) -> int:
        """Store *records* in collection *name*.

        Returns
        -------
        int
            Number of records written.
        """

    @abstractmethod
    async def search(
        self,
        name: str,
        query_vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        """Return the *top_k* nearest records, best first."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"chromadb"`` or ``"milvus"``."""
