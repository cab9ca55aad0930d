"""Vector store adapters.

- ChromaDBProvider   -- embedded chromadb with local persistence (default)
- MilvusRestProvider -- Milvus server through its REST v2 API
"""

from machine_rag.providers.vector_store.chromadb_provider import ChromaDBProvider
from machine_rag.providers.vector_store.milvus_provider import MilvusRestProvider

__all__ = ["ChromaDBProvider", "MilvusRestProvider"]
