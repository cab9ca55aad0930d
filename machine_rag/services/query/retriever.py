"""Semantic retrieval of grounding context for the completion call."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider
from machine_rag.models.chat import ChatTurn
from machine_rag.models.rag import SearchHit
from machine_rag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

CONTEXT_SEPARATOR = "\n\n-----\n\n"


def coerce_labels(raw: Any) -> dict[str, Any]:
    """Return hit labels as a dict.

    Backends may hand labels back as an object or as a JSON string; anything
    that is not a JSON object becomes an empty dict.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith(("{", "[")):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                return {}
            if isinstance(parsed, dict):
                return parsed
    return {}


def label_text(labels: dict[str, Any]) -> str:
    text = labels.get("text")
    return text.strip() if isinstance(text, str) else ""


@dataclass
class RetrievalContext:
    """Context text plus the hits and source names that produced it."""

    context_text: str = ""
    hits: list[SearchHit] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.context_text


class SemanticRetriever:
    """Embeds the user's questions and collects the nearest chunk texts.

    Blocks are numbered ``[S1]``, ``[S2]`` ... by hit rank.  Hits without
    a ``text`` label (parent records) are skipped but keep their rank
    number, so markers stay stable for a given result list.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        collection_name: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._collection_name = collection_name
        self._top_k = top_k
        self._filters = filters

    async def retrieve(self, messages: list[ChatTurn]) -> RetrievalContext:
        question = " ".join(m.content for m in messages if m.role == "user").strip()
        if not question:
            return RetrievalContext()

        try:
            vector = await self._embedding_provider.embed_single(question)
            hits = await self._vector_store.search(
                self._collection_name,
                vector,
                top_k=self._top_k,
                filters=self._filters,
            )
        except RAGError as exc:
            logger.warning("retrieval_failed", collection=self._collection_name, error=str(exc))
            return RetrievalContext()

        blocks: list[str] = []
        sources: list[str] = []
        for position, hit in enumerate(hits):
            text = label_text(coerce_labels(hit.labels))
            if not text:
                continue
            blocks.append(f"[S{position + 1}] {text}")
            sources.append(hit.name)

        logger.info("retrieval_complete", hits=len(hits), blocks=len(blocks))
        return RetrievalContext(
            context_text=CONTEXT_SEPARATOR.join(blocks),
            hits=list(hits),
            sources=sources,
        )
