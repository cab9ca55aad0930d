"""RAG data models: chunks, vector records, search hits and ingestion results.

A source document produces one *parent* record (a coarse, whole-document
embedding used for routing) and many *chunk* records that point back to it
through the ``parent_id`` label.  Both are persisted as
:class:`VectorRecord` objects; the vector store returns :class:`SearchHit`
objects at query time.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Label values must be primitives so every vector store backend can keep them.
LabelValue = str | int | float | bool


class Chunk(BaseModel):
    """A token-bounded span of paragraph text from one source."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Position of the chunk within its source.")
    content: str = Field(description="The chunk text.")
    content_hash: str = Field(description="sha256 fingerprint used for per-run dedup.")
    section_heading: str | None = Field(default=None, description="PDF section the chunk falls in.")
    parent_id: str | None = Field(default=None, description="Id of the owning parent record.")


class VectorRecord(BaseModel):
    """The unit persisted to the vector store."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(description="Stable id: the chunk fingerprint or the parent id.")
    name: str = Field(description="Source name (file name or PDF file name).")
    content_type: str = Field(default="text", description="Content type of the embedded text.")
    embedding: list[float] = Field(description="Embedding vector.")
    labels: dict[str, LabelValue] = Field(
        default_factory=dict,
        description="Provenance: source, parent_id, sha256, machine metadata, section_path, text.",
    )

    @property
    def is_parent(self) -> bool:
        return self.labels.get("kind") == "parent"


class SearchHit(BaseModel):
    """One nearest-neighbour result from the vector store.

    ``labels`` is kept raw: some backends return a JSON string instead of an
    object, so callers coerce it (see ``coerce_labels`` in the retriever).
    """

    model_config = ConfigDict(frozen=True)

    record_id: str | None = None
    name: str = ""
    score: float = 0.0
    labels: Any = None


class IngestionResult(BaseModel):
    """Counters describing one ingestion run."""

    model_config = ConfigDict(frozen=True)

    records_uploaded: int = Field(default=0, ge=0)
    parent_records: int = Field(default=0, ge=0)
    chunk_records: int = Field(default=0, ge=0)
    duplicate_chunks: int = Field(default=0, ge=0)
    duplicate_files: int = Field(default=0, ge=0)
    dropped_records: int = Field(default=0, ge=0)
    failed_sources: int = Field(default=0, ge=0)
    failed_references: int = Field(default=0, ge=0)
    sources_processed: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")
