"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **normalize -> chunk -> dedup -> embed -> filter -> upload**.

The :class:`IngestionService` coordinates its collaborators (document
source, embedding provider, vector store) without any of them knowing about
each other.  One :meth:`IngestionService.ingest` call is one *run*:

    1. JSON graph files are parsed; every entity is normalized into facts,
       one parent record (the joined facts) and many chunk records.
    2. PDF references collected from those files, plus PDF files found in
       the ingest folder, are fetched and sectioned with bounded
       concurrency; each PDF yields a parent record (leading text) and
       chunk records.
    3. Records whose embedding length is not the configured dimension are
       dropped; the rest are uploaded in batches.

Dedup state lives in an :class:`IngestionRunContext` created per run.
Failures are contained per document: a malformed file or an unreachable
PDF is logged and skipped, never aborting the run.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Sequence
from urllib.parse import unquote, urlparse

import structlog

from machine_rag.models.documents import SourceDocument
from machine_rag.models.rag import Chunk, IngestionResult, VectorRecord
from machine_rag.providers.documents.http_source import LocalDocumentSource
from machine_rag.services.ingestion.chunker import TokenChunker
from machine_rag.services.ingestion.metadata_extractor import extract_machine_metadata
from machine_rag.services.ingestion.normalizer import (
    entity_to_facts,
    group_facts_into_paragraphs,
    normalize_entity,
)
from machine_rag.services.ingestion.pdf_sectionizer import (
    extract_pdf_text,
    section_for_chunk,
    sectionize_pdf_text,
)
from machine_rag.services.ingestion.run_context import IngestionRunContext, content_fingerprint
from machine_rag.utils.concurrency import throttled_gather
from machine_rag.utils.errors import (
    DimensionMismatchError,
    RAGError,
    ReferenceFetchError,
    SourceParseError,
)

if TYPE_CHECKING:
    from machine_rag.config.settings import Settings
    from machine_rag.interfaces.document_source import IDocumentSource
    from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
    from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

_JSON_SUFFIXES = frozenset({".json", ".jsonld"})
_PDF_SUFFIX = ".pdf"
_JSON_CONTENT_TYPE = "application/ld+json"
_PDF_CONTENT_TYPE = "application/pdf"


def _is_url(reference: str) -> bool:
    return urlparse(reference).scheme in ("http", "https")


def _reference_file_name(reference: str) -> str:
    if _is_url(reference):
        name = Path(unquote(urlparse(reference).path)).name
        return name or reference
    return Path(reference).name


class IngestionService:
    """Turns JSON graph files and their PDF references into uploaded vector records.

    Parameters
    ----------
    settings:
        Supplies collection name, dimension, metric, chunk sizes, PDF
        concurrency and parent truncation length.
    embedding_provider:
        Produces vectors of ``settings.rag_embed_dim`` elements.
    vector_store:
        Target store; the collection is ensured before the first upload.
    document_source:
        Fetches URL references (HTTP in production).
    chunker:
        Optional chunker; defaults to one built from the settings.
    """

    def __init__(
        self,
        settings: Settings,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        document_source: IDocumentSource,
        chunker: TokenChunker | None = None,
        local_source: IDocumentSource | None = None,
    ) -> None:
        self._settings = settings
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._document_source = document_source
        self._local_source = local_source or LocalDocumentSource()
        self._chunker = chunker or TokenChunker(
            min_tokens=settings.rag_token_chunk_min,
            max_tokens=settings.rag_token_chunk_max,
            overlap_tokens=settings.rag_token_chunk_overlap,
        )
        self._collection = settings.rag_collection_name
        self._dimension = settings.rag_embed_dim

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        folder_or_sources: str | Path | Sequence[str | Path] | None = None,
    ) -> IngestionResult:
        """Ingest a folder (recursively) or an explicit list of files.

        ``None`` ingests ``settings.rag_ingest_dir``.  Returns the run's
        counters; ``records_uploaded`` is the number of uploaded records.
        Every log line of the run carries an ``ingest_run`` id.
        """
        with structlog.contextvars.bound_contextvars(ingest_run=uuid.uuid4().hex[:12]):
            return await self._run(folder_or_sources)

    async def _run(
        self,
        folder_or_sources: str | Path | Sequence[str | Path] | None,
    ) -> IngestionResult:
        start = time.monotonic()
        run = IngestionRunContext()
        if folder_or_sources is None:
            folder_or_sources = self._settings.rag_ingest_dir

        json_files, pdf_files = self._resolve_sources(folder_or_sources, run)
        logger.info("ingestion_started", json_files=len(json_files), pdf_files=len(pdf_files))

        records: list[VectorRecord] = []
        references: dict[str, Path] = {}
        for path in json_files:
            records.extend(await self._ingest_json_file(path, run, references))

        jobs = [
            self._ingest_pdf(ref, self._fetch_reference(ref, base), run)
            for ref, base in sorted(references.items())
        ]
        jobs.extend(
            self._ingest_pdf(str(path), self._local_source.fetch(str(path)), run)
            for path in pdf_files
        )
        results = await throttled_gather(jobs, limit=self._settings.rag_pdf_concurrency)
        for outcome in results:
            if isinstance(outcome, BaseException):
                run.failed_references += 1
                logger.error("pdf_ingestion_failed", error=str(outcome))
            else:
                records.extend(outcome)

        kept, dropped = self._filter_dimensions(records)
        uploaded = await self._upload(kept)

        result = IngestionResult(
            records_uploaded=uploaded,
            parent_records=sum(1 for r in kept if r.is_parent),
            chunk_records=sum(1 for r in kept if not r.is_parent),
            duplicate_chunks=run.duplicate_chunks,
            duplicate_files=run.duplicate_files,
            dropped_records=dropped,
            failed_sources=run.failed_sources,
            failed_references=run.failed_references,
            sources_processed=run.sources_processed,
            ingestion_time=round(time.monotonic() - start, 2),
        )
        logger.info(
            "ingestion_complete",
            collection=self._collection,
            uploaded=result.records_uploaded,
            parents=result.parent_records,
            chunks=result.chunk_records,
            duplicate_chunks=result.duplicate_chunks,
            duplicate_files=result.duplicate_files,
            dropped=result.dropped_records,
            failed_sources=result.failed_sources,
            failed_references=result.failed_references,
            time_s=result.ingestion_time,
        )
        return result

    # ------------------------------------------------------------------
    # Source discovery
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_sources(
        folder_or_sources: str | Path | Sequence[str | Path],
        run: IngestionRunContext,
    ) -> tuple[list[Path], list[Path]]:
        if isinstance(folder_or_sources, (str, Path)):
            candidates = [Path(folder_or_sources)]
        else:
            candidates = [Path(p) for p in folder_or_sources]

        files: list[Path] = []
        for candidate in candidates:
            if candidate.is_dir():
                files.extend(sorted(p for p in candidate.rglob("*") if p.is_file()))
            elif candidate.is_file():
                files.append(candidate)
            else:
                run.failed_sources += 1
                logger.warning("ingest_source_not_found", path=str(candidate))

        json_files = [p for p in files if p.suffix.lower() in _JSON_SUFFIXES]
        pdf_files = [p for p in files if p.suffix.lower() == _PDF_SUFFIX]
        return json_files, pdf_files

    # ------------------------------------------------------------------
    # JSON graph sources
    # ------------------------------------------------------------------

    @staticmethod
    def _read_json_documents(path: Path, raw: bytes) -> list[SourceDocument]:
        try:
            parsed = json.loads(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceParseError(
                message=f"Invalid JSON in {path.name}: {exc}", source=str(path)
            ) from exc

        if isinstance(parsed, dict):
            entities = [parsed]
        elif isinstance(parsed, list):
            entities = [e for e in parsed if isinstance(e, dict)]
            if len(entities) != len(parsed):
                logger.warning(
                    "non_object_entities_skipped",
                    file=path.name,
                    skipped=len(parsed) - len(entities),
                )
        else:
            raise SourceParseError(
                message=f"{path.name} holds neither an object nor an array", source=str(path)
            )

        many = len(entities) > 1
        return [
            SourceDocument(name=f"{path.name}@{idx}" if many else path.name, path=str(path), entity=entity)
            for idx, entity in enumerate(entities)
        ]

    async def _ingest_json_file(
        self,
        path: Path,
        run: IngestionRunContext,
        references: dict[str, Path],
    ) -> list[VectorRecord]:
        try:
            raw = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            run.failed_sources += 1
            logger.warning("source_read_failed", file=str(path), error=str(exc))
            return []

        file_hash = content_fingerprint(raw)
        if not run.claim_file(file_hash):
            logger.info("source_skipped_duplicate", file=path.name)
            return []

        try:
            documents = self._read_json_documents(path, raw)
        except SourceParseError as exc:
            run.failed_sources += 1
            logger.warning("source_parse_failed", file=path.name, error=str(exc))
            return []

        records: list[VectorRecord] = []
        for document in documents:
            try:
                records.extend(await self._build_entity_records(document, file_hash, run, references))
            except (SourceParseError, RAGError) as exc:
                run.failed_sources += 1
                logger.warning("entity_ingestion_failed", source=document.name, error=str(exc))
        run.sources_processed += 1
        return records

    async def _build_entity_records(
        self,
        document: SourceDocument,
        file_hash: str,
        run: IngestionRunContext,
        references: dict[str, Path],
    ) -> list[VectorRecord]:
        try:
            entity = normalize_entity(document.entity)
        except TypeError as exc:
            raise SourceParseError(message=str(exc), source=document.path) from exc

        base_dir = Path(document.path).parent
        for ref in entity.references:
            references.setdefault(ref, base_dir)

        meta = extract_machine_metadata(entity)
        facts = entity_to_facts(entity)
        paragraphs = group_facts_into_paragraphs([f.to_line() for f in facts])
        text = "\n\n".join(p.text for p in paragraphs)
        if not text.strip():
            logger.warning("entity_without_facts", source=document.name)
            return []

        # Same-named graph files in different folders must not share a parent.
        parent_id = content_fingerprint(f"{document.name}:parent:{file_hash}")
        identity: dict[str, str | int] = {}
        if entity.id is not None:
            identity["entity_id"] = entity.id
        if entity.type is not None:
            identity["entity_type"] = entity.type

        chunks: list[Chunk] = []
        for idx, chunk_text in enumerate(self._chunker.chunk(text)):
            fingerprint = content_fingerprint(chunk_text)
            if not run.claim_chunk(fingerprint):
                continue
            chunks.append(
                Chunk(index=idx, content=chunk_text, content_hash=fingerprint, parent_id=parent_id)
            )

        embeddings = await self._embedding_provider.embed([text] + [c.content for c in chunks])

        records = [
            VectorRecord(
                record_id=parent_id,
                name=document.name,
                content_type=_JSON_CONTENT_TYPE,
                embedding=embeddings[0],
                labels={
                    "kind": "parent",
                    "source": document.name,
                    "parent_id": parent_id,
                    **identity,
                    **meta,
                },
            )
        ]
        for chunk, embedding in zip(chunks, embeddings[1:], strict=True):
            records.append(
                VectorRecord(
                    record_id=chunk.content_hash,
                    name=document.name,
                    content_type=_JSON_CONTENT_TYPE,
                    embedding=embedding,
                    labels={
                        "sha256": chunk.content_hash,
                        "source": document.name,
                        "kind": "jsonld",
                        "chunk": chunk.index,
                        "parent_id": parent_id,
                        "text": chunk.content,
                        **identity,
                        **meta,
                    },
                )
            )
        logger.debug("entity_ingested", source=document.name, chunks=len(chunks))
        return records

    # ------------------------------------------------------------------
    # PDF sources
    # ------------------------------------------------------------------

    async def _fetch_reference(self, reference: str, base_dir: Path) -> bytes:
        if _is_url(reference):
            return await self._document_source.fetch(reference)
        path = Path(reference)
        if not path.is_absolute():
            path = base_dir / path
        return await self._local_source.fetch(str(path))

    async def _ingest_pdf(
        self,
        reference: str,
        fetch: Awaitable[bytes],
        run: IngestionRunContext,
    ) -> list[VectorRecord]:
        """Fetch, dedup, section, chunk and embed one PDF.

        *fetch* is the awaitable producing the PDF bytes; it is awaited
        inside the concurrency bound.
        """
        try:
            data = await fetch
        except ReferenceFetchError as exc:
            run.failed_references += 1
            logger.warning("pdf_fetch_failed", reference=reference, error=str(exc))
            return []

        file_hash = content_fingerprint(data)
        if not run.claim_file(file_hash):
            logger.info("pdf_skipped_duplicate", reference=reference, sha256=file_hash[:12])
            return []

        try:
            pdf = await asyncio.to_thread(extract_pdf_text, data, reference)
        except SourceParseError as exc:
            run.failed_references += 1
            logger.warning("pdf_parse_failed", reference=reference, error=str(exc))
            return []
        if not pdf.text:
            logger.warning("pdf_no_text_extracted", reference=reference)
            return []

        file_name = _reference_file_name(reference)
        parent_id = content_fingerprint(f"{file_name}:parent:{file_hash}")
        parent_text = pdf.text[: self._settings.rag_parent_max_chars]

        sections = sectionize_pdf_text(pdf.text, self._settings.rag_section_min_tokens)
        body = "\n\n".join(s.text for s in sections)

        chunks: list[Chunk] = []
        for idx, chunk_text in enumerate(self._chunker.chunk(body)):
            fingerprint = content_fingerprint(f"{file_hash}:{chunk_text}")
            if not run.claim_chunk(fingerprint):
                continue
            chunks.append(
                Chunk(
                    index=idx,
                    content=chunk_text,
                    content_hash=fingerprint,
                    section_heading=section_for_chunk(sections, chunk_text),
                    parent_id=parent_id,
                )
            )

        try:
            embeddings = await self._embedding_provider.embed(
                [parent_text] + [c.content for c in chunks]
            )
        except RAGError as exc:
            run.failed_references += 1
            logger.warning("pdf_embedding_failed", reference=reference, error=str(exc))
            return []

        provenance: dict[str, str | int] = {
            "pdf_file_hash": file_hash,
            "source_url": reference,
            "filename": file_name,
        }
        records = [
            VectorRecord(
                record_id=parent_id,
                name=file_name,
                content_type=_PDF_CONTENT_TYPE,
                embedding=embeddings[0],
                labels={
                    "kind": "parent",
                    "source": file_name,
                    "parent_id": parent_id,
                    "page_count": pdf.page_count,
                    **provenance,
                },
            )
        ]
        for chunk, embedding in zip(chunks, embeddings[1:], strict=True):
            labels: dict[str, str | int] = {
                "sha256": chunk.content_hash,
                "source": file_name,
                "kind": "pdf-text",
                "chunk": chunk.index,
                "parent_id": parent_id,
                "text": chunk.content,
                **provenance,
            }
            if chunk.section_heading:
                labels["section_path"] = chunk.section_heading
            records.append(
                VectorRecord(
                    record_id=chunk.content_hash,
                    name=file_name,
                    content_type=_PDF_CONTENT_TYPE,
                    embedding=embedding,
                    labels=labels,
                )
            )
        run.sources_processed += 1
        logger.info(
            "pdf_ingested",
            reference=reference,
            pages=pdf.page_count,
            sections=len(sections),
            chunks=len(chunks),
        )
        return records

    # ------------------------------------------------------------------
    # Filter and upload
    # ------------------------------------------------------------------

    def _check_dimension(self, record: VectorRecord) -> None:
        if len(record.embedding) != self._dimension:
            raise DimensionMismatchError(
                expected=self._dimension,
                actual=len(record.embedding),
                record_id=record.record_id,
            )

    def _filter_dimensions(self, records: list[VectorRecord]) -> tuple[list[VectorRecord], int]:
        kept: list[VectorRecord] = []
        dropped = 0
        for record in records:
            try:
                self._check_dimension(record)
            except DimensionMismatchError as exc:
                dropped += 1
                logger.warning("record_dropped", record_id=record.record_id, error=str(exc))
                continue
            kept.append(record)
        return kept, dropped

    async def _upload(self, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        try:
            await self._vector_store.ensure_collection(
                self._collection, self._dimension, self._settings.rag_embed_metric
            )
        except RAGError as exc:
            logger.error("collection_unavailable", collection=self._collection, error=str(exc))
            return 0

        uploaded = 0
        batch_size = max(1, self._settings.rag_upload_batch_size)
        for start in range(0, len(records), batch_size):
            batch = records[start : start + batch_size]
            try:
                uploaded += await self._vector_store.upsert(self._collection, batch)
            except RAGError as exc:
                logger.error(
                    "upload_batch_failed",
                    collection=self._collection,
                    batch_start=start,
                    batch_size=len(batch),
                    error=str(exc),
                )
        return uploaded
