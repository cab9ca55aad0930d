"""Integration tests for IngestionService: JSON-LD graphs, referenced PDFs, dedup and upload.

Real normalizer, chunker, PDF sectionizer and document sources are used;
only the embedding provider and vector store are in-memory fakes.
"""

from __future__ import annotations

import json
import shutil

import httpx
import pytest

from machine_rag.providers.documents.http_source import HttpDocumentSource
from machine_rag.services.ingestion.ingestion_service import IngestionService

from tests.conftest import MockEmbeddingProvider, make_pdf

_PRESS_URL = "https://docs.example.com/manuals/press.pdf"
_MISSING_URL = "https://docs.example.com/manuals/missing.pdf"

_CUTTER_MANUAL = [
    "1 Safety\n"
    "Always wear protective goggles near the laser head.\n"
    "Never open the housing while the beam is active.\n"
    "Disconnect mains power before any maintenance work.\n"
    "Keep the extraction system running during cutting.",
    "2 Maintenance\n"
    "Clean the focusing lens every forty operating hours.\n"
    "Replace the coolant filter once per quarter.\n"
    "Check the gas pressure before starting a new job.\n"
    "Record every service in the machine log book.",
]
_PRESS_MANUAL = [
    "1 Operation\n"
    "The hydraulic press reaches two hundred tonnes of force.\n"
    "Both hands must rest on the controls during a stroke.\n"
    "The light curtain stops the ram when interrupted.",
]


def _cutter_entity() -> dict:
    return {
        "@id": "urn:iff:asset:42",
        "@type": "Cutter",
        "machine_state": {"type": "Property", "value": "Online"},
        "temperature": {
            "type": "Property",
            "value": 21.5,
            "unit": {"type": "Property", "value": "CEL"},
        },
        "has_filter": {"type": "Relationship", "object": "urn:iff:filter:7"},
        "description": {
            "type": "Property",
            "value": "Fibre laser cutter for sheet metal up to twenty millimetres thick, "
            "installed in hall three next to the press line and the sorting robot.",
        },
        "documents": [
            {"type": "Property", "value": "manuals/cutter.pdf"},
            {"type": "Property", "value": _PRESS_URL},
            {"type": "Property", "value": _MISSING_URL},
        ],
    }


def _http_source() -> HttpDocumentSource:
    press_pdf = make_pdf(_PRESS_MANUAL)

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == _PRESS_URL:
            return httpx.Response(200, content=press_pdf)
        return httpx.Response(404)

    return HttpDocumentSource(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
def corpus(tmp_path):
    root = tmp_path / "corpus"
    (root / "manuals").mkdir(parents=True)
    (root / "plant.jsonld").write_text(json.dumps(_cutter_entity()))
    (root / "manuals" / "cutter.pdf").write_bytes(make_pdf(_CUTTER_MANUAL))
    return root


@pytest.fixture
def service(settings, mock_embedding_provider, mock_vector_store) -> IngestionService:
    return IngestionService(
        settings=settings,
        embedding_provider=mock_embedding_provider,
        vector_store=mock_vector_store,
        document_source=_http_source(),
    )


class TestIngestFolder:
    @pytest.mark.asyncio
    async def test_graph_and_referenced_pdfs_uploaded(self, service, mock_vector_store, settings, corpus) -> None:
        result = await service.ingest(corpus)

        records = mock_vector_store.records(settings.rag_collection_name)
        assert result.records_uploaded == len(records)
        assert mock_vector_store.ensure_calls == [(settings.rag_collection_name, 32, "COSINE")]

        # One parent each for the entity, the local cutter manual and the fetched press manual.
        parents = [r for r in records if r.is_parent]
        assert result.parent_records == 3
        assert sorted(p.name for p in parents) == ["cutter.pdf", "plant.jsonld", "press.pdf"]
        assert all("text" not in p.labels for p in parents)
        assert result.chunk_records == len(records) - 3

        # The manual is both referenced by the graph and present in the folder.
        assert result.duplicate_files == 1
        assert result.failed_references == 1
        assert result.failed_sources == 0
        assert result.sources_processed == 3

    @pytest.mark.asyncio
    async def test_chunk_labels_carry_provenance(self, service, mock_vector_store, settings, corpus) -> None:
        await service.ingest(corpus)
        records = mock_vector_store.records(settings.rag_collection_name)

        graph_chunks = [r for r in records if r.labels.get("kind") == "jsonld"]
        assert graph_chunks
        graph_parent = next(r for r in records if r.is_parent and r.name == "plant.jsonld")
        for record in graph_chunks:
            assert record.labels["entity_id"] == "urn:iff:asset:42"
            assert record.labels["entity_type"] == "Cutter"
            assert record.labels["parent_id"] == graph_parent.record_id
            assert record.record_id == record.labels["sha256"]
        assert any("urn:iff:filter:7" in r.labels["text"] for r in graph_chunks)

        press_chunks = [r for r in records if r.labels.get("kind") == "pdf-text" and r.name == "press.pdf"]
        assert press_chunks
        assert all(r.labels["source_url"] == _PRESS_URL for r in press_chunks)
        assert all(r.content_type == "application/pdf" for r in press_chunks)
        assert "hydraulic press" in " ".join(str(r.labels["text"]) for r in press_chunks)

    @pytest.mark.asyncio
    async def test_copied_pdf_counted_as_duplicate(self, service, corpus) -> None:
        shutil.copy(corpus / "manuals" / "cutter.pdf", corpus / "manuals" / "cutter-copy.pdf")

        result = await service.ingest(corpus)

        assert result.duplicate_files == 2
        assert result.parent_records == 3

    @pytest.mark.asyncio
    async def test_reformatted_graph_chunks_uploaded_once(
        self, service, mock_vector_store, settings, corpus
    ) -> None:
        (corpus / "plant-pretty.jsonld").write_text(json.dumps(_cutter_entity(), indent=2))

        result = await service.ingest(corpus)

        graph_chunks = [
            r for r in mock_vector_store.records(settings.rag_collection_name) if r.labels.get("kind") == "jsonld"
        ]
        assert result.duplicate_chunks == len(graph_chunks)
        assert len({r.labels["text"] for r in graph_chunks}) == len(graph_chunks)

    @pytest.mark.asyncio
    async def test_malformed_graph_skipped(self, service, corpus) -> None:
        (corpus / "broken.json").write_text("{not json")

        result = await service.ingest(corpus)

        assert result.failed_sources == 1
        assert result.parent_records == 3

    @pytest.mark.asyncio
    async def test_same_file_name_in_two_folders(self, service, mock_vector_store, settings, tmp_path) -> None:
        root = tmp_path / "plant"
        for hall, asset in (("hall1", "urn:iff:asset:1"), ("hall2", "urn:iff:asset:2")):
            (root / hall).mkdir(parents=True)
            entity = {
                "@id": asset,
                "@type": "Press",
                "machine_state": {"type": "Property", "value": f"Running in {hall}"},
            }
            (root / hall / "machine.jsonld").write_text(json.dumps(entity))

        result = await service.ingest(root)

        records = mock_vector_store.records(settings.rag_collection_name)
        parents = {r.record_id: r for r in records if r.is_parent}
        assert result.parent_records == 2
        assert len(parents) == 2
        assert result.records_uploaded == len(records)
        assert {p.labels["entity_id"] for p in parents.values()} == {"urn:iff:asset:1", "urn:iff:asset:2"}
        for record in records:
            if not record.is_parent:
                assert parents[record.labels["parent_id"]].labels["entity_id"] == record.labels["entity_id"]

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, service, mock_vector_store, settings, corpus) -> None:
        first = await service.ingest(corpus)
        stored = len(mock_vector_store.records(settings.rag_collection_name))

        second = await service.ingest(corpus)

        assert second.records_uploaded == first.records_uploaded
        assert second.duplicate_chunks == first.duplicate_chunks
        assert len(mock_vector_store.records(settings.rag_collection_name)) == stored


class TestIngestEdgeCases:
    @pytest.mark.asyncio
    async def test_wrong_dimension_records_dropped(self, settings, mock_vector_store, corpus) -> None:
        service = IngestionService(
            settings=settings,
            embedding_provider=MockEmbeddingProvider(dimension=16),
            vector_store=mock_vector_store,
            document_source=_http_source(),
        )

        result = await service.ingest(corpus)

        assert result.records_uploaded == 0
        assert result.dropped_records > 0
        assert mock_vector_store.ensure_calls == []

    @pytest.mark.asyncio
    async def test_explicit_file_list(self, service, mock_vector_store, settings, corpus) -> None:
        result = await service.ingest([corpus / "manuals" / "cutter.pdf", corpus / "nowhere.jsonld"])

        assert result.parent_records == 1
        assert result.failed_sources == 1
        names = {r.name for r in mock_vector_store.records(settings.rag_collection_name)}
        assert names == {"cutter.pdf"}

    @pytest.mark.asyncio
    async def test_sections_recorded_on_pdf_chunks(self, service, mock_vector_store, settings, corpus) -> None:
        await service.ingest([corpus / "manuals" / "cutter.pdf"])

        sections = {
            r.labels.get("section_path")
            for r in mock_vector_store.records(settings.rag_collection_name)
            if not r.is_parent
        }
        assert sections & {"1 Safety", "2 Maintenance"}
