"""End-to-end query turns over an ingested corpus.

Documents are ingested into the in-memory vector store, then the
orchestrator runs with the rule-based classifier, a real retriever and
live-data resolvers over fake providers.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from machine_rag.interfaces.alert_provider import IAlertProvider
from machine_rag.interfaces.document_source import IDocumentSource
from machine_rag.interfaces.timeseries_provider import ITimeSeriesProvider
from machine_rag.models.chat import ChatTurn
from machine_rag.models.live_data import AlertRecord, Reading
from machine_rag.services.ingestion.ingestion_service import IngestionService
from machine_rag.services.query.intent_classifier import RuleBasedIntentClassifier
from machine_rag.services.query.live_data import AlertResolver, TimeSeriesResolver
from machine_rag.services.query.orchestrator import QueryOrchestrator
from machine_rag.services.query.retriever import SemanticRetriever
from machine_rag.utils.errors import ResolverUnavailableError

from tests.conftest import make_pdf

_NOW = datetime(2025, 8, 14, 12, 0, tzinfo=timezone.utc)
_ASSET = "urn:iff:asset:42"

_ENTITY = {
    "@id": _ASSET,
    "@type": "Cutter",
    "machine_state": {"type": "Property", "value": "Online"},
    "spindle_speed_max": {"type": "Property", "value": 1200, "unit": {"type": "Property", "value": "RPM"}},
    "manual": {"type": "Property", "value": "cutter.pdf"},
}
_MANUAL = [
    "1 Maintenance\n"
    "Clean the focusing lens every forty operating hours.\n"
    "Replace the coolant filter once per quarter.\n"
    "Check the gas pressure before starting a new job.",
]


@pytest_asyncio.fixture
async def ingested_store(tmp_path, settings, mock_embedding_provider, mock_vector_store):
    (tmp_path / "plant.jsonld").write_text(json.dumps(_ENTITY))
    (tmp_path / "cutter.pdf").write_bytes(make_pdf(_MANUAL))
    service = IngestionService(
        settings=settings,
        embedding_provider=mock_embedding_provider,
        vector_store=mock_vector_store,
        document_source=MagicMock(spec=IDocumentSource),
    )
    result = await service.ingest(tmp_path)
    assert result.records_uploaded > 0
    return mock_vector_store


@pytest.fixture
def timeseries_provider() -> MagicMock:
    provider = MagicMock(spec=ITimeSeriesProvider)
    provider.get_provider_name.return_value = "fake-timeseries"
    provider.query = AsyncMock(
        return_value=[Reading(timestamp=_NOW - timedelta(minutes=i), value=20.0 + i) for i in range(5)]
    )
    return provider


@pytest.fixture
def alert_provider() -> MagicMock:
    provider = MagicMock(spec=IAlertProvider)
    provider.get_provider_name.return_value = "fake-alerts"
    provider.query = AsyncMock(return_value=[])
    return provider


@pytest.fixture
def orchestrator(
    ingested_store, settings, mock_embedding_provider, mock_llm_provider, timeseries_provider, alert_provider
) -> QueryOrchestrator:
    retriever = SemanticRetriever(
        embedding_provider=mock_embedding_provider,
        vector_store=ingested_store,
        collection_name=settings.rag_collection_name,
        top_k=3,
    )
    return QueryOrchestrator(
        llm=mock_llm_provider,
        classifier=RuleBasedIntentClassifier(),
        retriever=retriever,
        series_resolver=TimeSeriesResolver(timeseries_provider),
        alert_resolver=AlertResolver(alert_provider),
        timezone_name="Europe/Berlin",
        clock=lambda: _NOW,
    )


@pytest.mark.asyncio
async def test_documentation_question_is_answered_from_context(orchestrator, mock_llm_provider) -> None:
    mock_llm_provider.complete.return_value = "Clean the lens every forty operating hours."

    response = await orchestrator.handle(
        [ChatTurn(role="user", content="How often should the focusing lens be cleaned?")],
        selected_assets=["Laser cutter"],
    )

    assert response.kind == "answer"
    assert response.reply == "Clean the lens every forty operating hours."
    assert response.sources
    assert set(response.sources) <= {"plant.jsonld", "cutter.pdf"}

    system = mock_llm_provider.complete.await_args.args[0][0]
    assert "Context for the question:" in system.content
    assert "Laser cutter" in system.content
    assert "[S" in system.content


@pytest.mark.asyncio
async def test_chart_request_served_from_timeseries(
    orchestrator, mock_llm_provider, timeseries_provider
) -> None:
    response = await orchestrator.handle(
        [ChatTurn(role="user", content="show me the temperature trend for urn:iff:asset:42 over the last 24h")]
    )

    assert response.kind == "chart"
    assert response.summary.count == 5
    assert response.summary.min == 20.0
    assert response.summary.max == 24.0
    assert "Live data (temperature) for urn:iff:asset:42" in response.reply
    timeseries_provider.query.assert_awaited_once_with(
        _ASSET, "temperature", _NOW - timedelta(hours=24), _NOW
    )
    mock_llm_provider.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_alert_request_with_store_down(orchestrator, mock_llm_provider, alert_provider) -> None:
    alert_provider.query.side_effect = ResolverUnavailableError("connection refused")

    response = await orchestrator.handle([ChatTurn(role="user", content="Any open alarms on urn:iff:asset:42?")])

    assert response.kind == "alerts"
    assert response.reply == "No live data available for urn:iff:asset:42."
    mock_llm_provider.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_alert_request_lists_alerts(orchestrator, alert_provider) -> None:
    alert_provider.query.return_value = [
        AlertRecord(resource=_ASSET, event="FilterClogged", severity="warning", status="open", text="dP high"),
    ]

    response = await orchestrator.handle([ChatTurn(role="user", content="Any open alarms on urn:iff:asset:42?")])

    assert response.kind == "alerts"
    assert "- [warning] FilterClogged (open): dP high" in response.reply


@pytest.mark.asyncio
async def test_chart_request_with_absurd_window_falls_back_to_answer(
    orchestrator, mock_llm_provider, timeseries_provider
) -> None:
    response = await orchestrator.handle(
        [ChatTurn(role="user", content=f"show me the temperature trend for {_ASSET} over the last 1000000 days")]
    )

    assert response.kind == "answer"
    timeseries_provider.query.assert_not_awaited()
    mock_llm_provider.complete.assert_awaited_once()
