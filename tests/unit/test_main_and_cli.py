"""Unit tests for provider wiring in machine_rag.main and the CLI commands."""

from __future__ import annotations

import argparse
from unittest.mock import AsyncMock, MagicMock

import pytest

from machine_rag import main as wiring
from machine_rag.cli import ask, ingest
from machine_rag.cli import main as cli_main
from machine_rag.models.live_data import AnswerResponse
from machine_rag.providers.vector_store.chromadb_provider import ChromaDBProvider
from machine_rag.providers.vector_store.milvus_provider import MilvusRestProvider
from machine_rag.services.query.intent_classifier import LLMIntentClassifier, RuleBasedIntentClassifier
from machine_rag.services.query.orchestrator import QueryOrchestrator
from machine_rag.utils.errors import ConfigurationError


# ======================================================================
# Provider selection
# ======================================================================


class TestProviderSelection:
    def test_completion_requires_api_key(self, settings_factory) -> None:
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            wiring.build_llm_provider(settings_factory(openai_api_key=""))

    def test_embedding_requires_api_key(self, settings_factory) -> None:
        with pytest.raises(ConfigurationError):
            wiring.build_embedding_provider(settings_factory(openai_api_key=""))

    def test_chromadb_is_default_backend(self, tmp_path, settings_factory) -> None:
        store = wiring.build_vector_store(settings_factory(chromadb_persist_dir=str(tmp_path)))
        assert isinstance(store, ChromaDBProvider)

    def test_milvus_backend(self, settings_factory) -> None:
        store = wiring.build_vector_store(
            settings_factory(
                vector_store_backend="milvus", milvus_api_url="http://localhost:19530", rag_embed_metric="IP"
            )
        )
        assert isinstance(store, MilvusRestProvider)
        assert store.get_provider_name() == "milvus"
        assert store._default_metric == "IP"

    def test_milvus_requires_url(self, settings_factory) -> None:
        with pytest.raises(ConfigurationError, match="MILVUS_API_URL"):
            wiring.build_vector_store(settings_factory(vector_store_backend="milvus", milvus_api_url=""))


class TestBuildQueryOrchestrator:
    def test_live_data_skipped_when_unconfigured(self, tmp_path, settings_factory) -> None:
        orchestrator = wiring.build_query_orchestrator(settings_factory(chromadb_persist_dir=str(tmp_path)))

        assert isinstance(orchestrator, QueryOrchestrator)
        assert isinstance(orchestrator._classifier, LLMIntentClassifier)
        assert orchestrator._series_resolver is None
        assert orchestrator._alert_resolver is None

    def test_live_data_wired_when_configured(self, tmp_path, settings_factory) -> None:
        app_settings = settings_factory(
            chromadb_persist_dir=str(tmp_path),
            timeseries_api_url="https://pgrest.example.com",
            alerta_api_url="https://alerta.example.com/api/alerts",
            history_max_turns=4,
        )

        orchestrator = wiring.build_query_orchestrator(app_settings, rule_based=True)

        assert isinstance(orchestrator._classifier, RuleBasedIntentClassifier)
        assert orchestrator._series_resolver is not None
        assert orchestrator._alert_resolver is not None
        assert orchestrator._history_max_turns == 4


# ======================================================================
# CLI
# ======================================================================


class TestParser:
    def test_ingest_arguments(self) -> None:
        args = cli_main.build_parser().parse_args(["ingest", "plant.jsonld", "manual.pdf"])
        assert args.command == "ingest"
        assert args.files == ["plant.jsonld", "manual.pdf"]
        assert args.path is None

    def test_ask_arguments(self) -> None:
        args = cli_main.build_parser().parse_args(
            ["ask", "How hot is it?", "--asset", "Laser 3000", "--asset", "Press 7", "--rules"]
        )
        assert args.question == "How hot is it?"
        assert args.assets == ["Laser 3000", "Press 7"]
        assert args.rules is True

    def test_no_command_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli_main.main([])
        assert exc_info.value.code == 1


class TestCommands:
    @pytest.mark.asyncio
    async def test_ingest_rejects_path_and_files(self, capsys, settings_factory) -> None:
        args = argparse.Namespace(path="./data", files=["a.pdf"])
        assert await ingest.run(args, settings_factory()) == 2
        assert "either --path or files" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_ask_prints_reply_and_unique_sources(self, monkeypatch, capsys, settings_factory) -> None:
        orchestrator = MagicMock()
        orchestrator.handle = AsyncMock(
            return_value=AnswerResponse(
                reply="The spindle runs at up to 1200 rpm.",
                sources=["manual.pdf", "manual.pdf", "plant.jsonld"],
            )
        )
        monkeypatch.setattr(wiring, "build_query_orchestrator", lambda s, rule_based=False: orchestrator)
        args = argparse.Namespace(question="max spindle speed?", assets=["Laser 3000"], rules=False)

        assert await ask.run(args, settings_factory()) == 0

        out = capsys.readouterr().out
        assert "The spindle runs at up to 1200 rpm." in out
        assert out.count("  - manual.pdf") == 1
        assert "  - plant.jsonld" in out
        assert orchestrator.handle.await_args.kwargs["selected_assets"] == ["Laser 3000"]

    def test_application_errors_exit_with_status_one(self, monkeypatch, capsys) -> None:
        async def failing(args, app_settings):
            raise ConfigurationError("OPENAI_API_KEY is required", provider_name="openai")

        monkeypatch.setitem(cli_main._COMMANDS, "ask", failing)

        with pytest.raises(SystemExit) as exc_info:
            cli_main.main(["ask", "hello"])

        assert exc_info.value.code == 1
        assert "[openai] OPENAI_API_KEY is required" in capsys.readouterr().err
