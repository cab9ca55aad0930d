"""Provider and service wiring for machine-rag.

Builds the ingestion service and the query orchestrator from
:class:`~machine_rag.config.settings.Settings`.  Provider imports are
deferred inside the factories so a CLI command only loads the SDKs it
actually uses (chromadb in particular is slow to import).

Live-data providers are optional: when ``TIMESERIES_API_URL`` or
``ALERTA_API_URL`` is empty, the corresponding routing step is skipped.
"""

from __future__ import annotations

import structlog

from machine_rag.config.settings import Settings
from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider
from machine_rag.utils.errors import ConfigurationError
from machine_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Return the OpenAI-compatible completion provider."""
    if not app_settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is required for completions", provider_name="openai")
    from machine_rag.providers.llm.openai_provider import OpenAILLMProvider

    return OpenAILLMProvider(settings=app_settings)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Return the OpenAI-compatible embedding provider, fitted to ``RAG_EMBED_DIM``."""
    if not app_settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is required for embeddings", provider_name="openai")
    from machine_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

    return OpenAIEmbeddingProvider(settings=app_settings)


def build_vector_store(app_settings: Settings) -> IVectorStoreProvider:
    """Select the vector store backend named by ``VECTOR_STORE_BACKEND``."""
    if app_settings.vector_store_backend == "milvus":
        if not app_settings.milvus_api_url:
            raise ConfigurationError("MILVUS_API_URL is required for the milvus backend", provider_name="milvus")
        from machine_rag.providers.vector_store.milvus_provider import MilvusRestProvider

        return MilvusRestProvider(
            base_url=app_settings.milvus_api_url,
            db_name=app_settings.milvus_db_name,
            token=app_settings.milvus_token,
            metric=app_settings.rag_embed_metric,
        )

    from machine_rag.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(persist_directory=app_settings.chromadb_persist_dir)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def build_ingestion_service(app_settings: Settings):  # noqa: ANN201
    """Construct the ingestion service with its providers."""
    from machine_rag.providers.documents.http_source import HttpDocumentSource, LocalDocumentSource
    from machine_rag.services.ingestion.chunker import TokenChunker
    from machine_rag.services.ingestion.ingestion_service import IngestionService

    embedding_provider = build_embedding_provider(app_settings)
    vector_store = build_vector_store(app_settings)

    _logger.info(
        "ingestion_service_built",
        embedding=embedding_provider.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        collection=app_settings.rag_collection_name,
    )
    return IngestionService(
        settings=app_settings,
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        document_source=HttpDocumentSource(),
        chunker=TokenChunker(
            min_tokens=app_settings.rag_token_chunk_min,
            max_tokens=app_settings.rag_token_chunk_max,
            overlap_tokens=app_settings.rag_token_chunk_overlap,
        ),
        local_source=LocalDocumentSource(),
    )


def build_query_orchestrator(app_settings: Settings, rule_based: bool = False):  # noqa: ANN201
    """Construct the query orchestrator.

    Parameters
    ----------
    app_settings:
        Loaded settings.
    rule_based:
        Use the deterministic keyword classifier instead of the
        completion-backed one.
    """
    from machine_rag.services.query.intent_classifier import (
        LLMIntentClassifier,
        RuleBasedIntentClassifier,
    )
    from machine_rag.services.query.live_data import AlertResolver, TimeSeriesResolver
    from machine_rag.services.query.orchestrator import QueryOrchestrator
    from machine_rag.services.query.retriever import SemanticRetriever

    llm = build_llm_provider(app_settings)
    classifier = (
        RuleBasedIntentClassifier()
        if rule_based
        else LLMIntentClassifier(llm, timezone_name=app_settings.default_timezone)
    )
    retriever = SemanticRetriever(
        embedding_provider=build_embedding_provider(app_settings),
        vector_store=build_vector_store(app_settings),
        collection_name=app_settings.rag_collection_name,
        top_k=app_settings.retrieval_top_k,
    )

    series_resolver = None
    if app_settings.has_timeseries_store():
        from machine_rag.providers.timeseries.postgrest_provider import PostgRESTTimeSeriesProvider

        series_resolver = TimeSeriesResolver(
            PostgRESTTimeSeriesProvider(
                base_url=app_settings.timeseries_api_url,
                table=app_settings.timeseries_table,
                attribute_prefix=app_settings.timeseries_attribute_prefix,
                row_limit=app_settings.timeseries_row_limit,
                api_key=app_settings.timeseries_api_key,
                timeout=app_settings.http_timeout_seconds,
            )
        )

    alert_resolver = None
    if app_settings.has_alert_service():
        from machine_rag.providers.alerts.alerta_provider import AlertaAlertProvider

        alert_resolver = AlertResolver(
            AlertaAlertProvider(
                api_url=app_settings.alerta_api_url,
                api_key=app_settings.alerta_api_key,
                timeout=app_settings.http_timeout_seconds,
            )
        )

    _logger.info(
        "query_orchestrator_built",
        classifier=type(classifier).__name__,
        timeseries=series_resolver is not None,
        alerts=alert_resolver is not None,
    )
    return QueryOrchestrator(
        llm=llm,
        classifier=classifier,
        retriever=retriever,
        series_resolver=series_resolver,
        alert_resolver=alert_resolver,
        timezone_name=app_settings.default_timezone,
        history_max_turns=app_settings.history_max_turns,
        chart_preview_limit=app_settings.chart_preview_limit,
    )
