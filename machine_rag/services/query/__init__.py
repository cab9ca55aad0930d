"""Query side: intent classification, live data, retrieval and answering."""

from machine_rag.services.query.intent_classifier import (
    LLMIntentClassifier,
    RuleBasedIntentClassifier,
)
from machine_rag.services.query.live_data import AlertResolver, TimeSeriesResolver, summarize_series
from machine_rag.services.query.orchestrator import QueryOrchestrator
from machine_rag.services.query.retriever import RetrievalContext, SemanticRetriever, coerce_labels
from machine_rag.services.query.time_window import default_window, resolve_window

__all__ = [
    "AlertResolver",
    "LLMIntentClassifier",
    "QueryOrchestrator",
    "RetrievalContext",
    "RuleBasedIntentClassifier",
    "SemanticRetriever",
    "TimeSeriesResolver",
    "coerce_labels",
    "default_window",
    "resolve_window",
    "summarize_series",
]
