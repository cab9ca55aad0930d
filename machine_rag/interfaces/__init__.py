"""Public interface definitions for all external collaborators.

Every external service used by machine-rag is reached through the abstract
base classes in this package.  Concrete adapters implement them and are
wired in ``machine_rag.main``; tests inject fakes through the same seams.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations
    ------------------------------------------------------------------
    ILLMProvider           ->  OpenAILLMProvider
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider, MilvusRestProvider
    ITimeSeriesProvider    ->  PostgRESTTimeSeriesProvider
    IAlertProvider         ->  AlertaAlertProvider
    IDocumentSource        ->  HttpDocumentSource, LocalDocumentSource
    IIntentClassifier      ->  LLMIntentClassifier, RuleBasedIntentClassifier
"""

from machine_rag.interfaces.alert_provider import IAlertProvider
from machine_rag.interfaces.document_source import IDocumentSource
from machine_rag.interfaces.embedding_provider import IEmbeddingProvider
from machine_rag.interfaces.intent_classifier import IIntentClassifier
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.interfaces.timeseries_provider import ITimeSeriesProvider
from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IAlertProvider",
    "IDocumentSource",
    "IEmbeddingProvider",
    "IIntentClassifier",
    "ILLMProvider",
    "ITimeSeriesProvider",
    "IVectorStoreProvider",
]
