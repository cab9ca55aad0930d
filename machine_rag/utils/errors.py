"""Custom exception hierarchy for machine-rag.

All application exceptions inherit from :class:`MachineRagError`, which
carries an optional ``provider_name`` so handlers can tell which external
service (e.g. "openai", "milvus", "alerta") caused the failure.

The hierarchy is organized by pipeline half:

    MachineRagError  (base -- catch-all for any machine-rag error)
    +-- SourceParseError          (ingestion: malformed source document)
    +-- ReferenceFetchError       (ingestion: embedded document unreachable)
    +-- DimensionMismatchError    (ingestion: embedding has the wrong length)
    +-- ClassificationParseError  (query: structured intent output unparseable)
    +-- ResolverUnavailableError  (query: time-series / alert store down)
    +-- CompletionServiceError    (query: final answer synthesis failed)
    +-- InvalidQueryError         (query: request cannot be handled)
    +-- ConfigurationError        (startup / missing config)
    +-- LLMError                  (any completion API call failure)
    +-- RAGError                  (embedding or vector-store failure)

Ingestion errors are contained per document, query errors degrade to
empty results or a negative intent.  Only :class:`CompletionServiceError`
and :class:`InvalidQueryError` reach the caller of a query turn.
"""


class MachineRagError(Exception):
    """Base exception for all machine-rag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[milvus] Search failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class SourceParseError(MachineRagError):
    """Raised when a source document cannot be read or parsed."""

    def __init__(
        self,
        message: str = "Source document could not be parsed",
        provider_name: str | None = None,
        source: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.source = source


class ReferenceFetchError(MachineRagError):
    """Raised when a referenced document (e.g. a PDF URL) cannot be fetched."""

    def __init__(
        self,
        message: str = "Referenced document could not be fetched",
        provider_name: str | None = None,
        reference: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.reference = reference


class DimensionMismatchError(MachineRagError):
    """Raised when an embedding does not have the configured dimensionality."""

    def __init__(
        self,
        expected: int,
        actual: int,
        record_id: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(
            message=f"Embedding dimension {actual} does not match expected {expected}",
            provider_name=provider_name,
        )
        self.expected = expected
        self.actual = actual
        self.record_id = record_id


# ---------------------------------------------------------------------------
# Query errors
# ---------------------------------------------------------------------------

class ClassificationParseError(MachineRagError):
    """Raised when the intent classifier's structured output is unparseable."""

    def __init__(
        self,
        message: str = "Intent classification output could not be parsed",
        provider_name: str | None = None,
        raw_output: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.raw_output = raw_output


class ResolverUnavailableError(MachineRagError):
    """Raised when a live-data store (time-series, alerts) is unreachable."""

    def __init__(
        self,
        message: str = "Live data store unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CompletionServiceError(MachineRagError):
    """Raised when the final answer synthesis call fails."""

    def __init__(
        self,
        message: str = "Completion service call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidQueryError(MachineRagError):
    """Raised when a query request cannot be handled (e.g. no messages)."""

    def __init__(
        self,
        message: str = "Invalid query request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider and configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(MachineRagError):
    """Raised for missing or invalid configuration (env vars, settings)."""

    def __init__(
        self,
        message: str = "Configuration error",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(MachineRagError):
    """Raised when a completion API call fails."""

    def __init__(
        self,
        message: str = "LLM call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(MachineRagError):
    """Raised for embedding generation or vector store failures."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
