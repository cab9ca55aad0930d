"""Utility modules for machine-rag.

- **errors** -- Exception hierarchy rooted at MachineRagError; each pipeline
  half raises its own subclasses so callers contain failures at the right
  level (per document during ingestion, per step during a query turn).
- **concurrency** -- semaphore-bounded ``asyncio.gather`` used to cap
  concurrent PDF fetch/parse work.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from machine_rag.utils.concurrency import throttled_gather
from machine_rag.utils.errors import (
    ClassificationParseError,
    CompletionServiceError,
    ConfigurationError,
    DimensionMismatchError,
    InvalidQueryError,
    LLMError,
    MachineRagError,
    RAGError,
    ReferenceFetchError,
    ResolverUnavailableError,
    SourceParseError,
)
from machine_rag.utils.logging import configure_logging, get_logger

__all__ = [
    "ClassificationParseError",
    "CompletionServiceError",
    "ConfigurationError",
    "DimensionMismatchError",
    "InvalidQueryError",
    "LLMError",
    "MachineRagError",
    "RAGError",
    "ReferenceFetchError",
    "ResolverUnavailableError",
    "SourceParseError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
