"""machine-rag domain models, re-exported for convenience.

Submodules by concern:
    - documents.py -- source graphs, normalized facts, paragraphs, PDF sections
    - rag.py       -- chunks, vector records, search hits, ingestion counters
    - chat.py      -- conversation turns
    - intent.py    -- classified intents and time windows
    - live_data.py -- readings, alerts, and the three query responses
"""

from __future__ import annotations

from machine_rag.models.chat import ChatRole, ChatTurn
from machine_rag.models.documents import (
    NormalizedEntity,
    NormalizedFact,
    Paragraph,
    PdfText,
    Section,
    SourceDocument,
)
from machine_rag.models.intent import (
    AlertIntent,
    ChartIntent,
    ExplicitWindow,
    Intent,
    NoIntent,
    RelativeWindow,
    ResolvedWindow,
    TimeUnit,
    TimeWindow,
)
from machine_rag.models.live_data import (
    AlertRecord,
    AlertResponse,
    AnswerResponse,
    ChartResponse,
    QueryResponse,
    Reading,
    SeriesSummary,
)
from machine_rag.models.rag import Chunk, IngestionResult, SearchHit, VectorRecord

__all__ = [
    "AlertIntent",
    "AlertRecord",
    "AlertResponse",
    "AnswerResponse",
    "ChartIntent",
    "ChartResponse",
    "ChatRole",
    "ChatTurn",
    "Chunk",
    "ExplicitWindow",
    "IngestionResult",
    "Intent",
    "NoIntent",
    "NormalizedEntity",
    "NormalizedFact",
    "Paragraph",
    "PdfText",
    "QueryResponse",
    "Reading",
    "RelativeWindow",
    "ResolvedWindow",
    "SearchHit",
    "Section",
    "SeriesSummary",
    "SourceDocument",
    "TimeUnit",
    "TimeWindow",
    "VectorRecord",
]
