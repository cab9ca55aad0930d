"""Document ingestion pipeline for the machine-rag vector store.

Stages: **normalize -> chunk -> dedup -> embed -> filter -> upload**.

1. **Normalize** (normalizer.py) -- flattens JSON-LD-like property graphs
   into ``key: value`` facts and paragraphs, collecting PDF references.
2. **Metadata** (metadata_extractor.py) -- picks machine id, name, version
   and validity window from the flattened properties by alias.
3. **Section** (pdf_sectionizer.py) -- extracts PDF text with PyMuPDF and
   splits it at heading-like lines.
4. **Chunk** (chunker.py / TokenChunker) -- overlapping token windows cut
   at paragraph breaks where possible.
5. **Dedup** (run_context.py) -- sha256 fingerprints of chunks and files,
   scoped to one run.
6. **Embed and upload** (ingestion_service.py / IngestionService) -- parent
   and chunk records, dimension check, batched upsert.
"""

from machine_rag.services.ingestion.chunker import TokenChunker, chunk
from machine_rag.services.ingestion.ingestion_service import IngestionService
from machine_rag.services.ingestion.run_context import IngestionRunContext, content_fingerprint

__all__ = [
    "IngestionRunContext",
    "IngestionService",
    "TokenChunker",
    "chunk",
    "content_fingerprint",
]
