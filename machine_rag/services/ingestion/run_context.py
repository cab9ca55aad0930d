"""Content fingerprints and per-run deduplication state.

Every :meth:`IngestionService.ingest` call creates a fresh
:class:`IngestionRunContext`; nothing here is module-global, so concurrent
or repeated runs never share dedup decisions.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field


def content_fingerprint(data: str | bytes) -> str:
    """Return the hex sha256 of *data* (strings are UTF-8 encoded)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


@dataclass
class IngestionRunContext:
    """Mutable state of one ingestion run: seen fingerprints and counters."""

    seen_chunks: set[str] = field(default_factory=set)
    seen_files: set[str] = field(default_factory=set)
    duplicate_chunks: int = 0
    duplicate_files: int = 0
    failed_sources: int = 0
    failed_references: int = 0
    sources_processed: int = 0

    def claim_chunk(self, fingerprint: str) -> bool:
        """Record a chunk fingerprint; return ``False`` if it was already seen."""
        if fingerprint in self.seen_chunks:
            self.duplicate_chunks += 1
            return False
        self.seen_chunks.add(fingerprint)
        return True

    def claim_file(self, fingerprint: str) -> bool:
        """Record a file fingerprint; return ``False`` if it was already seen."""
        if fingerprint in self.seen_files:
            self.duplicate_files += 1
            return False
        self.seen_files.add(fingerprint)
        return True
