"""Abstract base class for sources of referenced documents (PDF bytes)."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: HttpDocumentSource, LocalDocumentSource
# Located in: machine_rag/providers/documents/
class IDocumentSource(ABC):
    """Contract for fetching the raw bytes behind a document reference."""

    @abstractmethod
    async def fetch(self, reference: str) -> bytes:
        """Return the bytes of *reference* (a URL or a path).

        Raises
        ------
        machine_rag.utils.errors.ReferenceFetchError
            If the document cannot be retrieved.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"http"``."""
