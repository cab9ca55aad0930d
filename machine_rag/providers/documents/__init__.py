"""Document sources for referenced files (PDF manuals)."""

from machine_rag.providers.documents.http_source import HttpDocumentSource, LocalDocumentSource

__all__ = ["HttpDocumentSource", "LocalDocumentSource"]
