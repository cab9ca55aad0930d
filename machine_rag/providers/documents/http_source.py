"""Document sources yielding the raw bytes behind a reference.

:class:`HttpDocumentSource` downloads URLs with ``httpx``;
:class:`LocalDocumentSource` reads files relative to a root directory.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import structlog

from machine_rag.interfaces.document_source import IDocumentSource
from machine_rag.utils.errors import ReferenceFetchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 60.0
_USER_AGENT = "machine-rag/0.1 (+document ingestion)"


class HttpDocumentSource(IDocumentSource):
    """Fetches documents over HTTP(S), following redirects."""

    def __init__(self, http_client: httpx.AsyncClient | None = None, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
        )

    async def fetch(self, reference: str) -> bytes:
        try:
            response = await self._client.get(reference)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ReferenceFetchError(
                message=f"Timed out fetching {reference}", provider_name="http", reference=reference
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ReferenceFetchError(
                message=f"HTTP {exc.response.status_code} fetching {reference}",
                provider_name="http",
                reference=reference,
            ) from exc
        except httpx.HTTPError as exc:
            raise ReferenceFetchError(
                message=f"Failed to fetch {reference}: {exc}", provider_name="http", reference=reference
            ) from exc
        logger.debug("document_fetched", reference=reference, bytes=len(response.content))
        return response.content

    def get_provider_name(self) -> str:
        return "http"


class LocalDocumentSource(IDocumentSource):
    """Reads documents from the filesystem; relative references resolve against *root*."""

    def __init__(self, root: str | Path = ".") -> None:
        self._root = Path(root)

    async def fetch(self, reference: str) -> bytes:
        path = Path(reference)
        if not path.is_absolute():
            path = self._root / path
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise ReferenceFetchError(
                message=f"Cannot read {path}: {exc}", provider_name="file", reference=reference
            ) from exc

    def get_provider_name(self) -> str:
        return "file"
