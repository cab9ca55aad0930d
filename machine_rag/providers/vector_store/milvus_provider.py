"""Milvus vector store provider over the Milvus REST v2 API.

Talks to ``/v2/vectordb/...`` endpoints with ``httpx``.  Collections use an
auto-generated INT64 primary key, a FLOAT_VECTOR field with an HNSW index
(M=16, efConstruction=200) and a JSON ``labels`` field.  Depending on the
server version, search hits return ``labels`` as an object or as a JSON
string; the retriever coerces both into dicts.

Milvus answers most errors with HTTP 200 and a non-zero ``code`` in the
body, so every response is checked for both.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from machine_rag.interfaces.vector_store_provider import IVectorStoreProvider
from machine_rag.models.rag import SearchHit, VectorRecord
from machine_rag.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0
_INSERT_BATCH_SIZE = 200
_OUTPUT_FIELDS = ["name", "contentType", "labels"]


class MilvusRestProvider(IVectorStoreProvider):
    """Vector store provider backed by a Milvus server's REST API."""

    def __init__(
        self,
        base_url: str,
        db_name: str = "default",
        token: str = "",
        http_client: httpx.AsyncClient | None = None,
        search_ef: int = 128,
        metric: str = "COSINE",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._db_name = db_name
        self._search_ef = search_ef
        self._default_metric = metric.upper()
        self._metrics: dict[str, str] = {}
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def ensure_collection(self, name: str, dimension: int, metric: str = "COSINE") -> None:
        metric = metric.upper()
        self._metrics[name] = metric
        has = await self._post("/v2/vectordb/collections/has", {"collectionName": name})
        if _has_flag(has):
            logger.info("milvus_collection_exists", collection=name)
            return

        await self._post(
            "/v2/vectordb/collections/create",
            {
                "collectionName": name,
                "schema": {
                    "autoID": True,
                    "enableDynamicField": False,
                    "fields": [
                        {"fieldName": "id", "dataType": "Int64", "isPrimary": True},
                        {
                            "fieldName": "vector",
                            "dataType": "FloatVector",
                            "elementTypeParams": {"dim": dimension},
                        },
                        {
                            "fieldName": "name",
                            "dataType": "VarChar",
                            "elementTypeParams": {"max_length": 1024},
                        },
                        {
                            "fieldName": "contentType",
                            "dataType": "VarChar",
                            "elementTypeParams": {"max_length": 128},
                        },
                        {"fieldName": "labels", "dataType": "JSON"},
                    ],
                },
                "indexParams": [
                    {
                        "fieldName": "vector",
                        "indexName": "vector",
                        "metricType": metric,
                        "params": {"index_type": "HNSW", "M": 16, "efConstruction": 200},
                    }
                ],
                "params": {"consistencyLevel": "Bounded"},
            },
        )
        await self._post("/v2/vectordb/collections/load", {"collectionName": name})
        logger.info("milvus_collection_created", collection=name, dimension=dimension, metric=metric)

    async def upsert(self, name: str, records: list[VectorRecord]) -> int:
        """Insert *records*; Milvus assigns the primary keys."""
        inserted = 0
        for start in range(0, len(records), _INSERT_BATCH_SIZE):
            batch = records[start : start + _INSERT_BATCH_SIZE]
            data = [
                {
                    "vector": r.embedding,
                    "name": r.name,
                    "contentType": r.content_type,
                    "labels": dict(r.labels),
                }
                for r in batch
            ]
            body = await self._post(
                "/v2/vectordb/entities/insert",
                {"collectionName": name, "data": data},
            )
            count = (body.get("data") or {}).get("insertCount")
            inserted += int(count) if count is not None else len(batch)
        logger.info("milvus_insert", collection=name, records=inserted)
        return inserted

    async def search(
        self,
        name: str,
        query_vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        payload: dict[str, Any] = {
            "collectionName": name,
            "data": [query_vector],
            "annsField": "vector",
            "limit": top_k,
            "outputFields": _OUTPUT_FIELDS,
            "searchParams": {
                "metricType": self._metrics.get(name, self._default_metric),
                "params": {"ef": max(self._search_ef, top_k)},
            },
        }
        expression = self._translate_filters(filters)
        if expression:
            payload["filter"] = expression

        body = await self._post("/v2/vectordb/entities/search", payload)
        hits: list[SearchHit] = []
        for row in body.get("data") or []:
            hits.append(
                SearchHit(
                    record_id=str(row["id"]) if row.get("id") is not None else None,
                    name=row.get("name") or "",
                    score=float(row.get("distance", 0.0)),
                    labels=row.get("labels"),
                )
            )
        return hits

    def get_provider_name(self) -> str:
        return "milvus"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        body = {"dbName": self._db_name, **payload}
        try:
            response = await self._client.post(url, json=body, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise RAGError(message=f"Milvus request timed out: {path}", provider_name="milvus") from exc
        except httpx.HTTPStatusError as exc:
            raise RAGError(
                message=f"Milvus HTTP {exc.response.status_code} for {path}",
                provider_name="milvus",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise RAGError(message=f"Milvus request failed for {path}: {exc}", provider_name="milvus") from exc

        code = data.get("code", 0)
        if code not in (0, 200):
            raise RAGError(
                message=f"Milvus error {code} for {path}: {data.get('message', '')}",
                provider_name="milvus",
            )
        return data

    @staticmethod
    def _translate_filters(filters: dict[str, Any] | None) -> str | None:
        """Translate ``{label: value}`` equality filters into a boolean expression on ``labels``."""
        if not filters:
            return None
        clauses = []
        for key, value in filters.items():
            if isinstance(value, bool):
                literal = "true" if value else "false"
            elif isinstance(value, (int, float)):
                literal = repr(value)
            else:
                literal = json.dumps(str(value))
            clauses.append(f'labels["{key}"] == {literal}')
        return " and ".join(clauses)


def _has_flag(body: dict[str, Any]) -> bool:
    data = body.get("data")
    if isinstance(data, dict):
        return bool(data.get("has"))
    return bool(data)
