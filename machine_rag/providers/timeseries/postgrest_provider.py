"""Time-series provider reading entity history through PostgREST.

The history table holds one row per observed attribute value
(``entityId``, ``attributeId``, ``observedAt``, ``value``).  Attribute ids
are full IRIs, built from a configured prefix and the metric name, e.g.
``https://industry-fusion.org/base/v0.1/temperature``.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import httpx
import structlog

from machine_rag.interfaces.timeseries_provider import ITimeSeriesProvider
from machine_rag.models.live_data import Reading
from machine_rag.utils.errors import ResolverUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 15.0


def _iso_utc(moment: datetime) -> str:
    """Format *moment* as ``2025-08-14T12:36:04.868Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


class PostgRESTTimeSeriesProvider(ITimeSeriesProvider):
    """Queries an entity history table exposed by PostgREST."""

    def __init__(
        self,
        base_url: str,
        table: str = "entityhistory",
        attribute_prefix: str = "https://industry-fusion.org/base/v0.1/",
        row_limit: int = 100,
        api_key: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._table = table
        self._attribute_prefix = attribute_prefix
        self._row_limit = row_limit
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def query(
        self,
        asset_ref: str,
        metric: str | None,
        start: datetime,
        end: datetime,
    ) -> list[Reading]:
        params: list[tuple[str, str]] = [
            ("select", "observedAt,value"),
            ("entityId", f"eq.{asset_ref}"),
            ("observedAt", f"gte.{_iso_utc(start)}"),
            ("observedAt", f"lt.{_iso_utc(end)}"),
            ("order", "observedAt.desc"),
            ("limit", str(self._row_limit)),
        ]
        if metric:
            params.insert(2, ("attributeId", f"eq.{self._attribute_prefix}{metric}"))

        url = f"{self._base_url}/{self._table}"
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            rows = response.json()
        except httpx.TimeoutException as exc:
            raise ResolverUnavailableError(
                message="Time-series query timed out", provider_name="postgrest"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ResolverUnavailableError(
                message=f"Time-series store returned HTTP {exc.response.status_code}",
                provider_name="postgrest",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ResolverUnavailableError(
                message=f"Time-series query failed: {exc}", provider_name="postgrest"
            ) from exc

        readings: list[Reading] = []
        for row in rows if isinstance(rows, list) else []:
            reading = self._row_to_reading(row)
            if reading is not None:
                readings.append(reading)
        logger.debug(
            "timeseries_query",
            asset=asset_ref,
            metric=metric,
            rows=len(readings),
        )
        return readings

    def get_provider_name(self) -> str:
        return "postgrest"

    @staticmethod
    def _row_to_reading(row: dict) -> Reading | None:
        try:
            value = float(row["value"])
            timestamp = datetime.fromisoformat(str(row["observedAt"]).replace("Z", "+00:00"))
        except (KeyError, TypeError, ValueError):
            logger.debug("timeseries_row_skipped", row=row)
            return None
        if not math.isfinite(value):
            return None
        return Reading(timestamp=timestamp, value=value)
