"""Live data resolvers: time-series readings and alerts for one asset.

Resolvers wrap the store providers and degrade an unreachable store to an
empty result, so a failing live-data backend produces the "no live data"
reply instead of an error.
"""

from __future__ import annotations

import math
from datetime import datetime

import structlog

from machine_rag.interfaces.alert_provider import IAlertProvider
from machine_rag.interfaces.timeseries_provider import ITimeSeriesProvider
from machine_rag.models.live_data import AlertRecord, Reading, SeriesSummary
from machine_rag.utils.errors import ResolverUnavailableError

logger = structlog.get_logger(logger_name=__name__)


def summarize_series(readings: list[Reading]) -> SeriesSummary:
    """Count, min and max over the finite values of *readings*."""
    values = [r.value for r in readings if math.isfinite(r.value)]
    if not values:
        return SeriesSummary(count=0)
    return SeriesSummary(count=len(values), min=min(values), max=max(values))


class TimeSeriesResolver:
    def __init__(self, provider: ITimeSeriesProvider) -> None:
        self._provider = provider

    async def fetch(
        self,
        asset_ref: str,
        metric: str | None,
        start: datetime,
        end: datetime,
    ) -> list[Reading]:
        try:
            readings = await self._provider.query(asset_ref, metric, start, end)
        except ResolverUnavailableError as exc:
            logger.warning(
                "timeseries_unavailable",
                asset_ref=asset_ref,
                metric=metric,
                provider=self._provider.get_provider_name(),
                error=str(exc),
            )
            return []
        logger.info("timeseries_fetched", asset_ref=asset_ref, metric=metric, readings=len(readings))
        return readings


class AlertResolver:
    def __init__(self, provider: IAlertProvider) -> None:
        self._provider = provider

    async def fetch(self, asset_ref: str) -> list[AlertRecord]:
        try:
            alerts = await self._provider.query(asset_ref)
        except ResolverUnavailableError as exc:
            logger.warning(
                "alerts_unavailable",
                asset_ref=asset_ref,
                provider=self._provider.get_provider_name(),
                error=str(exc),
            )
            return []
        logger.info("alerts_fetched", asset_ref=asset_ref, alerts=len(alerts))
        return alerts
