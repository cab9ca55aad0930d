"""Time-series store adapters (PostgREST over httpx)."""

from machine_rag.providers.timeseries.postgrest_provider import PostgRESTTimeSeriesProvider

__all__ = ["PostgRESTTimeSeriesProvider"]
