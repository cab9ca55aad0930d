"""Abstract base class for time-series stores holding live machine data."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from machine_rag.models.live_data import Reading


# Concrete implementation: PostgRESTTimeSeriesProvider
# Located in: machine_rag/providers/timeseries/
class ITimeSeriesProvider(ABC):
    """Contract for querying historical readings of one asset attribute."""

    @abstractmethod
    async def query(
        self,
        asset_ref: str,
        metric: str | None,
        start: datetime,
        end: datetime,
    ) -> list[Reading]:
        """Return readings observed in ``[start, end)`` in store order.

        Parameters
        ----------
        asset_ref:
            Asset identifier, e.g. ``"urn:iff:asset:42"``.
        metric:
            Attribute name; ``None`` returns readings of every attribute.
        start, end:
            Timezone-aware window bounds.

        Raises
        ------
        machine_rag.utils.errors.ResolverUnavailableError
            If the store cannot be reached or answers with an error.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"postgrest"``."""
