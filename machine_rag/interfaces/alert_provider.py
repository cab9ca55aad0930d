"""Abstract base class for alert services."""

from __future__ import annotations

from abc import ABC, abstractmethod

from machine_rag.models.live_data import AlertRecord


# Concrete implementation: AlertaAlertProvider
# Located in: machine_rag/providers/alerts/
class IAlertProvider(ABC):
    """Contract for listing the alerts raised for one asset."""

    @abstractmethod
    async def query(self, asset_ref: str) -> list[AlertRecord]:
        """Return alerts whose resource is *asset_ref*.

        Raises
        ------
        machine_rag.utils.errors.ResolverUnavailableError
            If the alert service cannot be reached or answers with an error.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"alerta"``."""
