"""Alert service adapters (Alerta over httpx)."""

from machine_rag.providers.alerts.alerta_provider import AlertaAlertProvider

__all__ = ["AlertaAlertProvider"]
