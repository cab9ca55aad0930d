"""Alert provider backed by the Alerta REST API.

``GET <ALERTA_API_URL>?resource=<asset>`` with an ``Authorization: Key``
header returns ``{"status": "ok", "alerts": [...]}``.
"""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from machine_rag.interfaces.alert_provider import IAlertProvider
from machine_rag.models.live_data import AlertRecord
from machine_rag.utils.errors import ResolverUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 15.0


class AlertaAlertProvider(IAlertProvider):
    """Lists alerts for one resource from an Alerta server."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._api_url = api_url
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Key {api_key}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def query(self, asset_ref: str) -> list[AlertRecord]:
        try:
            response = await self._client.get(
                self._api_url, params={"resource": asset_ref}, headers=self._headers
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as exc:
            raise ResolverUnavailableError(message="Alert query timed out", provider_name="alerta") from exc
        except httpx.HTTPStatusError as exc:
            raise ResolverUnavailableError(
                message=f"Alert service returned HTTP {exc.response.status_code}",
                provider_name="alerta",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ResolverUnavailableError(message=f"Alert query failed: {exc}", provider_name="alerta") from exc

        raw_alerts = body.get("alerts") if isinstance(body, dict) else None
        if not isinstance(raw_alerts, list):
            raw_alerts = []
        alerts: list[AlertRecord] = []
        for raw in raw_alerts:
            try:
                alerts.append(AlertRecord.model_validate(raw))
            except ValidationError as exc:
                logger.debug("alert_skipped", error=str(exc))
        return alerts

    def get_provider_name(self) -> str:
        return "alerta"
