"""Intent classification for live-data requests.

Two implementations of :class:`IIntentClassifier`:

- :class:`LLMIntentClassifier` -- one strict structured-output completion
  call per question ("chart?" and "alerts?" are asked separately).
- :class:`RuleBasedIntentClassifier` -- deterministic keyword and pattern
  rules; no external calls.

Both are biased towards :class:`NoIntent`: a request must name an asset
and clearly ask for a chart/trend or for alerts.  Neither raises.  Output
that cannot be parsed, or a failing completion call, becomes ``NoIntent``
with reason ``"parse_error"`` or ``"service_error"`` so logs can tell it
apart from a genuine negative.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from machine_rag.interfaces.intent_classifier import IIntentClassifier
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.models.chat import ChatTurn
from machine_rag.models.intent import (
    AlertIntent,
    ChartIntent,
    ExplicitWindow,
    NoIntent,
    RelativeWindow,
    TimeUnit,
    TimeWindow,
)
from machine_rag.services.query.time_window import parse_instant
from machine_rag.utils.errors import ClassificationParseError, LLMError

logger = structlog.get_logger(logger_name=__name__)

_CLASSIFY_TEMPERATURE = 0.1
_CLASSIFY_MAX_TOKENS = 250

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


# ---------------------------------------------------------------------------
# Structured output schemas
# ---------------------------------------------------------------------------

_NULLABLE_STRING: dict[str, Any] = {"type": ["string", "null"]}

CHART_INTENT_SCHEMA: dict[str, Any] = {
    "title": "chart_intent",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "wants_chart": {"type": "boolean"},
        "asset_urn": _NULLABLE_STRING,
        "metric": _NULLABLE_STRING,
        "last": {
            "anyOf": [
                {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "value": {"type": "integer"},
                        "unit": {"type": "string", "enum": [u.value for u in TimeUnit]},
                    },
                    "required": ["value", "unit"],
                },
                {"type": "null"},
            ]
        },
        "from": _NULLABLE_STRING,
        "to": _NULLABLE_STRING,
    },
    "required": ["wants_chart", "asset_urn", "metric", "last", "from", "to"],
}

ALERT_INTENT_SCHEMA: dict[str, Any] = {
    "title": "alert_intent",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "wants_alert": {"type": "boolean"},
        "asset_urn": _NULLABLE_STRING,
    },
    "required": ["wants_alert", "asset_urn"],
}

_CHART_PROMPT = """You decide whether a user message asks for a live data chart of an industrial asset.
Be strict: unless the message clearly asks for a chart, plot, graph, trend or history of live values,
set wants_chart to false and every other field to null. If in doubt, wants_chart is false.
- asset_urn: the asset identifier exactly as written, e.g. urn:iff:asset:42. Null if none is given.
- metric: the measured attribute in lower snake_case, e.g. temperature or spindle_speed. Null if none.
- last: for relative phrases such as "last 24h" or "past 3 days", an object {{value, unit}} with unit
  one of minute, hour, day, week.
- from / to: for explicit dates or times, ISO-8601 instants.
- If the message mentions no time at all, leave last, from and to null.
Current time: {now} ({timezone}).
Reply with the JSON object only."""

_ALERT_PROMPT = """You decide whether a user message asks for the live alerts or alarms of an industrial asset.
Be strict: unless the message clearly asks for alerts, alarms or warnings of an asset, set wants_alert
to false and asset_urn to null. If in doubt, wants_alert is false.
- asset_urn: the asset identifier exactly as written, e.g. urn:iff:asset:42. Null if none is given.
Reply with the JSON object only."""


class _RelativePayload(BaseModel):
    value: int
    unit: str


class _ChartPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    wants_chart: bool = False
    asset_urn: str | None = None
    metric: str | None = None
    last: _RelativePayload | None = None
    start: str | None = Field(default=None, alias="from")
    end: str | None = Field(default=None, alias="to")


class _AlertPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    wants_alert: bool = False
    asset_urn: str | None = None


def parse_structured_output(raw: str) -> dict[str, Any]:
    """Parse a JSON object from raw model output.

    Code fences are stripped first; if the remainder is not JSON, the
    outermost ``{...}`` region is tried.

    Raises
    ------
    ClassificationParseError
        If no JSON object can be recovered.
    """
    cleaned = _CODE_FENCE.sub("", (raw or "").strip()).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(cleaned)
        if match is None:
            raise ClassificationParseError(raw_output=raw) from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise ClassificationParseError(raw_output=raw) from exc
    if not isinstance(parsed, dict):
        raise ClassificationParseError(
            message="Intent classification output is not a JSON object", raw_output=raw
        )
    return parsed


def _clean_asset(raw: str | None) -> str | None:
    if raw is None:
        return None
    asset = raw.strip()
    return asset or None


def _clean_metric(raw: str | None) -> str | None:
    if raw is None:
        return None
    metric = re.sub(r"[\s\-]+", "_", raw.strip().lower())
    return metric or None


class LLMIntentClassifier(IIntentClassifier):
    """Intent classifier backed by the completion service's structured output."""

    def __init__(
        self,
        llm: ILLMProvider,
        timezone_name: str = "Europe/Berlin",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._llm = llm
        self._timezone_name = timezone_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def classify_chart(self, message: str) -> ChartIntent | NoIntent:
        prompt = _CHART_PROMPT.format(now=self._clock().isoformat(), timezone=self._timezone_name)
        raw = await self._ask(prompt, message, CHART_INTENT_SCHEMA, "chart")
        if raw is None:
            return NoIntent(reason="service_error")
        try:
            payload = _ChartPayload.model_validate(parse_structured_output(raw))
            window = self._window_from_payload(payload)
        except (ClassificationParseError, ValidationError, ValueError) as exc:
            logger.warning("intent_parse_failed", intent="chart", error=str(exc), raw=raw[:200])
            return NoIntent(reason="parse_error")

        if not payload.wants_chart:
            return NoIntent(reason="negative")
        asset = _clean_asset(payload.asset_urn)
        if asset is None:
            logger.info("intent_missing_asset", intent="chart")
            return NoIntent(reason="missing_asset")
        return ChartIntent(asset_ref=asset, metric=_clean_metric(payload.metric), window=window)

    async def classify_alert(self, message: str) -> AlertIntent | NoIntent:
        raw = await self._ask(_ALERT_PROMPT, message, ALERT_INTENT_SCHEMA, "alert")
        if raw is None:
            return NoIntent(reason="service_error")
        try:
            payload = _AlertPayload.model_validate(parse_structured_output(raw))
        except (ClassificationParseError, ValidationError) as exc:
            logger.warning("intent_parse_failed", intent="alert", error=str(exc), raw=raw[:200])
            return NoIntent(reason="parse_error")

        if not payload.wants_alert:
            return NoIntent(reason="negative")
        asset = _clean_asset(payload.asset_urn)
        if asset is None:
            logger.info("intent_missing_asset", intent="alert")
            return NoIntent(reason="missing_asset")
        return AlertIntent(asset_ref=asset)

    async def _ask(self, system_prompt: str, message: str, schema: dict[str, Any], intent: str) -> str | None:
        try:
            return await self._llm.complete(
                [ChatTurn(role="system", content=system_prompt), ChatTurn(role="user", content=message)],
                temperature=_CLASSIFY_TEMPERATURE,
                max_tokens=_CLASSIFY_MAX_TOKENS,
                response_schema=schema,
            )
        except LLMError as exc:
            logger.warning("intent_service_failed", intent=intent, error=str(exc))
            return None

    @staticmethod
    def _window_from_payload(payload: _ChartPayload) -> TimeWindow | None:
        if payload.last is not None:
            return RelativeWindow(value=payload.last.value, unit=TimeUnit.parse(payload.last.unit))
        if payload.start or payload.end:
            return ExplicitWindow(start=parse_instant(payload.start), end=parse_instant(payload.end))
        return None


# ---------------------------------------------------------------------------
# Deterministic rules
# ---------------------------------------------------------------------------

_ASSET_REF = re.compile(r"\burn:[A-Za-z0-9][A-Za-z0-9\-]*:[^\s,;]+", re.IGNORECASE)
_CHART_WORDS = re.compile(
    r"\b(chart|charts|plot|plots|graph|graphs|trend|trends|history|historic|curve|"
    r"visuali[sz]e|timeline)\b",
    re.IGNORECASE,
)
_ALERT_WORDS = re.compile(r"\b(alerts?|alarms?|warnings?|notifications?|incidents?)\b", re.IGNORECASE)
_RELATIVE_COUNT = re.compile(
    r"\b(?:last|past|previous)\s+(\d+)\s*"
    r"(minutes?|mins?|m|hours?|hrs?|h|days?|d|weeks?|wks?|w)\b",
    re.IGNORECASE,
)
_RELATIVE_SINGLE = re.compile(r"\b(?:last|past|previous)\s+(minute|hour|day|week)\b", re.IGNORECASE)
_ISO_INSTANT = re.compile(
    r"\b\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?"
)

KNOWN_METRICS: tuple[str, ...] = (
    "temperature",
    "pressure",
    "humidity",
    "power",
    "energy",
    "voltage",
    "current",
    "speed",
    "rpm",
    "vibration",
    "torque",
    "load",
    "flow",
    "level",
    "consumption",
)
_METRIC_WORD = re.compile(r"\b(" + "|".join(KNOWN_METRICS) + r")\b", re.IGNORECASE)


def find_asset_ref(message: str) -> str | None:
    """Return the first URN-style asset reference in *message*."""
    match = _ASSET_REF.search(message)
    if match is None:
        return None
    return match.group(0).rstrip(".?!)\"'")


class RuleBasedIntentClassifier(IIntentClassifier):
    """Deterministic classifier using keyword and pattern rules."""

    def __init__(self, metrics: tuple[str, ...] = KNOWN_METRICS) -> None:
        self._metric_pattern = (
            _METRIC_WORD
            if metrics == KNOWN_METRICS
            else re.compile(r"\b(" + "|".join(map(re.escape, metrics)) + r")\b", re.IGNORECASE)
        )

    async def classify_chart(self, message: str) -> ChartIntent | NoIntent:
        if not _CHART_WORDS.search(message):
            return NoIntent(reason="negative")
        asset = find_asset_ref(message)
        if asset is None:
            return NoIntent(reason="missing_asset")
        metric_match = self._metric_pattern.search(message)
        try:
            window = self._window(message.replace(asset, " "))
        except (ValidationError, OverflowError) as exc:
            logger.warning("intent_window_rejected", intent="chart", error=str(exc))
            return NoIntent(reason="parse_error")
        return ChartIntent(
            asset_ref=asset,
            metric=metric_match.group(1).lower() if metric_match else None,
            window=window,
        )

    async def classify_alert(self, message: str) -> AlertIntent | NoIntent:
        if not _ALERT_WORDS.search(message):
            return NoIntent(reason="negative")
        asset = find_asset_ref(message)
        if asset is None:
            return NoIntent(reason="missing_asset")
        return AlertIntent(asset_ref=asset)

    @staticmethod
    def _window(message: str) -> TimeWindow | None:
        match = _RELATIVE_COUNT.search(message)
        if match:
            return RelativeWindow(value=int(match.group(1)), unit=TimeUnit.parse(match.group(2)))
        match = _RELATIVE_SINGLE.search(message)
        if match:
            return RelativeWindow(value=1, unit=TimeUnit.parse(match.group(1)))

        instants = [parse_instant(m.group(0)) for m in _ISO_INSTANT.finditer(message)]
        instants = [i for i in instants if i is not None]
        if len(instants) >= 2:
            return ExplicitWindow(start=instants[0], end=instants[1])
        if len(instants) == 1:
            start = instants[0]
            return ExplicitWindow(start=start, end=start + timedelta(days=1))
        return None
