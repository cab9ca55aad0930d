"""Intent and time window models for query routing.

An :data:`Intent` is a tagged union: exactly one of :class:`ChartIntent`,
:class:`AlertIntent` or :class:`NoIntent` is produced per classification.
``NoIntent.reason`` keeps an explicit negative apart from a parse or
service failure; the orchestrator routes them identically but logs them
differently.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_RELATIVE_SPAN = timedelta(days=3660)
"""Longest trailing window accepted, roughly ten years."""


class TimeUnit(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"

    @classmethod
    def parse(cls, raw: str) -> TimeUnit:
        """Accept long names, plurals and the short forms ``m/h/d/w``."""
        value = raw.strip().lower()
        aliases = {
            "m": cls.MINUTE, "min": cls.MINUTE, "mins": cls.MINUTE, "minute": cls.MINUTE,
            "minutes": cls.MINUTE,
            "h": cls.HOUR, "hr": cls.HOUR, "hrs": cls.HOUR, "hour": cls.HOUR, "hours": cls.HOUR,
            "d": cls.DAY, "day": cls.DAY, "days": cls.DAY,
            "w": cls.WEEK, "wk": cls.WEEK, "week": cls.WEEK, "weeks": cls.WEEK,
        }
        if value not in aliases:
            raise ValueError(f"Unknown time unit: {raw!r}")
        return aliases[value]

    def to_timedelta(self, value: int) -> timedelta:
        return {
            TimeUnit.MINUTE: timedelta(minutes=value),
            TimeUnit.HOUR: timedelta(hours=value),
            TimeUnit.DAY: timedelta(days=value),
            TimeUnit.WEEK: timedelta(weeks=value),
        }[self]


class RelativeWindow(BaseModel):
    """A trailing window such as "last 24 hours"."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["relative"] = "relative"
    value: int = Field(gt=0)
    unit: TimeUnit

    @model_validator(mode="after")
    def _check_span(self) -> RelativeWindow:
        try:
            span = self.unit.to_timedelta(self.value)
        except OverflowError:
            span = None
        if span is None or span > MAX_RELATIVE_SPAN:
            raise ValueError(f"Window of {self.value} {self.unit.value}(s) exceeds {MAX_RELATIVE_SPAN.days} days")
        return self


class ExplicitWindow(BaseModel):
    """A window given as two instants; either may be missing after extraction."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["explicit"] = "explicit"
    start: datetime | None = None
    end: datetime | None = None


TimeWindow = Union[RelativeWindow, ExplicitWindow]


class ResolvedWindow(BaseModel):
    """A concrete ``[start, end)`` pair of timezone-aware instants."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class ChartIntent(BaseModel):
    """The user wants a live time-series chart for one asset."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["chart"] = "chart"
    asset_ref: str
    metric: str | None = None
    window: TimeWindow | None = Field(
        default=None,
        description="None means no time phrase was given; the default window applies.",
    )


class AlertIntent(BaseModel):
    """The user wants the live alert listing for one asset."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["alert"] = "alert"
    asset_ref: str


NoIntentReason = Literal["negative", "parse_error", "service_error", "missing_asset"]


class NoIntent(BaseModel):
    """Neither a chart nor an alert was requested (or classification failed)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"
    reason: NoIntentReason = "negative"


Intent = Union[ChartIntent, AlertIntent, NoIntent]
