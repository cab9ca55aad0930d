"""Live data models (time-series readings, alerts) and query responses.

A query turn ends in exactly one of three responses:

- :class:`ChartResponse` -- live time-series data, answered without a
  completion call.
- :class:`AlertResponse` -- live alerts, answered without a completion call.
- :class:`AnswerResponse` -- a completion grounded in retrieved documents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from machine_rag.models.intent import ResolvedWindow


class Reading(BaseModel):
    """One time-series observation."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    value: float


class AlertRecord(BaseModel):
    """One alert as reported by the alert service.

    Field aliases match the Alerta wire names so raw alert objects validate
    directly; unknown keys are ignored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str | None = None
    resource: str
    event: str | None = None
    severity: str
    status: str
    create_time: datetime | None = Field(default=None, alias="createTime")
    text: str | None = None


class SeriesSummary(BaseModel):
    """Summary statistics over the finite values of a series."""

    model_config = ConfigDict(frozen=True)

    count: int = Field(ge=0)
    min: float | None = None
    max: float | None = None


class ChartResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["chart"] = "chart"
    reply: str
    asset_ref: str
    metric: str | None = None
    window: ResolvedWindow
    series: list[Reading] = Field(default_factory=list, description="Leading readings, capped in size.")
    series_tail: list[Reading] = Field(
        default_factory=list,
        description="Trailing readings, capped in size; empty unless the series was truncated.",
    )
    truncated: bool = False
    summary: SeriesSummary | None = None


class AlertResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["alerts"] = "alerts"
    reply: str
    asset_ref: str
    alerts: list[AlertRecord] = Field(default_factory=list)


class AnswerResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["answer"] = "answer"
    reply: str
    sources: list[str] = Field(default_factory=list, description="Source names of the context blocks.")


QueryResponse = Union[ChartResponse, AlertResponse, AnswerResponse]
