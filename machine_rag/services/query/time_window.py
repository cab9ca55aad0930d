"""Resolve classified time windows into concrete ``[start, end)`` instants.

Naive datetimes and the default window are interpreted in the configured
reference timezone (``DEFAULT_TIMEZONE``, ``Europe/Berlin`` unless set).
Resolved instants are always returned in UTC.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from machine_rag.models.intent import ExplicitWindow, RelativeWindow, ResolvedWindow, TimeWindow


def _localize(moment: datetime, zone: ZoneInfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    return moment


def default_window(now: datetime, timezone_name: str) -> ResolvedWindow:
    """Yesterday 00:00 through the end of today, in the reference timezone."""
    zone = ZoneInfo(timezone_name)
    today = _localize(now, zone).astimezone(zone).date()
    start = datetime.combine(today - timedelta(days=1), time.min, tzinfo=zone)
    end = datetime.combine(today + timedelta(days=1), time.min, tzinfo=zone)
    return ResolvedWindow(start=start.astimezone(timezone.utc), end=end.astimezone(timezone.utc))


def resolve_window(
    window: TimeWindow | None,
    now: datetime,
    timezone_name: str,
) -> ResolvedWindow | None:
    """Return the concrete window, or ``None`` when it cannot be resolved.

    * ``None`` -- no time phrase was given: the default window applies.
    * :class:`RelativeWindow` -- ``now - value*unit`` up to ``now``.
    * :class:`ExplicitWindow` -- both bounds are required and must be ordered.

    Windows reaching outside the representable date range yield ``None``.
    """
    if window is None:
        return default_window(now, timezone_name)

    zone = ZoneInfo(timezone_name)
    now = _localize(now, zone)
    try:
        return _resolve(window, now, zone)
    except OverflowError:
        return None


def _resolve(window: TimeWindow, now: datetime, zone: ZoneInfo) -> ResolvedWindow | None:
    if isinstance(window, RelativeWindow):
        start = now - window.unit.to_timedelta(window.value)
        return ResolvedWindow(start=start.astimezone(timezone.utc), end=now.astimezone(timezone.utc))

    if isinstance(window, ExplicitWindow):
        if window.start is None or window.end is None:
            return None
        start = _localize(window.start, zone)
        end = _localize(window.end, zone)
        if start >= end:
            return None
        return ResolvedWindow(start=start.astimezone(timezone.utc), end=end.astimezone(timezone.utc))

    return None


def parse_instant(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 date or datetime (``Z`` suffix allowed); ``None`` if invalid."""
    if not raw:
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
