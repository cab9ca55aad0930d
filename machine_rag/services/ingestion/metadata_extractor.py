"""Machine-level metadata derived from flattened entity properties.

Each semantic field is taken from the first alias present with a non-empty
value.  A field with no matching alias is omitted; nothing is guessed.
Validity timestamps are stored as epoch milliseconds.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from pydantic import JsonValue

from machine_rag.models.documents import NormalizedEntity

logger = structlog.get_logger(logger_name=__name__)

_TEXT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "machine_id": ("machine_id", "machineId", "asset_id", "assetId", "id"),
    "asset_name": ("product_name", "asset_name", "name", "assetName"),
    "dt_version": ("dt_version", "schema_version", "version"),
}

_TIMESTAMP_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "ts_start": ("ts_start", "timestamp_start", "validFrom", "from"),
    "ts_end": ("ts_end", "timestamp_end", "validTo", "to"),
}


def _lookup(flat: dict[str, JsonValue], aliases: tuple[str, ...]) -> JsonValue:
    for alias in aliases:
        value = flat.get(alias)
        if value is None or value == "" or isinstance(value, (dict, list)):
            continue
        return value
    return None


def to_epoch_millis(value: JsonValue) -> int | None:
    """Convert a number or ISO-8601 string to epoch milliseconds, else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def extract_machine_metadata(entity: NormalizedEntity) -> dict[str, str | int]:
    """Return ``machine_id``, ``asset_name``, ``dt_version``, ``ts_start``, ``ts_end`` where found."""
    flat: dict[str, JsonValue] = dict(entity.properties)
    if entity.id is not None:
        flat["id"] = entity.id

    meta: dict[str, str | int] = {}
    for field, aliases in _TEXT_FIELD_ALIASES.items():
        value = _lookup(flat, aliases)
        if value is not None:
            meta[field] = str(value)
    for field, aliases in _TIMESTAMP_FIELD_ALIASES.items():
        value = _lookup(flat, aliases)
        if value is None:
            continue
        epoch = to_epoch_millis(value)
        if epoch is None:
            logger.debug("machine_timestamp_unparsed", field=field, value=str(value))
            continue
        meta[field] = epoch
    return meta
