"""Unit tests for machine metadata extraction."""

from __future__ import annotations

from machine_rag.models.documents import NormalizedEntity
from machine_rag.services.ingestion.metadata_extractor import (
    extract_machine_metadata,
    to_epoch_millis,
)


def _entity(entity_id: str | None = "urn:iff:asset:42", **properties) -> NormalizedEntity:
    return NormalizedEntity(id=entity_id, type="Cutter", properties=properties)


class TestExtractMachineMetadata:
    def test_first_alias_wins(self) -> None:
        meta = extract_machine_metadata(
            _entity(machine_id="M-1", asset_id="A-9", product_name="Laser 3000", name="cutter")
        )
        assert meta["machine_id"] == "M-1"
        assert meta["asset_name"] == "Laser 3000"

    def test_falls_back_to_entity_id(self) -> None:
        assert extract_machine_metadata(_entity())["machine_id"] == "urn:iff:asset:42"

    def test_missing_fields_are_omitted(self) -> None:
        meta = extract_machine_metadata(_entity(entity_id=None, color="red"))
        assert meta == {}

    def test_empty_and_composite_values_skipped(self) -> None:
        meta = extract_machine_metadata(
            _entity(product_name="", asset_name={"de": "x"}, name="Fallback name", version=2)
        )
        assert meta["asset_name"] == "Fallback name"
        assert meta["dt_version"] == "2"

    def test_validity_timestamps_to_epoch_millis(self) -> None:
        meta = extract_machine_metadata(
            _entity(validFrom="2025-01-01T00:00:00Z", ts_end=1735776000000)
        )
        assert meta["ts_start"] == 1735689600000
        assert meta["ts_end"] == 1735776000000

    def test_unparseable_timestamp_omitted(self) -> None:
        assert "ts_start" not in extract_machine_metadata(_entity(ts_start="next tuesday"))


class TestToEpochMillis:
    def test_naive_iso_treated_as_utc(self) -> None:
        assert to_epoch_millis("1970-01-01T00:00:01") == 1000

    def test_offset_respected(self) -> None:
        assert to_epoch_millis("1970-01-01T01:00:00+01:00") == 0

    def test_booleans_and_objects_rejected(self) -> None:
        assert to_epoch_millis(True) is None
        assert to_epoch_millis({"a": 1}) is None
        assert to_epoch_millis(None) is None
