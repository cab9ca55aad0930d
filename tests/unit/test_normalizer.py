"""Unit tests for the JSON-LD normalizer: flattening, references, facts, paragraphs."""

from __future__ import annotations

import pytest

from machine_rag.services.ingestion.normalizer import (
    collect_references,
    entity_to_facts,
    flatten_entity,
    group_facts_into_paragraphs,
    normalize_entity,
    pick_value,
)


@pytest.fixture
def cutter_entity() -> dict:
    return {
        "@id": "urn:iff:asset:42",
        "@type": "Cutter",
        "machine_state": {"type": "Property", "value": "Online"},
        "temperature": {
            "type": "Property",
            "value": 21.5,
            "unit": {"type": "Property", "value": "CEL"},
            "segment": {"type": "Property", "value": "spindle"},
        },
        "has_filter": {"type": "Relationship", "object": "urn:iff:filter:7"},
        "description": {"type": "Property", "value": {"language": "en", "value": "Laser cutter"}},
        "serial": {"type": "Property", "value": "NULL"},
        "documents": [
            {"type": "Property", "value": "https://docs.example.com/manuals/cutter.pdf"},
            {"nested": {"deeper": "https://docs.example.com/spec.PDF?download=1"}},
        ],
        "image": "https://docs.example.com/cutter.png",
    }


class TestPickValue:
    def test_null_sentinel_becomes_none(self) -> None:
        assert pick_value("NULL") is None

    def test_language_map_unwrapped(self) -> None:
        assert pick_value({"language": "de", "value": "Schneider"}) == "Schneider"

    def test_plain_values_unchanged(self) -> None:
        assert pick_value(3) == 3
        assert pick_value({"a": 1}) == {"a": 1}


class TestFlattenEntity:
    def test_property_expanded_into_sibling_keys(self, cutter_entity: dict) -> None:
        flat = flatten_entity(cutter_entity)
        assert flat["temperature"] == 21.5
        assert flat["temperature__unit"] == "CEL"
        assert flat["temperature__segment"] == "spindle"

    def test_relationship_resolves_to_object(self, cutter_entity: dict) -> None:
        assert flatten_entity(cutter_entity)["has_filter"] == "urn:iff:filter:7"

    def test_reserved_keys_normalized(self, cutter_entity: dict) -> None:
        flat = flatten_entity(cutter_entity)
        assert flat["id"] == "urn:iff:asset:42"
        assert flat["type"] == "Cutter"
        assert "@id" not in flat and "@type" not in flat

    def test_null_sentinel_and_language_map(self, cutter_entity: dict) -> None:
        flat = flatten_entity(cutter_entity)
        assert flat["serial"] is None
        assert flat["description"] == "Laser cutter"

    def test_arrays_flattened_element_wise(self, cutter_entity: dict) -> None:
        documents = flatten_entity(cutter_entity)["documents"]
        assert documents[0] == "https://docs.example.com/manuals/cutter.pdf"
        assert documents[1] == {"nested": {"deeper": "https://docs.example.com/spec.PDF?download=1"}}


class TestCollectReferences:
    def test_finds_pdf_references_at_any_depth(self, cutter_entity: dict) -> None:
        assert collect_references(cutter_entity) == {
            "https://docs.example.com/manuals/cutter.pdf",
            "https://docs.example.com/spec.PDF?download=1",
        }

    def test_ignores_non_document_urls(self) -> None:
        assert collect_references({"a": "https://x.example.com/pdf-viewer", "b": "file.pdfx"}) == set()


class TestNormalizeEntity:
    def test_normalized_shape(self, cutter_entity: dict) -> None:
        entity = normalize_entity(cutter_entity)
        assert entity.id == "urn:iff:asset:42"
        assert entity.type == "Cutter"
        assert "id" not in entity.properties
        assert entity.properties["machine_state"] == "Online"
        assert len(entity.references) == 2

    def test_rejects_non_objects(self) -> None:
        with pytest.raises(TypeError):
            normalize_entity(["not", "an", "entity"])  # type: ignore[arg-type]


class TestEntityToFacts:
    def test_id_and_type_first_and_nulls_skipped(self, cutter_entity: dict) -> None:
        facts = entity_to_facts(normalize_entity(cutter_entity))
        keys = [f.key for f in facts]
        assert keys[:2] == ["id", "type"]
        assert "serial" not in keys

    def test_nested_paths_are_dotted(self) -> None:
        entity = normalize_entity(
            {"id": "urn:x", "spec": {"axis": {"x": 1, "y": 2}, "limits": [1, 2, 3]}}
        )
        lines = [f.to_line() for f in entity_to_facts(entity)]
        assert "spec.axis: x=1,y=2" in lines
        assert "spec.limits: 1|2|3" in lines

    def test_every_leaf_maps_to_one_fact(self) -> None:
        entity = normalize_entity(
            {"id": "urn:x", "type": "Pump", "on": True, "rate": 3.5, "name": "P1"}
        )
        facts = entity_to_facts(entity)
        assert [f.to_line() for f in facts] == [
            "id: urn:x",
            "type: Pump",
            "on: true",
            "rate: 3.5",
            "name: P1",
        ]


class TestGroupFactsIntoParagraphs:
    def test_heading_lines_stand_alone(self) -> None:
        lines = ["id: urn:x", "type: Pump", "Maintenance: every 500h", "rate: 3"]
        paragraphs = group_facts_into_paragraphs(lines)

        assert [p.lines for p in paragraphs] == [
            ("id: urn:x", "type: Pump"),
            ("Maintenance: every 500h",),
            ("rate: 3",),
        ]
        assert paragraphs[1].heading == "Maintenance"

    def test_paragraphs_partition_lines(self) -> None:
        lines = ["a: 1", "1.: first", "b: 2", "c: 3", "SAFETY: gloves", "d: 4"]
        paragraphs = group_facts_into_paragraphs(lines)
        assert [line for p in paragraphs for line in p.lines] == lines

    def test_empty_input(self) -> None:
        assert group_facts_into_paragraphs([]) == []
