"""Flatten JSON-LD-like machine property graphs into facts and paragraphs.

A source entity looks like::

    {
      "id": "urn:iff:asset:42",
      "type": "Cutter",
      "temperature": {
        "type": "Property",
        "value": 21.5,
        "unit": {"type": "Property", "value": "CEL"}
      },
      "manual": {"type": "Property", "value": "https://host/manual.pdf"}
    }

:func:`normalize_entity` expands ``Property`` wrappers into sibling keys
(``temperature``, ``temperature__unit``), resolves ``Relationship``
wrappers to their target, maps the ``"NULL"`` sentinel to ``None`` and
collects PDF references found anywhere in the graph.
:func:`entity_to_facts` and :func:`group_facts_into_paragraphs` turn the
flattened properties into the text that is chunked and embedded.

All functions here are pure.
"""

from __future__ import annotations

import json
import re

from pydantic import JsonValue

from machine_rag.models.documents import NormalizedEntity, NormalizedFact, Paragraph

_NULL_SENTINEL = "NULL"
_RESERVED_KEYS = frozenset({"id", "@id", "type", "@type"})

# Sub-property name -> suffix of the sibling key it becomes.
_SUB_PROPERTY_SUFFIXES: dict[str, str] = {
    "unit": "unit",
    "segment": "segment",
    "owner_ref": "owner",
    "model": "modeled",
    "translation": "translation",
}

_DOCUMENT_REFERENCE = re.compile(r"\.pdf(\?|#|$)", re.IGNORECASE)
_HEADING_LINE = re.compile(r"^(\d+\.|[A-Z][A-Za-z0-9_\- ]{2,}|[A-Z_]{3,})\s*:")


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------

def _node_type(node: dict[str, JsonValue]) -> JsonValue:
    return node.get("type", node.get("@type"))


def _is_property(node: JsonValue) -> bool:
    return isinstance(node, dict) and _node_type(node) == "Property"


def _is_relationship(node: JsonValue) -> bool:
    return isinstance(node, dict) and _node_type(node) == "Relationship"


def pick_value(value: JsonValue) -> JsonValue:
    """Unwrap a property value: ``"NULL"`` becomes ``None``, language maps their text."""
    if value == _NULL_SENTINEL:
        return None
    if isinstance(value, dict) and "value" in value and "language" in value:
        return value["value"]
    return value


def _unwrap(node: JsonValue) -> JsonValue:
    if _is_property(node):
        return pick_value(node.get("value"))
    if _is_relationship(node):
        return pick_value(node.get("object"))
    return pick_value(node)


def flatten_entity(node: JsonValue) -> JsonValue:
    """Recursively flatten *node*, expanding Property objects into sibling keys."""
    if isinstance(node, list):
        return [flatten_entity(_unwrap(item)) for item in node]
    if not isinstance(node, dict):
        return node

    out: dict[str, JsonValue] = {}
    node_id = node.get("id", node.get("@id"))
    if node_id is not None:
        out["id"] = node_id
    node_type = _node_type(node)
    if node_type is not None:
        out["type"] = node_type

    for key, value in node.items():
        if key in _RESERVED_KEYS:
            continue
        if _is_property(value):
            out[key] = flatten_entity(pick_value(value.get("value")))
            for sub_name, suffix in _SUB_PROPERTY_SUFFIXES.items():
                sub = value.get(sub_name)
                if _is_property(sub):
                    out[f"{key}__{suffix}"] = pick_value(sub.get("value"))
        elif _is_relationship(value):
            out[key] = pick_value(value.get("object"))
        else:
            out[key] = flatten_entity(pick_value(value))
    return out


def collect_references(node: JsonValue, found: set[str] | None = None) -> set[str]:
    """Return every string leaf of *node* that looks like a PDF reference."""
    if found is None:
        found = set()
    if isinstance(node, str):
        if _DOCUMENT_REFERENCE.search(node):
            found.add(node)
    elif isinstance(node, list):
        for item in node:
            collect_references(item, found)
    elif isinstance(node, dict):
        for value in node.values():
            collect_references(value, found)
    return found


def normalize_entity(entity: dict[str, JsonValue]) -> NormalizedEntity:
    """Normalize one source entity into id, type, flattened properties and references."""
    flat = flatten_entity(entity)
    if not isinstance(flat, dict):
        raise TypeError("entity must be a JSON object")
    entity_id = flat.get("id")
    entity_type = flat.get("type")
    return NormalizedEntity(
        id=str(entity_id) if entity_id is not None else None,
        type=str(entity_type) if entity_type is not None else None,
        properties={k: v for k, v in flat.items() if k not in ("id", "type")},
        references=frozenset(collect_references(entity)),
    )


# ---------------------------------------------------------------------------
# Facts and paragraphs
# ---------------------------------------------------------------------------

def _format_primitive(value: JsonValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _format_list_item(value: JsonValue) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return _format_primitive(value)


def _walk_facts(node: dict[str, JsonValue], prefix: str, facts: list[NormalizedFact]) -> None:
    for key, value in node.items():
        path = f"{prefix}.{key}" if prefix else key
        if value is None:
            continue
        if isinstance(value, dict):
            if all(not isinstance(v, (dict, list)) for v in value.values()):
                joined = ",".join(
                    f"{k}={_format_primitive(v)}" for k, v in value.items() if v is not None
                )
                if joined:
                    facts.append(NormalizedFact(key=path, value=joined))
            else:
                _walk_facts(value, path, facts)
        elif isinstance(value, list):
            items = [_format_list_item(v) for v in value if v is not None]
            if items:
                facts.append(NormalizedFact(key=path, value="|".join(items)))
        else:
            facts.append(NormalizedFact(key=path, value=_format_primitive(value)))


def entity_to_facts(entity: NormalizedEntity) -> list[NormalizedFact]:
    """Turn flattened properties into ``key: value`` facts, ``id`` and ``type`` first."""
    facts: list[NormalizedFact] = []
    if entity.id is not None:
        facts.append(NormalizedFact(key="id", value=entity.id))
    if entity.type is not None:
        facts.append(NormalizedFact(key="type", value=entity.type))
    _walk_facts(entity.properties, "", facts)
    return facts


def group_facts_into_paragraphs(lines: list[str]) -> list[Paragraph]:
    """Group lines into paragraphs; heading-like lines stand alone.

    A heading-like line is a numbered key (``1.``) or a key starting with a
    capital letter, e.g. ``Spindle speed: 1200``.  Every line ends up in
    exactly one paragraph and order is preserved.
    """
    paragraphs: list[Paragraph] = []
    buffer: list[str] = []

    def flush() -> None:
        if buffer:
            paragraphs.append(Paragraph(lines=tuple(buffer)))
            buffer.clear()

    for line in lines:
        if _HEADING_LINE.match(line):
            flush()
            paragraphs.append(Paragraph(lines=(line,), heading=line.split(":", 1)[0].strip()))
            continue
        buffer.append(line)
    flush()
    return paragraphs
