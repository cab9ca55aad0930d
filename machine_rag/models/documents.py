"""Source document models for the ingestion pipeline.

Machine descriptions arrive as JSON-LD-like property graphs: an entity with
``id``/``type`` and arbitrarily nested properties, some wrapped in
``{"type": "Property", "value": ...}`` objects.  They are carried as
pydantic's recursive :data:`~pydantic.JsonValue` and flattened explicitly by
:mod:`machine_rag.services.ingestion.normalizer`.

PDF manuals referenced from those graphs are carried as raw bytes and turned
into :class:`PdfText` and :class:`Section` objects.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class SourceDocument(BaseModel):
    """One entity read from a JSON graph file.

    ``name`` is the file name, suffixed with ``@<index>`` when the file
    holds an array of entities, so that parent ids stay unique per entity.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="File name, plus '@<index>' for multi-entity files.")
    path: str = Field(description="Path the document was read from.")
    entity: dict[str, JsonValue] = Field(description="The raw entity property graph.")


class NormalizedEntity(BaseModel):
    """Flattened view of a source entity."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Entity id from 'id' or '@id'.")
    type: str | None = Field(default=None, description="Entity type from 'type' or '@type'.")
    properties: dict[str, JsonValue] = Field(
        default_factory=dict,
        description="Flattened properties with Property objects expanded into sibling keys.",
    )
    references: frozenset[str] = Field(
        default_factory=frozenset,
        description="Embedded document references (PDF URLs) found at any depth.",
    )


class NormalizedFact(BaseModel):
    """A flat ``key: value`` fact derived from a normalized entity."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Dot-separated property path.")
    value: str = Field(description="Primitive value, or a joined/stringified composite.")

    def to_line(self) -> str:
        return f"{self.key}: {self.value}"


class Paragraph(BaseModel):
    """An ordered group of fact lines or PDF lines."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...] = Field(description="Lines in source order.")
    heading: str | None = Field(default=None, description="Heading line, when the group has one.")

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class Section(BaseModel):
    """A heading-delimited span of PDF text."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Section text including its heading line.")
    heading: str | None = Field(default=None, description="Heading label of the section.")


class PdfText(BaseModel):
    """Text extracted from a PDF byte stream."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Concatenated page text.")
    page_count: int = Field(ge=0, description="Number of pages in the document.")
