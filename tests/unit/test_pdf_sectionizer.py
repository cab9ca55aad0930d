"""Unit tests for PDF text extraction and heading-based sectioning."""

from __future__ import annotations

import pytest

from machine_rag.models.documents import Section
from machine_rag.services.ingestion.pdf_sectionizer import (
    extract_pdf_text,
    is_heading,
    section_for_chunk,
    sectionize_pdf_text,
)
from machine_rag.utils.errors import SourceParseError

_BODY = "The spindle runs at 1200 rpm, check the coolant level before each shift."


class TestIsHeading:
    @pytest.mark.parametrize(
        "line",
        ["Spindle Drive", "3.2 Spindle Drive", "SAFETY NOTES", "MAINTENANCE-PLAN 2024"],
    )
    def test_heading_like_lines(self, line: str) -> None:
        assert is_heading(line)

    @pytest.mark.parametrize(
        "line",
        [_BODY, "lower case start", "12", "Temperature: 21.5 C", "A" + "b" * 130],
    )
    def test_body_lines(self, line: str) -> None:
        assert not is_heading(line)


class TestSectionize:
    def test_headings_open_sections(self) -> None:
        text = "\n".join(["Installation", _BODY, _BODY, "SAFETY NOTES", _BODY, _BODY])
        sections = sectionize_pdf_text(text, min_section_tokens=5)

        assert [s.heading for s in sections] == ["Installation", "SAFETY NOTES"]
        assert sections[1].text.startswith("SAFETY NOTES\n")

    def test_leading_body_has_no_heading(self) -> None:
        sections = sectionize_pdf_text(f"{_BODY}\nOverview\n{_BODY}", min_section_tokens=1)
        assert sections[0].heading is None
        assert sections[1].heading == "Overview"

    def test_consecutive_headings_share_section(self) -> None:
        sections = sectionize_pdf_text(
            f"Chapter One\n1.1 Scope\n{_BODY}", min_section_tokens=1
        )
        assert len(sections) == 1
        assert sections[0].heading == "Chapter One"
        assert "1.1 Scope" in sections[0].text

    def test_small_sections_merged_into_previous(self) -> None:
        text = "\n".join(["Installation", _BODY, _BODY, "Appendix", "See page 4."])
        sections = sectionize_pdf_text(text, min_section_tokens=10)

        assert len(sections) == 1
        assert sections[0].heading == "Installation"
        assert sections[0].text.endswith("Appendix\nSee page 4.")

    def test_empty_text(self) -> None:
        assert sectionize_pdf_text("") == []


class TestSectionForChunk:
    def test_matches_heading_inside_chunk_ignoring_whitespace(self) -> None:
        sections = [Section(text="a", heading="Spindle  Drive"), Section(text="b", heading="Safety")]
        assert section_for_chunk(sections, "intro\n\nSpindle Drive\nbody") == "Spindle  Drive"

    def test_no_match(self) -> None:
        assert section_for_chunk([Section(text="a", heading="Safety")], "nothing here") is None


class TestExtractPdfText:
    def test_extracts_all_pages(self, pdf_factory) -> None:
        pdf = extract_pdf_text(pdf_factory(["First page text", "Second page text"]))

        assert pdf.page_count == 2
        assert "First page text" in pdf.text
        assert "Second page text" in pdf.text

    def test_invalid_bytes_raise_source_parse_error(self) -> None:
        with pytest.raises(SourceParseError):
            extract_pdf_text(b"this is not a pdf", source="broken.pdf")
