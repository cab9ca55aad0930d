"""PDF text extraction and heading-based sectioning.

Text is extracted page by page with PyMuPDF (``fitz``).  Lines are then
classified as headings with two heuristics:

* a short title-cased line, optionally numbered (``3.2 Spindle Drive``),
* a mostly upper-case line of at least six characters (``SAFETY NOTES``).

A heading that follows body text opens a new section labelled with it.
Sections below a token floor are merged into the previous section, so a
stray heading never becomes a one-line chunk.
"""

from __future__ import annotations

import re

import fitz  # PyMuPDF
import structlog

from machine_rag.models.documents import PdfText, Section
from machine_rag.utils.errors import SourceParseError

logger = structlog.get_logger(logger_name=__name__)

_TITLE_HEADING = re.compile(r"^(\d+(?:\.\d+)*\.?\s+)?[A-Z][A-Za-z0-9 \-]{2,}$")
_UPPER_HEADING = re.compile(r"^[A-Z0-9 \-]{6,}$")
_MAX_TITLE_HEADING_CHARS = 120
_LINE_SPLIT = re.compile(r"\n+")


def extract_pdf_text(data: bytes, source: str = "<bytes>") -> PdfText:
    """Extract the text of every page of a PDF byte stream.

    Raises
    ------
    SourceParseError
        If PyMuPDF cannot open the stream as a PDF.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise SourceParseError(
            message=f"Cannot open PDF {source}: {exc}", provider_name="pymupdf", source=source
        ) from exc

    pages: list[str] = []
    try:
        page_count = doc.page_count
        for page in doc:
            text = page.get_text("text").replace("\r", "").strip()
            if text:
                pages.append(text)
    finally:
        doc.close()

    return PdfText(text="\n".join(pages).strip(), page_count=page_count)


def is_heading(line: str) -> bool:
    """Return ``True`` if *line* looks like a section heading."""
    if _TITLE_HEADING.match(line) and len(line) < _MAX_TITLE_HEADING_CHARS:
        return True
    return bool(_UPPER_HEADING.match(line))


def _token_count(text: str) -> int:
    return len(text.split())


def sectionize_pdf_text(text: str, min_section_tokens: int = 80) -> list[Section]:
    """Split extracted PDF text into heading-delimited sections.

    Consecutive headings before any body text stay in one section labelled
    with the first of them.  Sections shorter than *min_section_tokens* are
    appended to the section before them.
    """
    lines = [ln.strip() for ln in _LINE_SPLIT.split(text or "")]
    lines = [ln for ln in lines if ln]

    raw: list[tuple[str | None, list[str]]] = []
    has_body = False
    for line in lines:
        if is_heading(line):
            if not raw or has_body:
                raw.append((line, [line]))
                has_body = False
            else:
                raw[-1][1].append(line)
            continue
        if not raw:
            raw.append((None, []))
        raw[-1][1].append(line)
        has_body = True

    merged: list[Section] = []
    for heading, section_lines in raw:
        section_text = "\n".join(section_lines)
        if merged and _token_count(section_text) < min_section_tokens:
            previous = merged[-1]
            merged[-1] = Section(text=f"{previous.text}\n{section_text}", heading=previous.heading)
        else:
            merged.append(Section(text=section_text, heading=heading))

    logger.debug("pdf_sectionized", lines=len(lines), sections=len(merged))
    return merged


def section_for_chunk(sections: list[Section], chunk: str) -> str | None:
    """Return the first section heading whose text appears in *chunk*."""
    normalized_chunk = " ".join(chunk.split())
    for section in sections:
        if not section.heading:
            continue
        if " ".join(section.heading.split()) in normalized_chunk:
            return section.heading
    return None
