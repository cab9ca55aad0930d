"""Token-window chunking with overlap and paragraph-aware truncation.

The token unit is a whitespace-delimited word (pass a ``tokenizer`` to use
something finer).  Paragraphs are separated by blank lines.

Each window takes up to ``max_tokens`` tokens from the cursor.  When the
window does not reach the end of the input and a paragraph break lies
inside it, the window is cut at the last such break, provided at least
``min_tokens`` tokens remain.  The cursor then moves to
``end - overlap_tokens``, so consecutive chunks share exactly
``overlap_tokens`` tokens.
"""

from __future__ import annotations

import bisect
import re
from typing import Callable

import structlog

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

Tokenizer = Callable[[str], list[str]]


def _whitespace_tokenize(text: str) -> list[str]:
    return text.split()


class TokenChunker:
    """Splits text into overlapping token windows.

    Parameters
    ----------
    min_tokens:
        Smallest chunk a paragraph-boundary cut may produce.
    max_tokens:
        Largest chunk size in tokens.
    overlap_tokens:
        Tokens shared by consecutive chunks.
    tokenizer:
        Callable splitting one paragraph into tokens.  Tokens are joined
        back with single spaces.
    """

    def __init__(
        self,
        min_tokens: int = 200,
        max_tokens: int = 400,
        overlap_tokens: int = 80,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0 <= min_tokens <= max_tokens:
            raise ValueError("min_tokens must be between 0 and max_tokens")
        if not 0 <= overlap_tokens < max_tokens:
            raise ValueError("overlap_tokens must be smaller than max_tokens")
        self._min_tokens = min_tokens
        self._max_tokens = max_tokens
        self._overlap_tokens = overlap_tokens
        self._tokenize = tokenizer or _whitespace_tokenize

    def chunk(self, text: str) -> list[str]:
        """Split *text* into chunk strings.  Empty input returns ``[]``."""
        tokens, breaks = self._tokenize_paragraphs(text)
        if not tokens:
            return []

        total = len(tokens)
        chunks: list[str] = []
        start = 0
        while True:
            end = min(start + self._max_tokens, total)
            if end < total:
                cut = self._last_break_within(breaks, start, end)
                if cut is not None and cut - start >= self._min_tokens:
                    end = cut
            chunks.append(self._render(tokens, breaks, start, end))
            if end >= total:
                break
            # Always move forward, even when a short cut is smaller than the overlap.
            start = max(end - self._overlap_tokens, start + 1)

        logger.debug("text_chunked", tokens=total, chunks=len(chunks))
        return chunks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _tokenize_paragraphs(self, text: str) -> tuple[list[str], list[int]]:
        """Return all tokens and the sorted indices where a new paragraph starts."""
        tokens: list[str] = []
        breaks: list[int] = []
        for paragraph in _PARAGRAPH_BREAK.split(text or ""):
            words = self._tokenize(paragraph)
            if not words:
                continue
            if tokens:
                breaks.append(len(tokens))
            tokens.extend(words)
        return tokens, breaks

    @staticmethod
    def _last_break_within(breaks: list[int], start: int, end: int) -> int | None:
        pos = bisect.bisect_left(breaks, end) - 1
        if pos >= 0 and breaks[pos] > start:
            return breaks[pos]
        return None

    @staticmethod
    def _render(tokens: list[str], breaks: list[int], start: int, end: int) -> str:
        lo = bisect.bisect_right(breaks, start)
        hi = bisect.bisect_left(breaks, end)
        cuts = [start, *breaks[lo:hi], end]
        return "\n\n".join(
            " ".join(tokens[a:b]) for a, b in zip(cuts, cuts[1:]) if b > a
        )


def chunk(text: str, min_tokens: int, max_tokens: int, overlap_tokens: int) -> list[str]:
    """Functional shortcut for ``TokenChunker(...).chunk(text)``."""
    return TokenChunker(min_tokens, max_tokens, overlap_tokens).chunk(text)
