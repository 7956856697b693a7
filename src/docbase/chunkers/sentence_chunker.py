"""Sentence-based chunking strategy."""

import math
import re

from docbase.exceptions import ValidationError

# Boundary after sentence-ending punctuation followed by whitespace
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

CHARS_PER_TOKEN = 4


def split_sentences(text: str) -> list[str]:
    """Split text into trimmed, non-empty sentence-like units."""
    return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]


def estimate_tokens(text: str) -> int:
    """Rough token count, assuming ~4 characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class SentenceChunker:
    """Default chunking: greedy sentence packing with sentence-level overlap.

    - Accumulates whole sentences until the next one would exceed max_length
    - Seeds each new chunk with trailing sentences of the previous one,
      up to `overlap` characters
    - Drops chunks shorter than min_chunk_length, but never returns an
      empty list for non-blank input
    """

    MAX_LENGTH = 1000
    OVERLAP = 100
    MIN_CHUNK_LENGTH = 100

    def __init__(
        self,
        max_length: int | None = None,
        overlap: int | None = None,
        min_chunk_length: int | None = None,
    ):
        self.max_length = self.MAX_LENGTH if max_length is None else max_length
        self.overlap = self.OVERLAP if overlap is None else overlap
        self.min_chunk_length = (
            self.MIN_CHUNK_LENGTH if min_chunk_length is None else min_chunk_length
        )

        if self.max_length <= 0:
            raise ValidationError("max_length must be positive", field="max_length")
        if self.overlap < 0:
            raise ValidationError("overlap must not be negative", field="overlap")
        if self.min_chunk_length < 0:
            raise ValidationError(
                "min_chunk_length must not be negative", field="min_chunk_length"
            )

    def chunk(self, text: str) -> list[str]:
        """Split text into overlapping, sentence-bounded chunks.

        Args:
            text: The text content to chunk

        Returns:
            Ordered list of non-empty chunk strings
        """
        if not text or not text.strip():
            return []

        sentences = split_sentences(text)

        # Run-on text without sentence boundaries
        if len(sentences) <= 1:
            return [text.strip()[: self.max_length]]

        units: list[str] = []
        for sentence in sentences:
            units.extend(self._split_long(sentence))

        chunks: list[str] = []
        current: list[str] = []
        current_length = 0

        for unit in units:
            if current and current_length + 1 + len(unit) > self.max_length:
                closed = " ".join(current)
                if len(closed) >= self.min_chunk_length:
                    chunks.append(closed)

                if self.overlap > 0 and chunks:
                    budget = min(self.overlap, self.max_length - len(unit) - 1)
                    current = self._overlap_tail(current, budget) + [unit]
                else:
                    current = [unit]
                current_length = len(" ".join(current))
            else:
                current_length += len(unit) + (1 if current else 0)
                current.append(unit)

        if current:
            closed = " ".join(current)
            if len(closed) >= self.min_chunk_length:
                chunks.append(closed)

        # Everything fell under min_chunk_length
        if not chunks:
            return [text.strip()[: self.max_length]]

        return chunks

    def _split_long(self, sentence: str) -> list[str]:
        """Break a sentence longer than max_length at whitespace."""
        pieces = []
        rest = sentence
        while len(rest) > self.max_length:
            cut = rest.rfind(" ", 0, self.max_length + 1)
            if cut <= 0:
                cut = self.max_length
            piece = rest[:cut].strip()
            if piece:
                pieces.append(piece)
            rest = rest[cut:].strip()
        if rest:
            pieces.append(rest)
        return pieces

    @staticmethod
    def _overlap_tail(units: list[str], budget: int) -> list[str]:
        """Trailing units whose joined length fits within budget."""
        tail: list[str] = []
        length = 0
        for unit in reversed(units):
            added = len(unit) + (1 if tail else 0)
            if length + added > budget:
                break
            tail.insert(0, unit)
            length += added
        return tail


class TokenBudgetChunker(SentenceChunker):
    """SentenceChunker sized in tokens instead of characters."""

    MIN_CHUNK_LENGTH = 50

    def __init__(self, max_tokens: int = 250, overlap_tokens: int = 25):
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens
        super().__init__(
            max_length=max_tokens * CHARS_PER_TOKEN,
            overlap=overlap_tokens * CHARS_PER_TOKEN,
        )
