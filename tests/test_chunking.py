"""
Tests for sentence-based chunking.

Covers: sentence splitting, size bound, overlap, minimum length,
fallbacks for run-on and tiny inputs, token-budget variant.
"""

import pytest

from docbase.chunkers import SentenceChunker, TokenBudgetChunker, estimate_tokens, split_sentences
from docbase.exceptions import ValidationError
from docbase.protocols import ChunkingStrategy
from helpers import sentences


class TestSplitSentences:
    """Test suite for sentence boundary detection."""

    def test_splits_on_terminal_punctuation_followed_by_whitespace(self):
        """Test ., ! and ? followed by whitespace end a sentence."""
        text = "First one. Second one!  Third one?\nFourth"
        assert split_sentences(text) == ["First one.", "Second one!", "Third one?", "Fourth"]

    def test_punctuation_without_whitespace_is_not_a_boundary(self):
        """Test abbreviations and decimals glued to the next character stay whole."""
        assert split_sentences("Version 2.5 is out e.g.now. Next.") == [
            "Version 2.5 is out e.g.now.",
            "Next.",
        ]

    def test_blank_units_are_discarded(self):
        """Test whitespace-only fragments never become sentences."""
        assert split_sentences("  One.   \n\n  Two.  ") == ["One.", "Two."]


class TestSentenceChunker:
    """Test suite for SentenceChunker."""

    def test_satisfies_chunking_protocol(self):
        """Test SentenceChunker is a ChunkingStrategy."""
        assert isinstance(SentenceChunker(), ChunkingStrategy)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_blank_input_yields_no_chunks(self, text):
        """Test empty and whitespace-only input return an empty list."""
        assert SentenceChunker().chunk(text) == []

    @pytest.mark.parametrize(
        "text",
        [
            "a",
            "Hi.",
            "Short. Tiny. Small.",
            sentences(3),
            sentences(40),
            "x" * 5000,
        ],
    )
    def test_non_blank_input_always_yields_chunks(self, text):
        """Test non-blank input never produces an empty result."""
        chunks = SentenceChunker().chunk(text)
        assert chunks
        assert all(c.strip() for c in chunks)

    def test_run_on_text_is_truncated_to_max_length(self):
        """Test text without sentence boundaries becomes one truncated chunk."""
        text = "word " * 500
        assert SentenceChunker(max_length=100).chunk(text) == [text.strip()[:100]]

    def test_run_on_text_that_fits_is_returned_whole(self):
        """Test short unsplittable text is returned trimmed and unchanged."""
        assert SentenceChunker().chunk("  just a phrase without a full stop  ") == [
            "just a phrase without a full stop"
        ]

    def test_chunks_never_exceed_max_length(self):
        """Test every chunk honors max_length, including over-long sentences."""
        text = sentences(20) + " " + ("longword " * 80).strip() + ". " + "z" * 450 + ". " + sentences(5)
        chunker = SentenceChunker(max_length=200, overlap=80, min_chunk_length=0)

        chunks = chunker.chunk(text)

        assert len(chunks) > 1
        assert all(len(c) <= 200 for c in chunks)

    def test_consecutive_chunks_share_trailing_sentences(self):
        """Test each chunk starts with sentences that ended the previous chunk."""
        chunker = SentenceChunker(max_length=200, overlap=80, min_chunk_length=0)

        chunks = chunker.chunk(sentences(30))

        assert len(chunks) > 2
        for previous, following in zip(chunks, chunks[1:]):
            head = split_sentences(following)[0]
            assert previous.endswith(head)
            assert len(head) <= 80

    def test_overlap_never_exceeds_budget(self):
        """Test the shared prefix of consecutive chunks stays within overlap."""
        chunker = SentenceChunker(max_length=300, overlap=150, min_chunk_length=0)

        chunks = chunker.chunk(sentences(30))

        for previous, following in zip(chunks, chunks[1:]):
            prev_units = split_sentences(previous)
            next_units = split_sentences(following)
            shared = max(
                (
                    k
                    for k in range(1, min(len(prev_units), len(next_units)) + 1)
                    if prev_units[-k:] == next_units[:k]
                ),
                default=0,
            )
            assert shared >= 1
            assert len(" ".join(next_units[:shared])) <= 150

    def test_zero_overlap_partitions_sentences(self):
        """Test without overlap the chunks rejoin to exactly the original sentences."""
        text = sentences(25)
        chunks = SentenceChunker(max_length=200, overlap=0, min_chunk_length=0).chunk(text)

        rejoined = [s for chunk in chunks for s in split_sentences(chunk)]
        assert rejoined == split_sentences(text)

    def test_overlap_shrinks_to_fit_triggering_sentence(self):
        """Test overlap is dropped when it would push a chunk past max_length."""
        text = " ".join(["A" * 59 + "."] * 6)
        chunks = SentenceChunker(max_length=100, overlap=90, min_chunk_length=0).chunk(text)

        assert chunks == ["A" * 59 + "."] * 6

    def test_short_trailing_chunk_is_dropped(self):
        """Test a closing chunk under min_chunk_length is discarded."""
        long_a = "Alpha " * 10 + "end."
        long_b = "Bravo " * 10 + "end."
        chunker = SentenceChunker(max_length=66, overlap=0, min_chunk_length=10)

        assert chunker.chunk(f"{long_a} {long_b} Ok.") == [long_a, long_b]

    def test_falls_back_to_truncated_text_when_all_chunks_too_short(self):
        """Test the single fallback chunk when every candidate is under the minimum."""
        text = "One. Two. Three."
        chunker = SentenceChunker(max_length=10, overlap=0, min_chunk_length=100)

        assert chunker.chunk(text) == [text[:10]]

    def test_documented_three_sentence_example(self):
        """Test 20-character chunks over three short sentences give three chunks."""
        chunker = SentenceChunker(max_length=20, overlap=5, min_chunk_length=5)

        assert chunker.chunk("Sentence one. Sentence two. Sentence three.") == [
            "Sentence one.",
            "Sentence two.",
            "Sentence three.",
        ]

    def test_chunking_is_deterministic(self):
        """Test the same input always yields the same chunks."""
        text = sentences(50)
        chunker = SentenceChunker(max_length=300, overlap=100, min_chunk_length=50)

        assert chunker.chunk(text) == chunker.chunk(text)

    def test_chunks_preserve_source_order(self):
        """Test chunk order follows the order of sentences in the text."""
        text = sentences(30)
        chunks = SentenceChunker(max_length=250, overlap=0, min_chunk_length=0).chunk(text)

        positions = [text.index(chunk) for chunk in chunks]
        assert positions == sorted(positions)

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"max_length": 0}, "max_length"),
            ({"overlap": -1}, "overlap"),
            ({"min_chunk_length": -5}, "min_chunk_length"),
        ],
    )
    def test_invalid_options_rejected(self, kwargs, field):
        """Test nonsensical options raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            SentenceChunker(**kwargs)
        assert exc_info.value.field == field


class TestTokenBudgetChunker:
    """Test suite for the token-sized variant."""

    def test_token_budget_converts_to_characters(self):
        """Test 4 characters per token and the lower minimum chunk length."""
        chunker = TokenBudgetChunker(max_tokens=250, overlap_tokens=25)

        assert chunker.max_length == 1000
        assert chunker.overlap == 100
        assert chunker.min_chunk_length == 50

    def test_chunks_fit_token_budget(self):
        """Test produced chunks stay within the estimated token budget."""
        chunker = TokenBudgetChunker(max_tokens=50, overlap_tokens=10)

        chunks = chunker.chunk(sentences(40))

        assert len(chunks) > 1
        assert all(estimate_tokens(c) <= 50 for c in chunks)

    @pytest.mark.parametrize("text, tokens", [("", 0), ("abcd", 1), ("abcde", 2), ("x" * 400, 100)])
    def test_estimate_tokens(self, text, tokens):
        """Test token estimate rounds up at 4 characters per token."""
        assert estimate_tokens(text) == tokens
