"""Text chunking strategies."""

from docbase.chunkers.sentence_chunker import (
    SentenceChunker,
    TokenBudgetChunker,
    estimate_tokens,
    split_sentences,
)

__all__ = ["SentenceChunker", "TokenBudgetChunker", "estimate_tokens", "split_sentences"]
