"""Chunking interface."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Splits document content into pieces sized for embedding.

    Output is deterministic and ordered as in the source text; blank
    input gives an empty list and no chunk is ever blank.
    """

    def chunk(self, text: str) -> list[str]: ...
