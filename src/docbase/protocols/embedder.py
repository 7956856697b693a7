"""Embedding provider interface."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Maps one text to a fixed-length vector.

    Ingest and search must share a provider: vectors from different
    models are not comparable. ``embed`` may be called from several
    threads at once.
    """

    @property
    def dimension(self) -> int:
        """Length of every vector this provider returns."""
        ...

    @property
    def model_name(self) -> str:
        """Model identifier, recorded with the stored embeddings."""
        ...

    def embed(self, text: str) -> np.ndarray:
        """Return a 1-D float32 vector for ``text``.

        Raises:
            EmbeddingError: with ``retryable`` set for transient failures
        """
        ...
