"""Test doubles and helpers shared across the test suite."""

import hashlib
import re

import numpy as np

from docbase.exceptions import EmbeddingError
from docbase.storage import KnowledgeStore


class HashingEmbedder:
    """Bag-of-words embedder: identical texts embed identically, shared words raise similarity."""

    def __init__(self, dimension: int = 64):
        self._dimension = dimension
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "hashing-test"

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        vector = np.zeros(self._dimension, dtype=np.float32)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector


class MappingEmbedder:
    """Returns preset vectors for known texts and a default for the rest."""

    def __init__(self, vectors: dict[str, list[float]], default: list[float]):
        self.vectors = {k: np.asarray(v, dtype=np.float32) for k, v in vectors.items()}
        self.default = np.asarray(default, dtype=np.float32)
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self.default.size

    @property
    def model_name(self) -> str:
        return "mapping-test"

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return self.vectors.get(text, self.default)


class FailingEmbedder(HashingEmbedder):
    """Fails for every text containing a marker (every text when marker is empty)."""

    def __init__(self, marker: str = "", retryable: bool = True):
        super().__init__()
        self.marker = marker
        self.retryable = retryable

    def embed(self, text: str) -> np.ndarray:
        if self.marker in text:
            raise EmbeddingError("embedding service unavailable", retryable=self.retryable)
        return super().embed(text)


def count_rows(store: KnowledgeStore, table: str) -> int:
    """Row count of a table, for orphan checks."""
    with store.connection() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def sentences(count: int, words: int = 8) -> str:
    """Deterministic prose of `count` sentences, each distinct."""
    return " ".join(
        " ".join(f"word{i}x{j}" for j in range(words)).capitalize() + "."
        for i in range(count)
    )
