"""Local embedding provider backed by sentence-transformers."""

import threading

import numpy as np
from sentence_transformers import SentenceTransformer

from docbase.exceptions import EmbeddingError


class SentenceTransformerEmbedder:
    """Embeds text in-process with a sentence-transformers model.

    The model is loaded on first use, once, even when several ingest
    workers ask for it at the same time. Vectors are L2-normalized, so
    cosine similarity reduces to a dot product.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None):
        """
        Args:
            model_name: sentence-transformers model id; all-MiniLM-L6-v2 when omitted
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._model: SentenceTransformer | None = None
        self._load_lock = threading.Lock()

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            with self._load_lock:
                if self._model is None:
                    try:
                        self._model = SentenceTransformer(self._model_name)
                    except OSError as e:
                        raise EmbeddingError(
                            f"Cannot load embedding model {self._model_name!r}: {e}",
                            retryable=False,
                            details={"model": self._model_name},
                        ) from e
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, text: str) -> np.ndarray:
        """Embed one text.

        Returns:
            float32 array of shape (dimension,)

        Raises:
            EmbeddingError: blank text, or the model failed
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text", retryable=False)

        try:
            embedding = self.model.encode(
                text,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except (RuntimeError, ValueError) as e:
            raise EmbeddingError(
                f"Local embedding failed: {e}",
                retryable=False,
                details={"model": self._model_name},
            ) from e
        return np.asarray(embedding, dtype=np.float32)
