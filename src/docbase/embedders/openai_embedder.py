"""OpenAI API embedding provider."""

import numpy as np

from docbase.exceptions import EmbeddingError

# Known output sizes; other models are probed on first use
MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedder:
    """Embedding provider backed by the OpenAI embeddings endpoint.

    Reads OPENAI_API_KEY from the environment unless a key is given.
    Rate limits, timeouts, connection problems and server errors are
    reported as retryable EmbeddingErrors; everything else is permanent.
    """

    DEFAULT_MODEL = "text-embedding-3-small"

    def __init__(
        self,
        model_name: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
    ):
        try:
            import openai
        except ImportError:
            raise ImportError(
                "openai is required for OpenAI embeddings. Install with: pip install 'docbase[openai]'"
            )
        self._openai = openai
        self._model_name = model_name or self.DEFAULT_MODEL
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._dimension: int | None = MODEL_DIMENSIONS.get(self._model_name)

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        if self._dimension is None:
            self._dimension = len(self.embed("dimension probe"))
        return self._dimension

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        return self._model_name

    def embed(self, text: str) -> np.ndarray:
        """Embed one text through the API."""
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text", retryable=False)

        openai = self._openai
        try:
            response = self._client.embeddings.create(
                input=text,
                model=self._model_name,
            )
        except (
            openai.RateLimitError,
            openai.APITimeoutError,
            openai.APIConnectionError,
            openai.InternalServerError,
        ) as e:
            raise EmbeddingError(
                f"Transient embedding failure: {e}",
                retryable=True,
                details={"model": self._model_name},
            ) from e
        except openai.OpenAIError as e:
            raise EmbeddingError(
                f"Embedding request rejected: {e}",
                retryable=False,
                details={"model": self._model_name},
            ) from e

        return np.asarray(response.data[0].embedding, dtype=np.float32)
