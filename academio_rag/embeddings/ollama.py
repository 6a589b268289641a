"""Ollama embedding client using the Ollama HTTP API."""

import httpx
from typing import List, Optional

from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.errors import EmbeddingModelNotFound, EmbeddingServiceUnavailable
from academio_rag.logging_utils import get_logger

logger = get_logger(__name__)


class OllamaEmbeddings(BaseEmbeddings):
    """Embedding client for an Ollama server.

    Each call opens a short-lived ``httpx.Client`` with an explicit timeout.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen3-embedding",
        timeout: float = 60.0,
    ):
        """Initialize Ollama embeddings.

        Args:
            base_url: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
        """
        super().__init__(model=model)
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout

    def embed(self, text: str) -> Optional[List[float]]:
        """Embed a text via ``POST /api/embeddings``.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None on transport error, non-success
            response or empty vector
        """
        url = f"{self.base_url}/api/embeddings"
        data = {"model": self.model, "prompt": text}

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(url, json=data)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Embedding request failed: %s - %s",
                e.response.status_code,
                e.response.text[:200],
            )
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Embedding request failed: %s", e)
            return None

        embedding = result.get("embedding") if isinstance(result, dict) else None
        if not embedding:
            logger.warning("Ollama returned an empty embedding for model %s", self.model)
            return None
        return [float(x) for x in embedding]

    def health_check(self) -> None:
        """Check that Ollama is running and the embedding model is pulled.

        Raises:
            EmbeddingServiceUnavailable: Ollama is not reachable
            EmbeddingModelNotFound: Model missing from ``/api/tags``
        """
        url = f"{self.base_url}/api/tags"
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.get(url)
                response.raise_for_status()
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingServiceUnavailable(
                f"Ollama is not running at {self.base_url} ({e}). Start it with: ollama serve"
            ) from e

        names = [m.get("name", "") for m in result.get("models", []) or []]
        if not any(name.startswith(self.model) for name in names):
            raise EmbeddingModelNotFound(
                f'Embedding model "{self.model}" not found in Ollama. '
                f"Pull it with: ollama pull {self.model}"
            )
        logger.info("Ollama online at %s, model %s available", self.base_url, self.model)
