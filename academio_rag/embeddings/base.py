"""Base embedding client interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from academio_rag.errors import EmbeddingError


class BaseEmbeddings(ABC):
    """Abstract base class for embedding clients.

    ``embed`` never raises for model or transport failures: it returns None so
    the caller decides whether the failure is tolerable. ``embed_query`` is the
    strict variant used on the query path.
    """

    def __init__(self, model: str):
        """Initialize embedding client.

        Args:
            model: Embedding model identifier (e.g. "qwen3-embedding")
        """
        self.model = model

    @abstractmethod
    def embed(self, text: str) -> Optional[List[float]]:
        """Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if the endpoint failed
        """

    @abstractmethod
    def health_check(self) -> None:
        """Verify the endpoint is reachable and the model is registered.

        Raises:
            EmbeddingServiceUnavailable: Endpoint cannot be reached
            EmbeddingModelNotFound: Model is not registered on the endpoint
        """

    def embed_query(self, text: str) -> List[float]:
        """Embed a query text, raising on failure.

        Raises:
            EmbeddingError: If no vector could be produced
        """
        vector = self.embed(text)
        if not vector:
            raise EmbeddingError(f"Embedding model '{self.model}' returned no vector for the query")
        return vector
