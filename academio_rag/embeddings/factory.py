"""Embedding client factory."""

from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.embeddings.ollama import OllamaEmbeddings
from academio_rag.pipeline.config import EmbeddingConfig


def create_embeddings(config: EmbeddingConfig) -> BaseEmbeddings:
    """Create an embedding client from configuration.

    Args:
        config: Embedding configuration (provider, base_url, model, timeout)

    Returns:
        BaseEmbeddings instance configured with the provided settings

    Raises:
        ValueError: If the provider is not supported
    """
    provider = (config.provider or "").lower()

    if not provider:
        raise ValueError("Embedding config must specify 'provider'")

    if provider == "ollama":
        return OllamaEmbeddings(
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout,
        )
    raise ValueError(f"Unsupported embedding provider: {provider}. Supported: ollama")
