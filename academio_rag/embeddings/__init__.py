"""Embedding clients."""

from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.embeddings.factory import create_embeddings
from academio_rag.embeddings.ollama import OllamaEmbeddings

__all__ = ["BaseEmbeddings", "OllamaEmbeddings", "create_embeddings"]
