"""Academio curriculum retrieval: ingestion, semantic search and student memory."""

__version__ = "0.1.0"

# Domain entities
from academio_rag.domain.chunk import Chunk, ChunkMetadata

# Clients and storage
from academio_rag.embeddings.ollama import OllamaEmbeddings
from academio_rag.storage.vectorstore import PgVectorStore

# Pipeline components
from academio_rag.pipeline.config import Config, load_config
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.indexer import BatchIndexer
from academio_rag.pipeline.ingest import IngestionOrchestrator

# Query side
from academio_rag.rag.retriever import RetrievalEngine
from academio_rag.memory.service import StudentMemory

__all__ = [
    # Domain
    "Chunk",
    "ChunkMetadata",
    # Clients and storage
    "OllamaEmbeddings",
    "PgVectorStore",
    # Pipeline
    "Config",
    "load_config",
    "TextSegmenter",
    "BatchIndexer",
    "IngestionOrchestrator",
    # Query
    "RetrievalEngine",
    "StudentMemory",
]
