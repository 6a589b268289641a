"""Semantic retrieval over curriculum and memory collections."""

from academio_rag.rag.context_builder import ContextBuilder
from academio_rag.rag.retriever import (
    MatchStrength,
    RetrievalEngine,
    RetrievedChunk,
    classify,
    similarity,
)

__all__ = [
    "ContextBuilder",
    "MatchStrength",
    "RetrievalEngine",
    "RetrievedChunk",
    "classify",
    "similarity",
]
