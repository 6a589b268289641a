"""Domain entities for the curriculum retrieval subsystem.

This module contains immutable data structures shared by the ingestion
pipeline and the query engine.
"""

from academio_rag.domain.chunk import Chunk, ChunkMetadata
from academio_rag.domain.document import ExtractedText, SourceFile

__all__ = ["Chunk", "ChunkMetadata", "ExtractedText", "SourceFile"]
