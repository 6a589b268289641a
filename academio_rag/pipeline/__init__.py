"""Curriculum ingestion pipeline components."""

from academio_rag.pipeline.config import ChunkingConfig, Config, load_config
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.extract import PdfTextExtractor, TextExtractor
from academio_rag.pipeline.indexer import BatchIndexer, IndexStats, ProgressEvent
from academio_rag.pipeline.ingest import FileReport, IngestionOrchestrator, IngestReport

__all__ = [
    # Configuration
    "ChunkingConfig",
    "Config",
    "load_config",
    # Pipeline components
    "TextSegmenter",
    "TextExtractor",
    "PdfTextExtractor",
    "BatchIndexer",
    "IndexStats",
    "ProgressEvent",
    "IngestionOrchestrator",
    "IngestReport",
    "FileReport",
]
