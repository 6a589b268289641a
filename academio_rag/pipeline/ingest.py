"""Ingestion orchestration - discovery, extraction, segmentation and indexing."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional
import time

from academio_rag.domain.document import SourceFile
from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.errors import DocumentParseError, VectorStoreError
from academio_rag.logging_utils import get_logger
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.corpus import build_chunks, discover_sources, parse_filename
from academio_rag.pipeline.extract import TextExtractor
from academio_rag.pipeline.index_signature import (
    SIGNATURE_KEY,
    compute_signature,
    signature_mismatch,
)
from academio_rag.pipeline.indexer import BatchIndexer, ProgressCallback
from academio_rag.storage.base import BaseCollection, BaseVectorStore

logger = get_logger(__name__)

DEFAULT_COLLECTION = "curriculum_standards"

INDEXED = "indexed"
PLANNED = "planned"
SKIPPED = "skipped"
FAILED = "failed"

FileCallback = Callable[[int, int, SourceFile], None]
FileDoneCallback = Callable[["FileReport"], None]


@dataclass
class FileReport:
    """Outcome of one source file."""

    source: SourceFile
    status: str
    chunks: int = 0
    embedded: int = 0
    failed: int = 0
    pages: int = 0
    reason: Optional[str] = None


@dataclass
class IngestReport:
    """Run totals and per-file outcomes."""

    collection: str
    dry_run: bool = False
    files: List[FileReport] = field(default_factory=list)
    elapsed: float = 0.0
    signature_mismatch: bool = False

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def skipped_files(self) -> int:
        return sum(1 for f in self.files if f.status == SKIPPED)

    @property
    def failed_files(self) -> int:
        return sum(1 for f in self.files if f.status == FAILED)

    @property
    def total_chunks(self) -> int:
        return sum(f.chunks for f in self.files)

    @property
    def total_embedded(self) -> int:
        return sum(f.embedded for f in self.files)

    @property
    def total_failed(self) -> int:
        return sum(f.failed for f in self.files)

    @property
    def succeeded(self) -> bool:
        """True when every file was processed and every chunk embedded."""
        return (
            self.skipped_files == 0
            and self.failed_files == 0
            and self.total_failed == 0
        )

    @property
    def has_warnings(self) -> bool:
        return not self.succeeded


class IngestionOrchestrator:
    """Main ingestion orchestrator.

    Walks ``<corpus_root>/<group>/<file>.pdf``, turns every file into chunks and
    hands them to the batch indexer. Precondition failures raise before any
    file is touched; per-file failures are recorded in the report and the run
    continues with the next file.
    """

    def __init__(
        self,
        corpus_root: str | Path,
        extractor: TextExtractor,
        segmenter: TextSegmenter,
        embeddings: Optional[BaseEmbeddings] = None,
        store: Optional[BaseVectorStore] = None,
        indexer: Optional[BatchIndexer] = None,
        collection_name: str = DEFAULT_COLLECTION,
    ):
        """Initialize ingestion orchestrator.

        Args:
            corpus_root: Directory holding one sub-directory per group
            extractor: Document text extractor
            segmenter: Text segmenter
            embeddings: Embedding client (required unless dry-running)
            store: Vector store (required unless dry-running)
            indexer: Batch indexer (default: one built over ``embeddings``)
            collection_name: Target collection
        """
        self.corpus_root = Path(corpus_root)
        self._extractor = extractor
        self._segmenter = segmenter
        self._embeddings = embeddings
        self._store = store
        self._indexer = indexer
        self.collection_name = collection_name

    @property
    def signature(self) -> Optional[str]:
        if self._embeddings is None:
            return None
        return compute_signature(
            self._embeddings.model,
            self._segmenter.chunk_size,
            self._segmenter.chunk_overlap,
        )

    def run(
        self,
        group_filter: Optional[str] = None,
        clear: bool = False,
        dry_run: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        on_file: Optional[FileCallback] = None,
        on_file_done: Optional[FileDoneCallback] = None,
    ) -> IngestReport:
        """Ingest every matching source file.

        Args:
            group_filter: Only ingest groups whose name starts with this prefix
            clear: Delete the collection before the first file
            dry_run: Extract and segment only; no embedding or store calls
            on_progress: Batch indexer progress callback
            on_file: Called as ``on_file(index, total, source)`` before each file
            on_file_done: Called with each file's report once it is processed

        Returns:
            Ingestion report

        Raises:
            CorpusNotFoundError: Corpus root is missing
            NoSourceFilesError: No matching group or no source documents
            EmbeddingServiceUnavailable: Embedding service is down
            EmbeddingModelNotFound: Embedding model is not installed
            VectorStoreUnavailable: Vector store cannot be reached
        """
        started = time.monotonic()
        sources = discover_sources(self.corpus_root, group_filter)
        logger.info("Found %d source files under %s", len(sources), self.corpus_root)

        report = IngestReport(collection=self.collection_name, dry_run=dry_run)
        collection = None if dry_run else self._prepare(clear, report)

        for index, source in enumerate(sources, start=1):
            if on_file:
                on_file(index, len(sources), source)
            file_report = self._ingest_file(source, collection, on_progress)
            report.files.append(file_report)
            if on_file_done:
                on_file_done(file_report)

        report.elapsed = time.monotonic() - started
        logger.info(
            "Ingestion finished: %d files, %d chunks, %d embedded, %d failed in %.1fs",
            report.total_files,
            report.total_chunks,
            report.total_embedded,
            report.total_failed,
            report.elapsed,
        )
        return report

    def _prepare(self, clear: bool, report: IngestReport) -> BaseCollection:
        """Check services and open the target collection."""
        if self._embeddings is None or self._store is None:
            raise ValueError("embeddings and store are required unless dry_run is set")

        self._embeddings.health_check()
        self._store.ping()

        if clear:
            if self._store.delete_collection(self.collection_name):
                logger.info('Cleared collection "%s"', self.collection_name)

        signature = self.signature
        collection = self._store.get_or_create_collection(
            self.collection_name,
            metadata={
                "description": "NEM 2023 curriculum textbook chunks",
                "embedding_model": self._embeddings.model,
                SIGNATURE_KEY: signature,
            },
        )
        if signature_mismatch(collection.metadata, signature):
            report.signature_mismatch = True
            logger.warning(
                'Collection "%s" was built with different embedding or chunking '
                "settings; re-run with --clear to drop stale chunks",
                self.collection_name,
            )

        if self._indexer is None:
            self._indexer = BatchIndexer(self._embeddings)
        return collection

    def _ingest_file(
        self,
        source: SourceFile,
        collection: Optional[BaseCollection],
        on_progress: Optional[ProgressCallback],
    ) -> FileReport:
        parsed = parse_filename(source.filename)
        if parsed is None:
            logger.warning("Skipping %s: unrecognised filename", source.display_name)
            return FileReport(source, SKIPPED, reason="unrecognised filename")

        try:
            extracted = self._extractor.extract(source.path)
        except DocumentParseError as e:
            logger.error("Skipping %s: %s", source.display_name, e)
            return FileReport(source, SKIPPED, reason=str(e))

        chunks = build_chunks(source, parsed, extracted, self._segmenter)
        if not chunks:
            logger.warning("Skipping %s: no text extracted", source.display_name)
            return FileReport(
                source, SKIPPED, pages=extracted.page_count, reason="no text extracted"
            )

        logger.info(
            "%s: %d pages, %d chunks",
            source.display_name,
            extracted.page_count,
            len(chunks),
        )
        if collection is None:
            return FileReport(
                source, PLANNED, chunks=len(chunks), pages=extracted.page_count
            )

        try:
            stats = self._indexer.index(collection, chunks, on_progress)
        except VectorStoreError as e:
            logger.error("Indexing %s failed: %s", source.display_name, e)
            return FileReport(
                source,
                FAILED,
                chunks=len(chunks),
                pages=extracted.page_count,
                reason=str(e),
            )

        return FileReport(
            source,
            INDEXED,
            chunks=stats.total,
            embedded=stats.embedded,
            failed=stats.failed,
            pages=extracted.page_count,
        )
