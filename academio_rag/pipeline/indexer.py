"""Batched embedding and upsert of chunks into a collection."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional
import time

from academio_rag.domain.chunk import Chunk
from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.logging_utils import get_logger
from academio_rag.storage.base import BaseCollection

logger = get_logger(__name__)

BATCH_START = "batch_start"
CHUNK_DONE = "chunk"
BATCH_END = "batch_end"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress notification emitted while indexing.

    Attributes:
        kind: One of "batch_start", "chunk", "batch_end"
        batch_number: 1-based batch number
        total_batches: Number of batches in this run
        batch_size: Chunks in the current batch
        chunk_id: Chunk the event refers to ("chunk" events only)
        embedded: Whether the chunk was embedded ("chunk" events only)
        ms_per_chunk: Mean embedding time ("batch_end" events only)
    """

    kind: str
    batch_number: int
    total_batches: int
    batch_size: int = 0
    chunk_id: Optional[str] = None
    embedded: Optional[bool] = None
    ms_per_chunk: Optional[int] = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class BatchResult:
    """Outcome of one embedded and upserted batch."""

    batch_number: int
    total_batches: int
    size: int
    embedded: int
    failed: int
    elapsed: float


@dataclass
class IndexStats:
    """Aggregate counters for an indexing run."""

    total: int = 0
    embedded: int = 0
    failed: int = 0
    batches: List[BatchResult] = field(default_factory=list)

    def add(self, result: BatchResult) -> None:
        self.total += result.size
        self.embedded += result.embedded
        self.failed += result.failed
        self.batches.append(result)


class BatchIndexer:
    """Embeds chunks one by one and upserts them batch by batch.

    An embedding failure is counted and never aborts the batch. With
    ``allow_unembedded_fallback`` the failed chunk is still upserted without a
    vector, so it stays visible to metadata listing but not to similarity
    search; without it the chunk is left out of the upsert. Errors raised by
    the collection's ``upsert`` propagate to the caller.
    """

    def __init__(
        self,
        embeddings: BaseEmbeddings,
        batch_size: int = 50,
        allow_unembedded_fallback: bool = True,
        max_workers: int = 1,
    ):
        """Initialize batch indexer.

        Args:
            embeddings: Embedding client
            batch_size: Chunks per upsert
            allow_unembedded_fallback: Upsert chunks whose embedding failed
                without a vector
            max_workers: Concurrent embedding calls within a batch
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._embeddings = embeddings
        self.batch_size = batch_size
        self.allow_unembedded_fallback = allow_unembedded_fallback
        self.max_workers = max_workers

    def batches(self, chunks: Iterable[Chunk]) -> List[List[Chunk]]:
        """Partition chunks into consecutive fixed-size batches."""
        items = list(chunks)
        return [
            items[i:i + self.batch_size]
            for i in range(0, len(items), self.batch_size)
        ]

    def index(
        self,
        collection: BaseCollection,
        chunks: Iterable[Chunk],
        on_progress: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        """Embed and upsert all chunks.

        Args:
            collection: Target collection
            chunks: Chunks to index, in order
            on_progress: Optional progress callback

        Returns:
            Aggregate and per-batch statistics
        """
        batches = self.batches(chunks)
        stats = IndexStats()

        executor = (
            ThreadPoolExecutor(max_workers=self.max_workers)
            if self.max_workers > 1
            else None
        )
        try:
            for number, batch in enumerate(batches, start=1):
                result = self._index_batch(
                    collection, batch, number, len(batches), on_progress, executor
                )
                stats.add(result)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        return stats

    def _index_batch(
        self,
        collection: BaseCollection,
        batch: List[Chunk],
        batch_number: int,
        total_batches: int,
        on_progress: Optional[ProgressCallback],
        executor: Optional[ThreadPoolExecutor],
    ) -> BatchResult:
        emit = on_progress or (lambda _event: None)
        emit(ProgressEvent(BATCH_START, batch_number, total_batches, len(batch)))

        started = time.monotonic()
        ids: List[str] = []
        vectors: List[Optional[List[float]]] = []
        documents: List[str] = []
        metadatas: List[dict] = []
        embedded = 0
        failed = 0

        for chunk, vector in zip(batch, self._embed_all(batch, executor)):
            ok = vector is not None
            if ok:
                embedded += 1
            else:
                failed += 1
                logger.debug("Embedding failed for chunk %s", chunk.chunk_id)
            emit(
                ProgressEvent(
                    CHUNK_DONE,
                    batch_number,
                    total_batches,
                    len(batch),
                    chunk_id=chunk.chunk_id,
                    embedded=ok,
                )
            )

            if not ok and not self.allow_unembedded_fallback:
                continue
            ids.append(chunk.chunk_id)
            vectors.append(vector)
            documents.append(chunk.text)
            metadatas.append(chunk.metadata.to_dict())

        embed_elapsed = time.monotonic() - started
        ms_per_chunk = round(embed_elapsed * 1000 / len(batch)) if batch else 0

        # Upsert replaces entries by ID.
        if ids:
            collection.upsert(
                ids=ids,
                embeddings=vectors,
                documents=documents,
                metadatas=metadatas,
            )

        emit(
            ProgressEvent(
                BATCH_END,
                batch_number,
                total_batches,
                len(batch),
                ms_per_chunk=ms_per_chunk,
            )
        )
        return BatchResult(
            batch_number=batch_number,
            total_batches=total_batches,
            size=len(batch),
            embedded=embedded,
            failed=failed,
            elapsed=time.monotonic() - started,
        )

    def _embed_all(
        self,
        batch: List[Chunk],
        executor: Optional[ThreadPoolExecutor],
    ) -> Iterator[Optional[List[float]]]:
        """Yield one embedding attempt per chunk, in chunk order."""
        texts = [chunk.text for chunk in batch]
        if executor is None:
            for text in texts:
                yield self._embeddings.embed(text)
        else:
            yield from executor.map(self._embeddings.embed, texts)
