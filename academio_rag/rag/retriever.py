"""Retrieval orchestration for RAG system."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from academio_rag.domain.chunk import ChunkMetadata
from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.errors import EmptyCollectionError
from academio_rag.logging_utils import get_logger
from academio_rag.storage.base import BaseVectorStore

logger = get_logger(__name__)

CONFIDENT_THRESHOLD = 0.5
PARTIAL_THRESHOLD = 0.3


class MatchStrength(str, Enum):
    """How well the best passage answers a query."""

    CONFIDENT = "confident"
    PARTIAL = "partial"
    WEAK = "weak"


def similarity(distance: float) -> float:
    """Map a squared L2 distance to a similarity in (0, 1]; 0 distance -> 1."""
    return 1.0 / (1.0 + max(distance, 0.0))


def classify(
    score: float,
    confident_threshold: float = CONFIDENT_THRESHOLD,
    partial_threshold: float = PARTIAL_THRESHOLD,
) -> MatchStrength:
    """Classify a similarity score against the policy thresholds."""
    if score >= confident_threshold:
        return MatchStrength.CONFIDENT
    if score >= partial_threshold:
        return MatchStrength.PARTIAL
    return MatchStrength.WEAK


@dataclass(frozen=True, slots=True)
class RetrievedChunk:
    """A retrieved passage with its ranking data.

    Attributes:
        rank: 1-based position in the result list
        chunk_id: Unique chunk identifier
        text: Chunk text
        metadata: Stored metadata as returned by the vector store
        distance: Squared L2 distance (smaller is closer)
        similarity: Bounded similarity derived from the distance
    """

    rank: int
    chunk_id: str
    text: str
    metadata: dict
    distance: float
    similarity: float

    def as_chunk_metadata(self) -> ChunkMetadata:
        return ChunkMetadata.from_dict(self.metadata)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "rank": self.rank,
            "chunk_id": self.chunk_id,
            "text": self.text,
            "metadata": self.metadata,
            "distance": self.distance,
            "similarity": self.similarity,
        }


class RetrievalEngine:
    """Semantic search over a named collection.

    The engine is stateless; the embedding client and store are shared and
    may be used from several threads at once. It never filters by score:
    callers decide what to do with weak matches via ``classify``.
    """

    def __init__(
        self,
        embeddings: BaseEmbeddings,
        store: BaseVectorStore,
        default_collection: str = "curriculum_standards",
    ):
        """Initialize RetrievalEngine.

        Args:
            embeddings: Embedding client for the query text
            store: Vector store holding the collection
            default_collection: Collection searched when none is given
        """
        self._embeddings = embeddings
        self._store = store
        self.default_collection = default_collection

    def retrieve(
        self,
        query: str,
        top_k: int = 5,
        collection: Optional[str] = None,
        where: Optional[dict] = None,
    ) -> List[RetrievedChunk]:
        """Return the ``top_k`` passages closest to ``query``.

        Args:
            query: Free-form question
            top_k: Maximum number of results
            collection: Collection name (default collection when None)
            where: Optional metadata equality filter, e.g. ``{"grade_dir": ...}``

        Returns:
            Passages ordered by non-increasing similarity, ranked from 1

        Raises:
            ValueError: Blank query or top_k below 1
            CollectionNotFoundError: The collection does not exist
            EmptyCollectionError: The collection holds no chunks
            EmbeddingError: The query could not be embedded
        """
        if not query or not query.strip():
            raise ValueError("query must not be empty")
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")

        name = collection or self.default_collection
        target = self._store.get_collection(name)
        if target.count() == 0:
            raise EmptyCollectionError(name)

        vector = self._embeddings.embed_query(query)
        response = target.query(vector, top_k=top_k, where=where)

        rows = sorted(
            zip(response.ids, response.documents, response.metadatas, response.distances),
            key=lambda row: row[3],
        )
        results = [
            RetrievedChunk(
                rank=rank,
                chunk_id=chunk_id,
                text=document or "",
                metadata=metadata or {},
                distance=float(distance),
                similarity=similarity(float(distance)),
            )
            for rank, (chunk_id, document, metadata, distance) in enumerate(rows, start=1)
        ]

        logger.debug(
            'Query "%s" on "%s" returned %d results', query[:50], name, len(results)
        )
        return results
