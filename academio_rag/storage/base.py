"""Vector store gateway interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class QueryResponse:
    """Parallel arrays returned by a similarity query, closest first."""

    ids: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    metadatas: List[dict] = field(default_factory=list)
    distances: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class GetResponse:
    """Metadata-only listing of collection entries.

    ``has_embedding`` tells whether each entry carries a vector; entries
    without one are listed here but never returned by ``query``.
    """

    ids: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    metadatas: List[dict] = field(default_factory=list)
    has_embedding: List[bool] = field(default_factory=list)


class BaseCollection(ABC):
    """A named, independent vector index."""

    def __init__(self, name: str, metadata: Optional[dict] = None):
        self.name = name
        self.metadata = metadata or {}

    @abstractmethod
    def upsert(
        self,
        ids: List[str],
        embeddings: List[Optional[List[float]]],
        documents: List[str],
        metadatas: List[dict],
    ) -> None:
        """Insert or replace entries by ID.

        ``embeddings`` is aligned with ``ids``; a None entry stores the
        document and metadata without a vector.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of entries in the collection."""

    @abstractmethod
    def get(self, ids: Optional[List[str]] = None) -> GetResponse:
        """List entries (all of them when ``ids`` is None)."""

    @abstractmethod
    def query(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        where: Optional[dict] = None,
    ) -> QueryResponse:
        """Return the ``top_k`` entries closest to ``query_embedding``.

        Args:
            query_embedding: Query vector
            top_k: Maximum number of results
            where: Optional metadata equality filter
        """


class BaseVectorStore(ABC):
    """Abstract vector store holding named collections."""

    @abstractmethod
    def ping(self) -> None:
        """Raise VectorStoreUnavailable if the store cannot be reached."""

    @abstractmethod
    def get_or_create_collection(
        self, name: str, metadata: Optional[dict] = None
    ) -> BaseCollection:
        """Return the named collection, creating it when missing."""

    @abstractmethod
    def get_collection(self, name: str) -> BaseCollection:
        """Return an existing collection or raise CollectionNotFoundError."""

    @abstractmethod
    def delete_collection(self, name: str) -> bool:
        """Delete a collection; return False when it did not exist."""

    @abstractmethod
    def list_collections(self) -> List[str]:
        """Names of all collections."""

    def has_collection(self, name: str) -> bool:
        return name in self.list_collections()

    def close(self) -> None:
        """Release connections held by the store."""
