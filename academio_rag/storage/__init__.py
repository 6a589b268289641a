"""Vector store adapters."""

from academio_rag.storage.base import (
    BaseCollection,
    BaseVectorStore,
    GetResponse,
    QueryResponse,
)
from academio_rag.storage.vectorstore import PgCollection, PgVectorStore

__all__ = [
    "BaseCollection",
    "BaseVectorStore",
    "GetResponse",
    "QueryResponse",
    "PgCollection",
    "PgVectorStore",
]
