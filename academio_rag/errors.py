"""Error types raised by the retrieval subsystem.

Fatal startup errors abort an ingestion run before any work is done.
Recoverable errors (document parsing, store writes) are caught by the
ingestion orchestrator and counted per file.
"""


class RagError(Exception):
    """Base class for all retrieval subsystem errors."""


class CorpusNotFoundError(RagError):
    """The corpus root directory does not exist."""


class NoSourceFilesError(RagError):
    """No group directories or source documents matched the request."""


class DocumentParseError(RagError):
    """Text could not be extracted from a source document."""


class EmbeddingError(RagError):
    """The embedding endpoint failed to produce a vector."""


class EmbeddingServiceUnavailable(EmbeddingError):
    """The embedding endpoint is not reachable."""


class EmbeddingModelNotFound(EmbeddingError):
    """The configured embedding model is not registered on the endpoint."""


class VectorStoreError(RagError):
    """A vector store operation failed."""


class VectorStoreUnavailable(VectorStoreError):
    """The vector store cannot be reached."""


class CollectionNotFoundError(VectorStoreError):
    """The requested collection does not exist."""


class EmptyCollectionError(RagError):
    """The collection exists but holds no indexed chunks."""

    def __init__(self, collection: str):
        super().__init__(
            f'Collection "{collection}" is empty. Run the curriculum ingest to populate it.'
        )
        self.collection = collection
