"""Per-student interaction memory backed by one collection per student."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional
import json
import uuid

from academio_rag.embeddings.base import BaseEmbeddings
from academio_rag.errors import (
    CollectionNotFoundError,
    EmbeddingError,
    EmptyCollectionError,
    VectorStoreError,
)
from academio_rag.logging_utils import get_logger
from academio_rag.rag.retriever import RetrievalEngine
from academio_rag.storage.base import BaseVectorStore

logger = get_logger(__name__)

COLLECTION_PREFIX = "student_memory_"


@dataclass(frozen=True, slots=True)
class RetrievedMemory:
    """A past interaction relevant to the current question."""

    id: str
    question: str
    answer: str
    similarity: float
    timestamp: str
    lesson_title: Optional[str] = None
    subject: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MemoryStats:
    total: int
    oldest: Optional[str] = None
    newest: Optional[str] = None


@dataclass
class SyncReport:
    """Memory collections compared with the students known to the database.

    Attributes:
        in_sync: True when both sides agree
        orphaned: Students with a memory collection but no profile
        missing: Students with a profile but no memory collection
    """

    in_sync: bool
    orphaned: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


def memory_collection_name(student_id: str) -> str:
    return COLLECTION_PREFIX + student_id.replace("-", "_")


def student_id_from_collection(name: str) -> str:
    return name[len(COLLECTION_PREFIX):].replace("_", "-")


class StudentMemory:
    """Stores tutoring Q&A pairs and recalls the relevant ones.

    Attributes:
        limit: Default number of memories recalled
        min_similarity: Memories below this score are not recalled
        answer_excerpt_chars: Answer characters included in the searchable text
    """

    def __init__(
        self,
        embeddings: BaseEmbeddings,
        store: BaseVectorStore,
        engine: Optional[RetrievalEngine] = None,
        limit: int = 3,
        min_similarity: float = 0.3,
        answer_excerpt_chars: int = 500,
    ):
        self._embeddings = embeddings
        self._store = store
        self._engine = engine or RetrievalEngine(embeddings, store)
        self.limit = limit
        self.min_similarity = min_similarity
        self.answer_excerpt_chars = answer_excerpt_chars

    def collection_name(self, student_id: str) -> str:
        return memory_collection_name(student_id)

    def initialize_student(self, student_id: str) -> None:
        """Create the student's collection if it does not exist yet."""
        self._store.get_or_create_collection(
            memory_collection_name(student_id),
            metadata={
                "studentId": student_id,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            },
        )
        logger.info("Initialized memory for student %s", student_id)

    def delete_student(self, student_id: str) -> bool:
        """Delete the student's collection; a missing one counts as deleted."""
        if not self._store.delete_collection(memory_collection_name(student_id)):
            logger.info("No memory collection for student %s", student_id)
        return True

    def reset_student(self, student_id: str) -> None:
        self.delete_student(student_id)
        self.initialize_student(student_id)

    def reset_all(self) -> int:
        """Delete every student memory collection.

        Returns:
            Number of collections deleted
        """
        deleted = 0
        for name in self._store.list_collections():
            if name.startswith(COLLECTION_PREFIX) and self._store.delete_collection(name):
                deleted += 1
        logger.info("Reset all memory - deleted %d collections", deleted)
        return deleted

    def store_interaction(
        self,
        student_id: str,
        question: str,
        answer: str,
        lesson_id: Optional[str] = None,
        lesson_title: Optional[str] = None,
        subject: Optional[str] = None,
        concepts: Optional[List[str]] = None,
    ) -> str:
        """Store a Q&A interaction in the student's memory.

        If the embedding fails the interaction is still stored, without a
        vector, so it is listed but never recalled.

        Returns:
            ID of the stored interaction
        """
        name = memory_collection_name(student_id)
        collection = self._store.get_or_create_collection(
            name,
            metadata={
                "studentId": student_id,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            },
        )

        searchable_text = f"{question}\n{answer[:self.answer_excerpt_chars]}"
        vector = self._embeddings.embed(searchable_text)
        if vector is None:
            logger.warning("Failed to embed interaction, storing without vector")

        memory_id = str(uuid.uuid4())
        collection.upsert(
            ids=[memory_id],
            embeddings=[vector],
            documents=[searchable_text],
            metadatas=[{
                "studentId": student_id,
                "question": question,
                "answer": answer,
                "lessonId": lesson_id or "",
                "lessonTitle": lesson_title or "",
                "subject": subject or "",
                "concepts": json.dumps(concepts or [], ensure_ascii=False),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }],
        )
        logger.info("Stored interaction for student %s: %s", student_id, question[:50])
        return memory_id

    def retrieve_relevant(
        self,
        student_id: str,
        query: str,
        limit: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[RetrievedMemory]:
        """Recall past interactions similar to ``query``, best first.

        Any store or embedding failure, like missing memory, yields ``[]``.
        """
        threshold = self.min_similarity if min_similarity is None else min_similarity
        try:
            results = self._engine.retrieve(
                query,
                top_k=limit or self.limit,
                collection=memory_collection_name(student_id),
            )
        except (CollectionNotFoundError, EmptyCollectionError):
            return []
        except VectorStoreError as e:
            logger.warning("Failed to query memory for student %s: %s", student_id, e)
            return []
        except EmbeddingError as e:
            logger.warning("Failed to embed memory query: %s", e)
            return []

        memories = [
            RetrievedMemory(
                id=r.chunk_id,
                question=str(r.metadata.get("question", "")),
                answer=str(r.metadata.get("answer", "")),
                similarity=r.similarity,
                timestamp=str(r.metadata.get("timestamp", "")),
                lesson_title=r.metadata.get("lessonTitle") or None,
                subject=r.metadata.get("subject") or None,
            )
            for r in results
            if r.similarity >= threshold
        ]
        logger.debug("Retrieved %d memories for student %s", len(memories), student_id)
        return memories

    def memory_ids(self, student_id: str) -> List[str]:
        try:
            collection = self._store.get_collection(memory_collection_name(student_id))
        except CollectionNotFoundError:
            return []
        return collection.get().ids

    def stats(self, student_id: str) -> MemoryStats:
        try:
            collection = self._store.get_collection(memory_collection_name(student_id))
        except CollectionNotFoundError:
            return MemoryStats(total=0)

        listing = collection.get()
        timestamps = sorted(
            m["timestamp"] for m in listing.metadatas if m and m.get("timestamp")
        )
        return MemoryStats(
            total=len(listing.ids),
            oldest=timestamps[0] if timestamps else None,
            newest=timestamps[-1] if timestamps else None,
        )

    def verify_synchronization(self, existing_student_ids: Iterable[str]) -> SyncReport:
        """Compare memory collections with the students known elsewhere."""
        in_store = {
            student_id_from_collection(name)
            for name in self._store.list_collections()
            if name.startswith(COLLECTION_PREFIX)
        }
        known = set(existing_student_ids)

        orphaned = sorted(in_store - known)
        missing = sorted(known - in_store)
        report = SyncReport(in_sync=not orphaned and not missing, orphaned=orphaned, missing=missing)

        if report.in_sync:
            logger.info("Memory synchronization verified")
        else:
            if orphaned:
                logger.warning("Orphaned memory collections: %s", ", ".join(orphaned))
            if missing:
                logger.warning("Missing memory collections: %s", ", ".join(missing))
        return report

    def clean_orphaned(self, orphaned_ids: Iterable[str]) -> int:
        cleaned = sum(1 for student_id in orphaned_ids if self.delete_student(student_id))
        logger.info("Cleaned %d orphaned collections", cleaned)
        return cleaned
