"""Chunk entity for the curriculum retrieval index."""

from dataclasses import dataclass, asdict


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    """Fixed metadata record attached to every curriculum chunk.

    Attributes:
        group_label: Human readable grade label (e.g. "1° Primaria")
        group: Group directory the source came from (e.g. "01_primaria_1")
        subject: Subject display label
        subject_code: Subject code parsed from the filename
        source_title: Book title shown to users
        source_file: Originating file name
        source_page: Estimated page in the source (1-based)
        chunk_index: Zero-based ordinal of the chunk within its file
    """

    group_label: str
    group: str
    subject: str
    subject_code: str
    source_title: str
    source_file: str
    source_page: int
    chunk_index: int

    def to_dict(self) -> dict:
        """Convert to the key layout stored alongside each vector."""
        return {
            "grade_level": self.group_label,
            "grade_dir": self.group,
            "subject": self.subject,
            "subject_code": self.subject_code,
            "book_title": self.source_title,
            "source_file": self.source_file,
            "source_page": self.source_page,
            "chunk_index": self.chunk_index,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "ChunkMetadata":
        """Rebuild metadata from its stored form, tolerating missing keys."""
        data = data or {}
        return cls(
            group_label=str(data.get("grade_level", "")),
            group=str(data.get("grade_dir", "")),
            subject=str(data.get("subject", "")),
            subject_code=str(data.get("subject_code", "")),
            source_title=str(data.get("book_title", "")),
            source_file=str(data.get("source_file", "")),
            source_page=int(data.get("source_page", 0) or 0),
            chunk_index=int(data.get("chunk_index", 0) or 0),
        )


@dataclass(frozen=True, slots=True)
class Chunk:
    """Immutable chunk entity.

    Attributes:
        chunk_id: Deterministic identifier, stable across re-ingestion
        text: Chunk text including the overlap prefix
        metadata: Source and position metadata
    """

    chunk_id: str
    text: str
    metadata: ChunkMetadata

    def to_dict(self) -> dict:
        """Convert chunk to dictionary for serialization."""
        return asdict(self)
