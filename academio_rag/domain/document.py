"""Source document entities for the ingestion pipeline."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A textbook discovered in the corpus.

    Attributes:
        group: Group directory name (e.g. "01_primaria_1")
        path: Full path to the file
    """

    group: str
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def display_name(self) -> str:
        return f"{self.group}/{self.filename}"


@dataclass(frozen=True, slots=True)
class ExtractedText:
    """Plain text extracted from a document together with its page count."""

    text: str
    page_count: int
