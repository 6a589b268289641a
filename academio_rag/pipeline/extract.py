"""Document text extraction."""

from abc import ABC, abstractmethod
from pathlib import Path

import pymupdf

from academio_rag.domain.document import ExtractedText
from academio_rag.errors import DocumentParseError


class TextExtractor(ABC):
    """Extracts plain text and page count from a source document."""

    @abstractmethod
    def extract(self, path: Path) -> ExtractedText:
        """Extract text from ``path``.

        Raises:
            DocumentParseError: If the document cannot be read
        """


class PdfTextExtractor(TextExtractor):
    """PDF extraction with PyMuPDF; pages are joined with blank lines."""

    def extract(self, path: Path) -> ExtractedText:
        try:
            with pymupdf.open(str(path)) as doc:
                pages = [page.get_text("text") for page in doc]
                page_count = doc.page_count
        except Exception as e:
            # PyMuPDF raises several unrelated exception types for broken files.
            raise DocumentParseError(f"Failed to extract text from {path}: {e}") from e

        return ExtractedText(text="\n\n".join(pages), page_count=page_count)
