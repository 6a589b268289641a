"""Recursive text segmentation with overlap."""

from dataclasses import dataclass
from typing import List

from langchain_text_splitters import RecursiveCharacterTextSplitter

SEPARATORS = ["\n\n", "\n", ". ", " "]


@dataclass(frozen=True, slots=True)
class Segment:
    """One segmented piece of a text.

    Attributes:
        text: Chunk text, i.e. the overlap prefix followed by the core
        core: Non-overlapping part of the chunk
        offset: Character offset of the core in the original text
    """

    text: str
    core: str
    offset: int


class TextSegmenter:
    """Splits text into bounded, overlapping chunks.

    Cores come from a recursive character splitter that keeps each separator
    at the end of its piece and never strips whitespace, so the cores
    concatenate back to the original text. Each chunk is then the core
    prefixed with the last ``chunk_overlap`` characters of the previous core.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: List[str] | None = None,
    ):
        """Initialize segmenter.

        Args:
            chunk_size: Maximum core length of a chunk in characters
            chunk_overlap: Characters of the previous core prefixed to each chunk
            separators: Separator priority list (default: paragraph, line,
                sentence, word)
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap}"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators) if separators is not None else list(SEPARATORS)

        # Overlap is added from exact core suffixes in segment(), so the
        # splitter only produces the cores.
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=0,
            length_function=len,
            separators=self.separators + [""],
            keep_separator="end",
            strip_whitespace=False,
        )

    def split(self, text: str) -> List[str]:
        """Split text into overlapped chunk strings."""
        return [segment.text for segment in self.segment(text)]

    def segment(self, text: str) -> List[Segment]:
        """Split text into segments carrying their core and offset."""
        cores = self.split_cores(text)
        if len(cores) <= 1:
            return [Segment(text=core, core=core, offset=0) for core in cores]

        segments = []
        offset = 0
        previous = ""
        for core in cores:
            prefix = previous[-self.chunk_overlap:] if self.chunk_overlap and previous else ""
            segments.append(Segment(text=prefix + core, core=core, offset=offset))
            offset += len(core)
            previous = core
        return segments

    def split_cores(self, text: str) -> List[str]:
        """Split text into non-overlapping cores whose concatenation is ``text``."""
        if not text:
            return []
        return self._splitter.split_text(text)
