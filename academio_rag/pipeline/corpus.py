"""Corpus discovery, filename conventions and chunk metadata."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import math
import re

from academio_rag.domain.chunk import Chunk, ChunkMetadata
from academio_rag.domain.document import ExtractedText, SourceFile
from academio_rag.errors import CorpusNotFoundError, NoSourceFilesError
from academio_rag.pipeline.chunk import TextSegmenter

SOURCE_EXTENSION = ".pdf"

SUBJECT_DISPLAY = {
    "libro_para_maestros": "Libro para Maestros",
    "multiples_lenguajes": "Múltiples Lenguajes",
    "proyectos_de_aula": "Proyectos de Aula",
    "proyectos_comunitarios": "Proyectos Comunitarios",
    "proyectos_escolares": "Proyectos Escolares",
    "saberes_y_pensamiento_cientifico": "Saberes y Pensamiento Científico",
    "de_lo_humano_y_comunitario": "De lo Humano y Comunitario",
    "etica_naturaleza_y_sociedades": "Ética, Naturaleza y Sociedades",
    "humanidades": "Humanidades",
    "lengua_y_literatura": "Lengua y Literatura",
    "nuestros_saberes": "Nuestros Saberes",
    "saberes_cientificos": "Saberes Científicos",
}

_GROUP_PATTERN = re.compile(r"\d+_(primaria|secundaria)_(\d+)")
_FILENAME_PATTERN = re.compile(r"^(.+)_(primaria|secundaria)_(\d+)$")

_SUBJECT_CODE_MAX = 30


@dataclass(frozen=True, slots=True)
class ParsedFilename:
    """Fields encoded in a textbook filename."""

    subject_code: str
    subject_display: str
    level: str
    grade: str


def group_label(group: str) -> str:
    """'01_primaria_1' -> '1° Primaria'; unknown layouts are returned as is."""
    match = _GROUP_PATTERN.search(group)
    if not match:
        return group
    level = "Primaria" if match.group(1) == "primaria" else "Secundaria"
    return f"{match.group(2)}° {level}"


def parse_filename(filename: str) -> Optional[ParsedFilename]:
    """Parse '{subject}_{primaria|secundaria}_{grade}.pdf'.

    Returns:
        Parsed fields, or None when the name does not follow the convention
    """
    base = re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE)
    match = _FILENAME_PATTERN.match(base)
    if not match:
        return None
    subject_code = match.group(1)
    return ParsedFilename(
        subject_code=subject_code,
        subject_display=SUBJECT_DISPLAY.get(subject_code, subject_code.replace("_", " ")),
        level=match.group(2),
        grade=match.group(3),
    )


def estimate_page(offset: int, total_length: int, page_count: int) -> int:
    """Linear page estimate for a character offset (always >= 1)."""
    ratio = offset / max(total_length, 1)
    return max(1, math.ceil(ratio * page_count))


def make_chunk_id(group: str, subject_code: str, page: int, ordinal: int) -> str:
    """Deterministic chunk ID: group + subject + page + ordinal."""
    safe_group = re.sub(r"\W", "_", group)
    safe_subject = subject_code[:_SUBJECT_CODE_MAX]
    return f"nem_{safe_group}_{safe_subject}_p{page:04d}_c{ordinal:04d}"


def build_chunks(
    source: SourceFile,
    parsed: ParsedFilename,
    extracted: ExtractedText,
    segmenter: TextSegmenter,
) -> List[Chunk]:
    """Segment extracted text and attach metadata and IDs to every chunk."""
    label = group_label(source.group)
    title = f"{parsed.subject_display} — {label}"
    total_length = len(extracted.text)

    chunks = []
    for ordinal, segment in enumerate(segmenter.segment(extracted.text)):
        page = estimate_page(segment.offset, total_length, extracted.page_count)
        chunks.append(
            Chunk(
                chunk_id=make_chunk_id(source.group, parsed.subject_code, page, ordinal),
                text=segment.text,
                metadata=ChunkMetadata(
                    group_label=label,
                    group=source.group,
                    subject=parsed.subject_display,
                    subject_code=parsed.subject_code,
                    source_title=title,
                    source_file=source.filename,
                    source_page=page,
                    chunk_index=ordinal,
                ),
            )
        )
    return chunks


def discover_sources(root: str | Path, group_filter: Optional[str] = None) -> List[SourceFile]:
    """List source documents under ``<root>/<group>/``.

    Args:
        root: Corpus root directory
        group_filter: Only keep groups whose name starts with this prefix

    Raises:
        CorpusNotFoundError: If the root directory is missing
        NoSourceFilesError: If no group matches or no documents are found
    """
    root = Path(root)
    if not root.is_dir():
        raise CorpusNotFoundError(
            f"Curriculum directory not found: {root}. Download the textbooks first."
        )

    groups = sorted(p.name for p in root.iterdir() if p.is_dir())
    if group_filter:
        groups = [g for g in groups if g.startswith(group_filter)]
    if not groups:
        raise NoSourceFilesError(
            f'No grade directories found matching "{group_filter or ""}" in {root}'
        )

    sources = []
    for group in groups:
        for path in sorted((root / group).iterdir()):
            if path.is_file() and path.suffix.lower() == SOURCE_EXTENSION:
                sources.append(SourceFile(group=group, path=path))

    if not sources:
        raise NoSourceFilesError(
            f"No PDF files found in {root}. Download the textbooks first "
            "(and make sure they are not Git LFS pointers)."
        )
    return sources
