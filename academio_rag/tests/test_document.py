"""Tests for domain entities (SourceFile, ChunkMetadata and Chunk)."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from academio_rag.domain.chunk import Chunk, ChunkMetadata
from academio_rag.domain.document import SourceFile


@pytest.fixture
def metadata():
    return ChunkMetadata(
        group_label="3° Primaria",
        group="03_primaria_3",
        subject="Proyectos Escolares",
        subject_code="proyectos_escolares",
        source_title="Proyectos Escolares — 3° Primaria",
        source_file="proyectos_escolares_primaria_3.pdf",
        source_page=42,
        chunk_index=17,
    )


class TestSourceFile:
    def test_names(self):
        source = SourceFile("03_primaria_3", Path("/data/03_primaria_3/proyectos_escolares_primaria_3.pdf"))

        assert source.filename == "proyectos_escolares_primaria_3.pdf"
        assert source.display_name == "03_primaria_3/proyectos_escolares_primaria_3.pdf"


class TestChunkMetadata:
    def test_stored_key_layout(self, metadata):
        assert metadata.to_dict() == {
            "grade_level": "3° Primaria",
            "grade_dir": "03_primaria_3",
            "subject": "Proyectos Escolares",
            "subject_code": "proyectos_escolares",
            "book_title": "Proyectos Escolares — 3° Primaria",
            "source_file": "proyectos_escolares_primaria_3.pdf",
            "source_page": 42,
            "chunk_index": 17,
        }

    def test_from_stored_form(self, metadata):
        assert ChunkMetadata.from_dict(metadata.to_dict()) == metadata

    def test_from_partial_dict(self):
        restored = ChunkMetadata.from_dict({"subject": "Humanidades"})

        assert restored.subject == "Humanidades"
        assert restored.source_page == 0
        assert restored.group == ""

    def test_from_none(self):
        assert ChunkMetadata.from_dict(None).chunk_index == 0


class TestChunk:
    def test_is_immutable(self, metadata):
        chunk = Chunk(chunk_id="nem_03_primaria_3_proyectos_escolares_p0042_c0017", text="x", metadata=metadata)

        with pytest.raises(FrozenInstanceError):
            chunk.text = "y"

    def test_to_dict(self, metadata):
        chunk = Chunk(chunk_id="id", text="texto", metadata=metadata)

        data = chunk.to_dict()

        assert data["chunk_id"] == "id"
        assert data["metadata"]["source_page"] == 42
