"""Tests for corpus discovery and chunk metadata."""

import pytest

from academio_rag.domain.document import ExtractedText, SourceFile
from academio_rag.errors import CorpusNotFoundError, NoSourceFilesError
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.corpus import (
    build_chunks,
    discover_sources,
    estimate_page,
    group_label,
    make_chunk_id,
    parse_filename,
)


@pytest.fixture
def corpus(tmp_path):
    root = tmp_path / "nem-2023"
    (root / "01_primaria_1").mkdir(parents=True)
    (root / "02_primaria_2").mkdir()
    (root / "07_secundaria_1").mkdir()
    (root / "01_primaria_1" / "nuestros_saberes_primaria_1.pdf").write_bytes(b"%PDF")
    (root / "01_primaria_1" / "multiples_lenguajes_primaria_1.PDF").write_bytes(b"%PDF")
    (root / "01_primaria_1" / "notas.txt").write_text("ignored")
    (root / "02_primaria_2" / "proyectos_escolares_primaria_2.pdf").write_bytes(b"%PDF")
    (root / "07_secundaria_1" / "humanidades_secundaria_1.pdf").write_bytes(b"%PDF")
    return root


class TestGroupLabel:
    def test_primaria(self):
        assert group_label("01_primaria_1") == "1° Primaria"

    def test_secundaria(self):
        assert group_label("08_secundaria_2") == "2° Secundaria"

    def test_unknown_layout_is_kept(self):
        assert group_label("extras") == "extras"


class TestParseFilename:
    def test_known_subject(self):
        parsed = parse_filename("saberes_y_pensamiento_cientifico_primaria_3.pdf")

        assert parsed.subject_code == "saberes_y_pensamiento_cientifico"
        assert parsed.subject_display == "Saberes y Pensamiento Científico"
        assert parsed.level == "primaria"
        assert parsed.grade == "3"

    def test_unknown_subject_falls_back_to_code(self):
        parsed = parse_filename("cuaderno_de_trabajo_secundaria_2.pdf")

        assert parsed.subject_display == "cuaderno de trabajo"
        assert parsed.level == "secundaria"

    def test_non_matching_name(self):
        assert parse_filename("portada.pdf") is None


class TestEstimatePage:
    def test_start_of_text_is_page_one(self):
        assert estimate_page(0, 10_000, 200) == 1

    def test_linear_estimate(self):
        assert estimate_page(5_000, 10_000, 200) == 100
        assert estimate_page(5_001, 10_000, 200) == 101

    def test_empty_text(self):
        assert estimate_page(0, 0, 0) == 1


def test_chunk_id_format():
    chunk_id = make_chunk_id("01_primaria_1", "nuestros_saberes", 12, 3)

    assert chunk_id == "nem_01_primaria_1_nuestros_saberes_p0012_c0003"


def test_chunk_id_truncates_subject_and_sanitizes_group():
    chunk_id = make_chunk_id("01-primaria 1", "s" * 40, 1, 0)

    assert chunk_id == f"nem_01_primaria_1_{'s' * 30}_p0001_c0000"


class TestDiscoverSources:
    def test_lists_pdfs_in_sorted_groups(self, corpus):
        sources = discover_sources(corpus)

        assert [s.display_name for s in sources] == [
            "01_primaria_1/multiples_lenguajes_primaria_1.PDF",
            "01_primaria_1/nuestros_saberes_primaria_1.pdf",
            "02_primaria_2/proyectos_escolares_primaria_2.pdf",
            "07_secundaria_1/humanidades_secundaria_1.pdf",
        ]

    def test_group_prefix_filter(self, corpus):
        sources = discover_sources(corpus, group_filter="0")
        assert len(sources) == 4

        sources = discover_sources(corpus, group_filter="07")
        assert [s.group for s in sources] == ["07_secundaria_1"]

    def test_missing_root(self, tmp_path):
        with pytest.raises(CorpusNotFoundError):
            discover_sources(tmp_path / "missing")

    def test_no_matching_group(self, corpus):
        with pytest.raises(NoSourceFilesError, match="99"):
            discover_sources(corpus, group_filter="99")

    def test_no_pdfs(self, tmp_path):
        (tmp_path / "01_primaria_1").mkdir()
        (tmp_path / "01_primaria_1" / "readme.txt").write_text("x")

        with pytest.raises(NoSourceFilesError):
            discover_sources(tmp_path)


def test_build_chunks_attaches_metadata(tmp_path):
    source = SourceFile("01_primaria_1", tmp_path / "nuestros_saberes_primaria_1.pdf")
    parsed = parse_filename(source.filename)
    text = "palabra " * 500
    segmenter = TextSegmenter(chunk_size=1000, chunk_overlap=200)

    chunks = build_chunks(source, parsed, ExtractedText(text=text, page_count=10), segmenter)

    assert len(chunks) == 4
    assert [c.metadata.chunk_index for c in chunks] == [0, 1, 2, 3]
    assert [c.metadata.source_page for c in chunks] == [1, 3, 5, 8]
    assert chunks[0].chunk_id == "nem_01_primaria_1_nuestros_saberes_p0001_c0000"
    assert chunks[2].chunk_id == "nem_01_primaria_1_nuestros_saberes_p0005_c0002"

    meta = chunks[0].metadata
    assert meta.group_label == "1° Primaria"
    assert meta.subject == "Nuestros Saberes"
    assert meta.source_title == "Nuestros Saberes — 1° Primaria"
    assert meta.source_file == "nuestros_saberes_primaria_1.pdf"
    assert meta.to_dict()["grade_dir"] == "01_primaria_1"
