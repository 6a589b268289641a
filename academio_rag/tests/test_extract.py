"""Tests for PDF text extraction."""

import pymupdf
import pytest

from academio_rag.errors import DocumentParseError
from academio_rag.pipeline.extract import PdfTextExtractor


def write_pdf(path, pages):
    doc = pymupdf.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    doc.save(str(path))
    doc.close()


def test_extracts_text_and_page_count(tmp_path):
    path = tmp_path / "nuestros_saberes_primaria_1.pdf"
    write_pdf(path, ["Los seres vivos", "El ciclo del agua", "Las estaciones"])

    extracted = PdfTextExtractor().extract(path)

    assert extracted.page_count == 3
    assert "Los seres vivos" in extracted.text
    assert extracted.text.index("El ciclo del agua") > extracted.text.index("Los seres vivos")


def test_broken_file_raises_parse_error(tmp_path):
    path = tmp_path / "humanidades_primaria_2.pdf"
    path.write_bytes(b"version https://git-lfs.github.com/spec/v1\n")

    with pytest.raises(DocumentParseError, match="humanidades_primaria_2.pdf"):
        PdfTextExtractor().extract(path)
