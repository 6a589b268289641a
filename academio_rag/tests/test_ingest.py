"""Tests for the ingestion orchestrator."""

import pytest

from academio_rag.errors import (
    CorpusNotFoundError,
    EmbeddingModelNotFound,
    VectorStoreUnavailable,
)
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.index_signature import SIGNATURE_KEY, compute_signature
from academio_rag.pipeline.indexer import CHUNK_DONE
from academio_rag.pipeline.ingest import (
    FAILED,
    INDEXED,
    PLANNED,
    SKIPPED,
    IngestionOrchestrator,
)
from academio_rag.tests.fakes import (
    FakeEmbeddings,
    FakeExtractor,
    InMemoryCollection,
    InMemoryVectorStore,
)

# 7,000 characters: exactly seven 1,000-character cores.
SEVEN_CHUNK_TEXT = "palabra " * 875


def make_corpus(root, files):
    for relative in files:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"%PDF-1.7")
    return root


@pytest.fixture
def single_book(tmp_path):
    return make_corpus(tmp_path / "nem", ["01_primaria_1/nuestros_saberes_primaria_1.pdf"])


@pytest.fixture
def library(tmp_path):
    return make_corpus(
        tmp_path / "nem",
        [
            "01_primaria_1/nuestros_saberes_primaria_1.pdf",
            "01_primaria_1/portada.pdf",
            "02_primaria_2/humanidades_primaria_2.pdf",
            "07_secundaria_1/lengua_y_literatura_secundaria_1.pdf",
        ],
    )


def make_orchestrator(root, extractor=None, embeddings=None, store=None, **kwargs):
    return IngestionOrchestrator(
        corpus_root=root,
        extractor=extractor or FakeExtractor(SEVEN_CHUNK_TEXT),
        segmenter=TextSegmenter(chunk_size=1000, chunk_overlap=200),
        embeddings=embeddings,
        store=store,
        **kwargs,
    )


class TestDryRun:
    def test_reports_chunks_without_network_calls(self, single_book):
        embeddings = FakeEmbeddings()
        store = InMemoryVectorStore()
        orchestrator = make_orchestrator(single_book, embeddings=embeddings, store=store)

        report = orchestrator.run(dry_run=True)

        assert report.dry_run
        assert report.total_chunks == 7
        assert report.files[0].status == PLANNED
        assert embeddings.calls == []
        assert embeddings.health_checks == 0
        assert store.calls == 0

    def test_runs_without_clients(self, single_book):
        report = make_orchestrator(single_book).run(dry_run=True)

        assert report.total_chunks == 7
        assert report.succeeded

    def test_real_run_yields_same_chunk_count(self, single_book):
        dry = make_orchestrator(single_book).run(dry_run=True)

        store = InMemoryVectorStore()
        real = make_orchestrator(single_book, embeddings=FakeEmbeddings(), store=store).run()

        assert real.total_chunks == dry.total_chunks == 7
        assert real.total_embedded == 7
        assert store.collections["curriculum_standards"].count() == 7


class TestRun:
    def test_ingests_all_recognised_files(self, library):
        store = InMemoryVectorStore()
        events = []
        report = make_orchestrator(library, embeddings=FakeEmbeddings(), store=store).run(
            on_progress=events.append
        )

        statuses = {f.source.filename: f.status for f in report.files}
        assert statuses == {
            "nuestros_saberes_primaria_1.pdf": INDEXED,
            "portada.pdf": SKIPPED,
            "humanidades_primaria_2.pdf": INDEXED,
            "lengua_y_literatura_secundaria_1.pdf": INDEXED,
        }
        assert report.skipped_files == 1
        assert report.has_warnings
        assert store.collections["curriculum_standards"].count() == 21
        assert sum(1 for e in events if e.kind == CHUNK_DONE) == 21

    def test_file_callback_sees_every_source(self, library):
        seen = []
        make_orchestrator(library).run(
            dry_run=True, on_file=lambda i, total, source: seen.append((i, total, source.filename))
        )

        assert [s[0] for s in seen] == [1, 2, 3, 4]
        assert all(s[1] == 4 for s in seen)

    def test_file_done_callback_gets_counts(self, single_book):
        done = []
        make_orchestrator(
            single_book,
            embeddings=FakeEmbeddings(fail_on=("palabra",)),
            store=InMemoryVectorStore(),
        ).run(on_file_done=done.append)

        assert [(f.status, f.embedded, f.failed) for f in done] == [(INDEXED, 0, 7)]

    def test_reingestion_is_idempotent(self, library):
        store = InMemoryVectorStore()
        orchestrator = make_orchestrator(library, embeddings=FakeEmbeddings(), store=store)

        orchestrator.run()
        orchestrator.run()

        assert store.collections["curriculum_standards"].count() == 21

    def test_clear_drops_stale_chunks(self, single_book):
        store = InMemoryVectorStore()
        stale = store.get_or_create_collection("curriculum_standards")
        stale.upsert(ids=["stale"], embeddings=[[1.0]], documents=["viejo"], metadatas=[{}])

        make_orchestrator(single_book, embeddings=FakeEmbeddings(), store=store).run(clear=True)

        collection = store.collections["curriculum_standards"]
        assert "stale" not in collection.entries
        assert collection.count() == 7

    def test_grade_filter(self, library):
        extractor = FakeExtractor(SEVEN_CHUNK_TEXT)
        report = make_orchestrator(library, extractor=extractor).run(
            group_filter="02", dry_run=True
        )

        assert extractor.calls == ["humanidades_primaria_2.pdf"]
        assert report.total_files == 1

    def test_parse_failure_is_skipped_and_run_continues(self, library):
        extractor = FakeExtractor(SEVEN_CHUNK_TEXT, broken=("humanidades_primaria_2.pdf",))
        store = InMemoryVectorStore()

        report = make_orchestrator(
            library, extractor=extractor, embeddings=FakeEmbeddings(), store=store
        ).run()

        broken = next(f for f in report.files if f.source.filename == "humanidades_primaria_2.pdf")
        assert broken.status == SKIPPED
        assert "damaged xref" in broken.reason
        assert report.skipped_files == 2
        assert store.collections["curriculum_standards"].count() == 14

    def test_empty_text_is_skipped(self, single_book):
        report = make_orchestrator(single_book, extractor=FakeExtractor(text="")).run(
            dry_run=True
        )

        assert report.files[0].status == SKIPPED
        assert report.total_chunks == 0

    def test_store_failure_marks_file_failed(self, library):
        store = InMemoryVectorStore()
        collection = InMemoryCollection("curriculum_standards")
        collection.fail_upsert = True
        store.collections["curriculum_standards"] = collection

        report = make_orchestrator(library, embeddings=FakeEmbeddings(), store=store).run()

        assert report.failed_files == 3
        assert not report.succeeded
        assert all(f.status in (FAILED, SKIPPED) for f in report.files)

    def test_embedding_failures_are_counted(self, single_book):
        embeddings = FakeEmbeddings(fail_on=("palabra",))
        store = InMemoryVectorStore()

        report = make_orchestrator(single_book, embeddings=embeddings, store=store).run()

        assert report.total_failed == 7
        assert report.total_embedded == 0
        assert report.has_warnings
        # Unembedded fallback keeps the chunks listed.
        assert store.collections["curriculum_standards"].count() == 7


class TestPreconditions:
    def test_missing_corpus(self, tmp_path):
        with pytest.raises(CorpusNotFoundError):
            make_orchestrator(tmp_path / "missing").run(dry_run=True)

    def test_embedding_model_missing(self, single_book):
        extractor = FakeExtractor(SEVEN_CHUNK_TEXT)
        orchestrator = make_orchestrator(
            single_book,
            extractor=extractor,
            embeddings=FakeEmbeddings(healthy=False),
            store=InMemoryVectorStore(),
        )

        with pytest.raises(EmbeddingModelNotFound):
            orchestrator.run()
        assert extractor.calls == []

    def test_vector_store_unreachable(self, single_book):
        orchestrator = make_orchestrator(
            single_book,
            embeddings=FakeEmbeddings(),
            store=InMemoryVectorStore(reachable=False),
        )

        with pytest.raises(VectorStoreUnavailable):
            orchestrator.run()

    def test_real_run_requires_clients(self, single_book):
        with pytest.raises(ValueError):
            make_orchestrator(single_book).run()


class TestSignature:
    def test_new_collection_records_signature(self, single_book):
        store = InMemoryVectorStore()
        embeddings = FakeEmbeddings(model="qwen3-embedding")

        make_orchestrator(single_book, embeddings=embeddings, store=store).run()

        metadata = store.collections["curriculum_standards"].metadata
        assert metadata[SIGNATURE_KEY] == compute_signature("qwen3-embedding", 1000, 200)

    def test_mismatch_is_reported(self, single_book):
        store = InMemoryVectorStore()
        store.collections["curriculum_standards"] = InMemoryCollection(
            "curriculum_standards", {SIGNATURE_KEY: "old-signature"}
        )

        report = make_orchestrator(single_book, embeddings=FakeEmbeddings(), store=store).run()

        assert report.signature_mismatch
