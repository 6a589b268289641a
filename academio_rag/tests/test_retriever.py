"""Unit tests for the retrieval query engine."""

import pytest

from academio_rag.errors import CollectionNotFoundError, EmbeddingError, EmptyCollectionError
from academio_rag.rag.retriever import (
    MatchStrength,
    RetrievalEngine,
    classify,
    similarity,
)
from academio_rag.tests.fakes import FakeEmbeddings, InMemoryVectorStore

QUESTION = "¿Cómo respiran las plantas?"


@pytest.fixture
def store():
    store = InMemoryVectorStore()
    collection = store.get_or_create_collection("curriculum_standards")
    collection.upsert(
        ids=["far", "near", "mid", "unembedded"],
        embeddings=[[3.0, 0.0], [0.4, 0.8], [0.0, 2.0], None],
        documents=["lejos", "cerca", "medio", "sin vector"],
        metadatas=[
            {"grade_dir": "01_primaria_1", "book_title": "Nuestros Saberes — 1° Primaria"},
            {"grade_dir": "02_primaria_2", "book_title": "Humanidades — 2° Primaria", "source_page": 7},
            {"grade_dir": "01_primaria_1"},
            {"grade_dir": "01_primaria_1"},
        ],
    )
    store.get_or_create_collection("empty")
    return store


@pytest.fixture
def engine(store):
    embeddings = FakeEmbeddings(vectors={QUESTION: [0.0, 0.0]}, fail_on=("FAIL",))
    return RetrievalEngine(embeddings, store)


class TestSimilarity:
    def test_zero_distance_is_one(self):
        assert similarity(0.0) == 1.0

    def test_monotonic_and_bounded(self):
        distances = [0.0, 0.1, 0.5, 0.8, 1.0, 5.0, 100.0, 1e9]
        scores = [similarity(d) for d in distances]

        assert all(0.0 < s <= 1.0 for s in scores)
        assert all(a > b for a, b in zip(scores, scores[1:]))

    def test_negative_distance_is_clamped(self):
        assert similarity(-0.5) == 1.0

    def test_distance_point_eight(self):
        score = similarity(0.8)

        assert score == pytest.approx(0.556, abs=1e-3)
        assert classify(score) is MatchStrength.CONFIDENT


class TestClassify:
    @pytest.mark.parametrize(
        "score, expected",
        [
            (0.9, MatchStrength.CONFIDENT),
            (0.5, MatchStrength.CONFIDENT),
            (0.49, MatchStrength.PARTIAL),
            (0.3, MatchStrength.PARTIAL),
            (0.29, MatchStrength.WEAK),
            (0.0, MatchStrength.WEAK),
        ],
    )
    def test_default_thresholds(self, score, expected):
        assert classify(score) is expected

    def test_custom_thresholds(self):
        assert classify(0.6, confident_threshold=0.7, partial_threshold=0.2) is MatchStrength.PARTIAL


class TestRetrievalEngine:
    def test_results_are_ranked_by_similarity(self, engine):
        results = engine.retrieve(QUESTION, top_k=5)

        assert [r.chunk_id for r in results] == ["near", "mid", "far"]
        assert [r.rank for r in results] == [1, 2, 3]
        scores = [r.similarity for r in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].distance == pytest.approx(0.8)
        assert results[0].similarity == pytest.approx(0.556, abs=1e-3)

    def test_distance_is_squared_l2(self, engine):
        results = engine.retrieve(QUESTION, top_k=5)
        mid = next(r for r in results if r.chunk_id == "mid")

        # Two units away: squared distance 4 scores 0.2, not 1 / (1 + 2).
        assert mid.distance == pytest.approx(4.0)
        assert mid.similarity == pytest.approx(0.2)
        assert classify(mid.similarity) is MatchStrength.WEAK

    def test_top_k_limits_results(self, engine):
        assert len(engine.retrieve(QUESTION, top_k=1)) == 1

    def test_metadata_filter(self, engine):
        results = engine.retrieve(QUESTION, where={"grade_dir": "01_primaria_1"})

        assert [r.chunk_id for r in results] == ["mid", "far"]

    def test_chunk_metadata_view(self, engine):
        best = engine.retrieve(QUESTION, top_k=1)[0]
        meta = best.as_chunk_metadata()

        assert meta.source_title == "Humanidades — 2° Primaria"
        assert meta.source_page == 7
        assert meta.group == "02_primaria_2"

    def test_empty_collection_is_distinct(self, engine):
        with pytest.raises(EmptyCollectionError) as exc:
            engine.retrieve(QUESTION, collection="empty")

        assert exc.value.collection == "empty"

    def test_unknown_collection(self, engine):
        with pytest.raises(CollectionNotFoundError):
            engine.retrieve(QUESTION, collection="nope")

    def test_query_embedding_failure(self, engine):
        with pytest.raises(EmbeddingError):
            engine.retrieve("FAIL")

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query(self, engine, query):
        with pytest.raises(ValueError):
            engine.retrieve(query)

    def test_invalid_top_k(self, engine):
        with pytest.raises(ValueError):
            engine.retrieve(QUESTION, top_k=0)
