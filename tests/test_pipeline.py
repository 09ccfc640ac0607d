"""Tests for query construction and search orchestration."""

import pytest

from core.indexing.indexer import Indexer
from core.indexing.scanner import LibraryScanner
from core.models.domain import SearchMode
from core.models.errors import DecodeError
from core.search.pipeline import SearchPipeline


@pytest.fixture
def indexed(library, cache, computer):
    """Fingerprint the sample library and return its root."""

    root, _ = library
    Indexer(cache, computer, chunk_delay=0.0).index_library(LibraryScanner(root).scan())
    return root


class TestSearchPipeline:
    """Tests for pixel-mode search."""

    def test_search_image_excludes_itself(self, indexed, cache, computer):
        pipeline = SearchPipeline(cache, computer)
        results = pipeline.search_image(indexed / "red.png", exclude_id="red.png")
        assert [result.item_id for result in results] == ["red_copy.png"]
        assert results[0].score == pytest.approx(1.0)

    def test_external_query_finds_both_copies(self, indexed, cache, computer, solid_image):
        pipeline = SearchPipeline(cache, computer)
        results = pipeline.search_image(solid_image("query.png", (230, 10, 10)))
        assert sorted(result.item_id for result in results) == ["red.png", "red_copy.png"]

    def test_refilter_reuses_last_query(self, indexed, cache, computer):
        pipeline = SearchPipeline(cache, computer, threshold=70)
        pipeline.search_image(indexed / "red.png", exclude_id="red.png")

        widened = pipeline.refilter(threshold=50)
        assert [result.item_id for result in widened] == ["red_copy.png", "blue.png"]

        limited = pipeline.refilter(max_results=1)
        assert [result.item_id for result in limited] == ["red_copy.png"]

    def test_refilter_without_query(self, cache, computer):
        assert SearchPipeline(cache, computer).refilter(threshold=10) == []

    def test_unreadable_query_raises(self, indexed, cache, computer, broken_image):
        with pytest.raises(DecodeError):
            SearchPipeline(cache, computer).build_query(broken_image)

    def test_pixel_query_has_no_embedding(self, indexed, cache, computer, fake_embedder, tmp_path):
        fake_embedder.init(tmp_path)
        pipeline = SearchPipeline(cache, computer, embedder=fake_embedder)
        pipeline.search_image(indexed / "red.png", mode="pixel")
        assert pipeline.last_query.descriptor.embedding is None
        assert fake_embedder.embed_calls == 0


class TestModes:
    """Tests for mode resolution and embedding-aware search."""

    def test_auto_without_embedder_is_pixel(self, cache, computer):
        assert SearchPipeline(cache, computer).resolve_mode("auto") is SearchMode.PIXEL

    def test_auto_with_ready_embedder_is_hybrid(self, cache, computer, fake_embedder, tmp_path):
        pipeline = SearchPipeline(cache, computer, embedder=fake_embedder)
        assert pipeline.resolve_mode(None) is SearchMode.PIXEL
        fake_embedder.init(tmp_path)
        assert pipeline.resolve_mode(None) is SearchMode.HYBRID
        assert pipeline.resolve_mode("semantic") is SearchMode.SEMANTIC

    def test_unknown_mode_raises(self, cache, computer):
        with pytest.raises(ValueError):
            SearchPipeline(cache, computer).resolve_mode("fuzzy")

    def test_semantic_search(self, library, cache, computer, fake_embedder, tmp_path):
        root, _ = library
        fake_embedder.init(tmp_path)
        Indexer(cache, computer, embedder=fake_embedder, chunk_delay=0.0, embed_delay=0.0).index_library(
            LibraryScanner(root).scan()
        )

        pipeline = SearchPipeline(cache, computer, embedder=fake_embedder, threshold=0)
        results = pipeline.search_image(root / "red.png", exclude_id="red.png", mode=SearchMode.SEMANTIC)

        assert results[0].item_id == "red_copy.png"
        assert results[0].score == pytest.approx(1.0, abs=1e-5)
        assert len(results) == 3

    def test_failed_query_embedding_is_ignored(self, indexed, cache, computer, broken_embedder, tmp_path):
        broken_embedder.init(tmp_path)
        pipeline = SearchPipeline(cache, computer, embedder=broken_embedder)

        query = pipeline.build_query(indexed / "red.png", with_embedding=True)
        assert query.embedding is None
        assert query.perceptual_hash

        results = pipeline.search_image(indexed / "red.png", exclude_id="red.png", mode="hybrid")
        assert [result.item_id for result in results] == ["red_copy.png"]
