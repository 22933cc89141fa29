"""Unit tests for the ChromaDB vector store against a real on-disk client."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docrag.models.rag import ChunkMetadata, SearchOptions, TextChunk
from docrag.providers.vector_store.chromadb_provider import (
    ChromaDBProvider,
    collection_name_for,
)
from docrag.utils.errors import InvariantViolation, ProviderCallError
from tests.conftest import make_settings

_AXES = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]


def _chunks(*texts: str) -> list[TextChunk]:
    chunks = []
    offset = 0
    for i, text in enumerate(texts):
        chunks.append(
            TextChunk(
                content=text,
                index=i,
                metadata=ChunkMetadata(
                    start_char=offset, end_char=offset + len(text), length=len(text)
                ),
            )
        )
        offset += len(text) + 1
    return chunks


@pytest.fixture()
def store(tmp_path: Path) -> ChromaDBProvider:
    return ChromaDBProvider(settings=make_settings(tmp_path))


class TestStoreChunks:
    @pytest.mark.asyncio
    async def test_store_then_stats(self, store: ChromaDBProvider) -> None:
        result = await store.store_chunks("d1", _chunks("a", "b", "c"), _AXES)

        assert result.collection_name == "doc_d1"
        assert result.stored_count == 3
        assert result.dimensions == 3

        stats = await store.get_collection_stats("d1")
        assert stats.exists is True
        assert stats.count == 3
        assert stats.name == "doc_d1"

    @pytest.mark.asyncio
    async def test_restore_overwrites_by_index(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("a", "b", "c"), _AXES)
        await store.store_chunks("d1", _chunks("x", "y", "z"), _AXES)

        stats = await store.get_collection_stats("d1")
        assert stats.count == 3
        hits = await store.search_similar("d1", [1.0, 0.0, 0.0], SearchOptions(top_k=1))
        assert hits[0].chunk.content == "x"

    @pytest.mark.asyncio
    async def test_length_mismatch_writes_nothing(self, store: ChromaDBProvider) -> None:
        with pytest.raises(InvariantViolation):
            await store.store_chunks("d1", _chunks("a", "b"), _AXES)

        stats = await store.get_collection_stats("d1")
        assert stats.exists is False

    @pytest.mark.asyncio
    async def test_empty_document_creates_empty_collection(self, store: ChromaDBProvider) -> None:
        result = await store.store_chunks("empty", [], [])

        assert result.stored_count == 0
        assert result.dimensions == 0
        stats = await store.get_collection_stats("empty")
        assert stats.exists is True
        assert stats.count == 0
        assert await store.search_similar("empty", [1.0, 0.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_collection_name_override(self, store: ChromaDBProvider) -> None:
        result = await store.store_chunks(
            "d1", _chunks("a"), [_AXES[0]], collection_name="custom_name"
        )
        assert result.collection_name == "custom_name"
        assert "custom_name" in await store.list_collections()


class TestSearch:
    @pytest.mark.asyncio
    async def test_best_match_first(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("east", "north", "up"), _AXES)

        hits = await store.search_similar("d1", [0.9, 0.1, 0.0], SearchOptions(top_k=3))

        assert [h.chunk.content for h in hits][0] == "east"
        scores = [h.score for h in hits]
        assert scores == sorted(scores, reverse=True)
        for hit in hits:
            assert 0.0 < hit.score <= 1.0
            assert hit.distance >= 0.0
            assert hit.score == pytest.approx(1.0 / (1.0 + hit.distance))

    @pytest.mark.asyncio
    async def test_identical_vector_scores_near_one(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("east", "north", "up"), _AXES)

        hits = await store.search_similar("d1", [1.0, 0.0, 0.0], SearchOptions(top_k=1))

        assert len(hits) == 1
        assert hits[0].score == pytest.approx(1.0, abs=1e-3)
        assert hits[0].chunk.index == 0
        assert hits[0].chunk.metadata.start_char == 0
        assert hits[0].chunk.metadata.length == 4

    @pytest.mark.asyncio
    async def test_min_score_filters(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("east", "north", "up"), _AXES)

        hits = await store.search_similar(
            "d1", [1.0, 0.0, 0.0], SearchOptions(top_k=3, min_score=0.9)
        )

        # Orthogonal vectors sit at cosine distance 1 -> score 0.5.
        assert [h.chunk.content for h in hits] == ["east"]

    @pytest.mark.asyncio
    async def test_top_k_larger_than_collection(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("east", "north"), _AXES[:2])
        hits = await store.search_similar("d1", [1.0, 0.0, 0.0], SearchOptions(top_k=10))
        assert len(hits) == 2

    @pytest.mark.asyncio
    async def test_missing_document_returns_empty(self, store: ChromaDBProvider) -> None:
        assert await store.search_similar("nope", [1.0, 0.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_global_search_omits_collections_without_hits(
        self, store: ChromaDBProvider
    ) -> None:
        await store.store_chunks("aaa", _chunks("east"), [_AXES[0]])
        await store.store_chunks("bbb", _chunks("north"), [_AXES[1]])

        results = await store.search_global([1.0, 0.0, 0.0], SearchOptions(min_score=0.9))

        assert list(results) == ["doc_aaa"]
        assert results["doc_aaa"][0].chunk.content == "east"


class TestAdministration:
    @pytest.mark.asyncio
    async def test_delete_existing_then_missing(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("a"), [_AXES[0]])

        assert await store.delete_collection("d1") is True
        assert await store.delete_collection("d1") is False

        stats = await store.get_collection_stats("d1")
        assert stats.exists is False
        assert await store.search_similar("d1", [1.0, 0.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_list_collections(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("a"), [_AXES[0]])
        await store.store_chunks("d2", _chunks("b"), [_AXES[1]])

        names = await store.list_collections()

        assert {"doc_d1", "doc_d2"} <= set(names)

    @pytest.mark.asyncio
    async def test_health_check(self, store: ChromaDBProvider) -> None:
        assert await store.health_check() is True

    @pytest.mark.asyncio
    async def test_close_clears_handle_cache(self, store: ChromaDBProvider) -> None:
        await store.store_chunks("d1", _chunks("a"), [_AXES[0]])
        assert "doc_d1" in store._collections

        await store.close()

        assert len(store._collections) == 0
        # Handles reopen transparently after close.
        stats = await store.get_collection_stats("d1")
        assert stats.count == 1

    def test_collection_name_for(self) -> None:
        assert collection_name_for("abc-123") == "doc_abc-123"


class TestBackendFailures:
    @pytest.fixture()
    def broken_client(self) -> MagicMock:
        client = MagicMock()
        client.heartbeat.side_effect = ConnectionError("down")
        client.list_collections.side_effect = ConnectionError("down")
        client.get_collection.side_effect = ConnectionError("down")
        client.get_or_create_collection.side_effect = ConnectionError("down")
        client.delete_collection.side_effect = ConnectionError("down")
        return client

    @pytest.fixture()
    def broken_store(self, broken_client: MagicMock) -> ChromaDBProvider:
        return ChromaDBProvider(settings=make_settings(), client=broken_client)

    @pytest.mark.asyncio
    async def test_health_check_never_raises(self, broken_store: ChromaDBProvider) -> None:
        assert await broken_store.health_check() is False

    @pytest.mark.asyncio
    async def test_stats_never_raise(self, broken_store: ChromaDBProvider) -> None:
        stats = await broken_store.get_collection_stats("d1")
        assert stats.exists is False
        assert stats.count == 0

    @pytest.mark.asyncio
    async def test_list_collections_raises_provider_error(
        self, broken_store: ChromaDBProvider
    ) -> None:
        with pytest.raises(ProviderCallError):
            await broken_store.list_collections()

    @pytest.mark.asyncio
    async def test_store_raises_provider_error(self, broken_store: ChromaDBProvider) -> None:
        with pytest.raises(ProviderCallError) as exc_info:
            await broken_store.store_chunks("d1", _chunks("a"), [_AXES[0]])
        assert exc_info.value.provider_name == "chromadb"

    @pytest.mark.asyncio
    async def test_search_raises_provider_error(self, broken_store: ChromaDBProvider) -> None:
        with pytest.raises(ProviderCallError):
            await broken_store.search_similar("d1", [1.0, 0.0, 0.0])

    @pytest.mark.asyncio
    async def test_delete_raises_provider_error(self, broken_store: ChromaDBProvider) -> None:
        with pytest.raises(ProviderCallError):
            await broken_store.delete_collection("d1")

    @pytest.mark.asyncio
    async def test_list_accepts_collection_objects(self) -> None:
        client = MagicMock()
        named = MagicMock()
        named.name = "doc_x"
        client.list_collections.return_value = [named, "doc_y"]
        store = ChromaDBProvider(settings=make_settings(), client=client)

        assert await store.list_collections() == ["doc_x", "doc_y"]
