"""Abstract base class for per-document vector stores.

Each document gets its own collection holding one record per chunk:
the chunk text, its embedding and its offsets.  The RAG pipeline only
talks to this interface, so ChromaDB could be swapped for another store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docrag.models.rag import (
    CollectionStats,
    SearchOptions,
    SearchResult,
    StorageResult,
    TextChunk,
)


# Concrete implementation: ChromaDBProvider (docrag/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector stores used by the RAG pipeline.

    All methods are async so network-backed stores never block the event
    loop.  Collection names are derived from document ids by the store.
    """

    @abstractmethod
    async def store_chunks(
        self,
        document_id: str,
        chunks: list[TextChunk],
        embeddings: list[list[float]],
        collection_name: str | None = None,
    ) -> StorageResult:
        """Persist *chunks* with their positionally aligned *embeddings*.

        Re-storing a document overwrites records with the same chunk index.

        Raises
        ------
        docrag.utils.errors.InvariantViolation
            If ``len(chunks) != len(embeddings)``; nothing is written.
        docrag.utils.errors.ProviderCallError
            If the backend write fails.
        """

    @abstractmethod
    async def search_similar(
        self,
        document_id: str,
        query_embedding: list[float],
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Return up to ``top_k`` chunks scoring at least ``min_score``.

        Results are sorted by score, highest first.  A document without a
        collection yields an empty list.
        """

    @abstractmethod
    async def search_global(
        self,
        query_embedding: list[float],
        options: SearchOptions | None = None,
    ) -> dict[str, list[SearchResult]]:
        """Search every collection; collections with no hits are omitted."""

    @abstractmethod
    async def delete_collection(self, document_id: str) -> bool:
        """Drop a document's collection.

        Returns ``False`` when there was nothing to delete.
        """

    @abstractmethod
    async def get_collection_stats(self, document_id: str) -> CollectionStats:
        """Report existence and record count; never raises."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return the names of all collections in the store."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` if the backend answers a heartbeat; never raises."""

    @abstractmethod
    async def close(self) -> None:
        """Release cached handles and client resources."""
