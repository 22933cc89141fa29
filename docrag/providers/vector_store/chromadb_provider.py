"""ChromaDB vector store provider adapter.

Implements :class:`IVectorStoreProvider` with one ChromaDB collection per
document, named ``doc_<document_id>``.  Each chunk is one record with id
``<document_id>_chunk_<index>``, the chunk text as its document, the
pre-computed embedding, and its offsets as metadata.  Collections use
cosine distance; search scores are ``1 / (1 + distance)``.

The client is a ``chromadb.HttpClient`` when ``chroma_url`` is set and an
embedded ``chromadb.PersistentClient`` otherwise.  ChromaDB's client API
is synchronous, so every call is pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# ChromaDB reads this at import time; the Settings flag below covers
# clients created later.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import httpx
import structlog
from chromadb.errors import NotFoundError

from docrag.config.settings import Settings
from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.models.rag import (
    ChunkMetadata,
    CollectionStats,
    SearchOptions,
    SearchResult,
    StorageResult,
    TextChunk,
)
from docrag.providers.vector_store.collection_cache import CollectionHandleCache
from docrag.utils.errors import InvariantViolation, ProviderCallError

logger = structlog.get_logger(logger_name=__name__)

COLLECTION_PREFIX = "doc_"
_UPSERT_BATCH_SIZE = 500
_PROVIDER_NAME = "chromadb"

# Older clients signal a missing collection with ValueError.
_NOT_FOUND_ERRORS: tuple[type[Exception], ...] = (NotFoundError, ValueError)


def collection_name_for(document_id: str) -> str:
    """Return the collection name holding *document_id*'s chunks."""
    return f"{COLLECTION_PREFIX}{document_id}"


def chunk_record_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index}"


def build_chroma_client(settings: Settings) -> Any:
    """Create the ChromaDB client described by *settings*."""
    client_settings = chromadb.config.Settings(anonymized_telemetry=False)
    if settings.chroma_url:
        url = httpx.URL(settings.chroma_url)
        ssl = url.scheme == "https"
        port = url.port or (443 if ssl else 8000)
        logger.info("chromadb_http_client", host=url.host, port=port, ssl=ssl)
        return chromadb.HttpClient(
            host=url.host, port=port, ssl=ssl, settings=client_settings
        )
    logger.info("chromadb_persistent_client", path=settings.chromadb_persist_dir)
    return chromadb.PersistentClient(
        path=settings.chromadb_persist_dir, settings=client_settings
    )


class ChromaDBProvider(IVectorStoreProvider):
    """Per-document vector store backed by ChromaDB.

    Parameters
    ----------
    settings:
        Connection and cache-size settings; defaults to ``Settings()``.
    client:
        A ready ChromaDB client.  When omitted one is built from
        *settings* via :func:`build_chroma_client`.
    """

    def __init__(self, settings: Settings | None = None, client: Any | None = None) -> None:
        self._settings = settings or Settings()
        self._client = client if client is not None else build_chroma_client(self._settings)
        self._collections = CollectionHandleCache(max_size=self._settings.collection_cache_size)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def store_chunks(
        self,
        document_id: str,
        chunks: list[TextChunk],
        embeddings: list[list[float]],
        collection_name: str | None = None,
    ) -> StorageResult:
        """Upsert *chunks* and *embeddings* into the document's collection.

        Records are written in batches of 500.  Upserting means a re-run
        of the same document replaces records with matching chunk indexes.
        """
        if len(chunks) != len(embeddings):
            raise InvariantViolation(
                message=(
                    f"chunks and embeddings length mismatch: "
                    f"{len(chunks)} != {len(embeddings)}"
                ),
                provider_name=_PROVIDER_NAME,
            )

        name = collection_name or collection_name_for(document_id)
        dimensions = len(embeddings[0]) if embeddings else 0

        try:
            collection = await asyncio.to_thread(
                self._collections.get_or_open, name, self._open_or_create
            )
            for start in range(0, len(chunks), _UPSERT_BATCH_SIZE):
                batch = chunks[start : start + _UPSERT_BATCH_SIZE]
                await asyncio.to_thread(
                    collection.upsert,
                    ids=[chunk_record_id(document_id, c.index) for c in batch],
                    embeddings=embeddings[start : start + _UPSERT_BATCH_SIZE],
                    documents=[c.content for c in batch],
                    metadatas=[self._chunk_to_metadata(document_id, c) for c in batch],
                )
        except Exception as exc:
            raise ProviderCallError(
                message=f"ChromaDB store_chunks failed for '{name}': {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.info(
            "chromadb_chunks_stored",
            collection=name,
            stored_count=len(chunks),
            dimensions=dimensions,
        )
        return StorageResult(
            collection_name=name, stored_count=len(chunks), dimensions=dimensions
        )

    async def search_similar(
        self,
        document_id: str,
        query_embedding: list[float],
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Return the closest chunks of one document, best first."""
        options = options or SearchOptions()
        name = collection_name_for(document_id)
        try:
            collection = await asyncio.to_thread(self._open_existing, name)
            if collection is None:
                return []
            return await asyncio.to_thread(
                self._query_collection, collection, query_embedding, options
            )
        except _NOT_FOUND_ERRORS:
            # Cached handle for a collection deleted behind our back.
            self._collections.evict(name)
            return []
        except Exception as exc:
            raise ProviderCallError(
                message=f"ChromaDB search failed for '{name}': {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

    async def search_global(
        self,
        query_embedding: list[float],
        options: SearchOptions | None = None,
    ) -> dict[str, list[SearchResult]]:
        """Search every collection; only collections with hits are returned.

        Collections that disappear between listing and querying are skipped.
        """
        options = options or SearchOptions()
        results: dict[str, list[SearchResult]] = {}
        for name in await self.list_collections():
            try:
                collection = await asyncio.to_thread(self._open_existing, name)
                if collection is None:
                    continue
                hits = await asyncio.to_thread(
                    self._query_collection, collection, query_embedding, options
                )
            except _NOT_FOUND_ERRORS:
                self._collections.evict(name)
                continue
            except Exception as exc:
                raise ProviderCallError(
                    message=f"ChromaDB global search failed on '{name}': {exc}",
                    provider_name=_PROVIDER_NAME,
                ) from exc
            if hits:
                results[name] = hits

        logger.info(
            "chromadb_global_search",
            collections_with_hits=len(results),
            top_k=options.top_k,
            min_score=options.min_score,
        )
        return results

    async def delete_collection(self, document_id: str) -> bool:
        """Drop the document's collection; ``False`` if it did not exist."""
        name = collection_name_for(document_id)
        self._collections.evict(name)
        try:
            await asyncio.to_thread(self._client.delete_collection, name)
        except _NOT_FOUND_ERRORS:
            logger.info("chromadb_delete_missing_collection", collection=name)
            return False
        except Exception as exc:
            raise ProviderCallError(
                message=f"ChromaDB delete failed for '{name}': {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info("chromadb_collection_deleted", collection=name)
        return True

    async def get_collection_stats(self, document_id: str) -> CollectionStats:
        """Report the collection's record count.

        Any backend failure is logged and reported as a missing collection.
        """
        name = collection_name_for(document_id)
        try:
            collection = await asyncio.to_thread(self._open_existing, name)
            if collection is None:
                return CollectionStats(name=name, count=0, exists=False)
            count = await asyncio.to_thread(collection.count)
        except _NOT_FOUND_ERRORS:
            self._collections.evict(name)
            return CollectionStats(name=name, count=0, exists=False)
        except Exception as exc:
            logger.warning("chromadb_stats_failed", collection=name, error=str(exc))
            return CollectionStats(name=name, count=0, exists=False)
        return CollectionStats(name=name, count=count, exists=True)

    async def list_collections(self) -> list[str]:
        try:
            collections = await asyncio.to_thread(self._client.list_collections)
        except Exception as exc:
            raise ProviderCallError(
                message=f"ChromaDB list_collections failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        # Depending on the client version these are names or Collection objects.
        return [c if isinstance(c, str) else c.name for c in collections]

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._client.heartbeat)
            return True
        except Exception as exc:
            logger.warning("chromadb_health_check_failed", error=str(exc))
            return False

    async def close(self) -> None:
        self._collections.clear()
        logger.debug("chromadb_provider_closed")

    # ------------------------------------------------------------------
    # Private helpers (run in worker threads)
    # ------------------------------------------------------------------

    def _open_or_create(self, name: str) -> Any:
        return self._client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )

    def _open_existing(self, name: str) -> Any | None:
        """Return a handle for *name*, or ``None`` if it does not exist."""
        cached = self._collections.get(name)
        if cached is not None:
            return cached
        try:
            collection = self._client.get_collection(name=name, embedding_function=None)
        except _NOT_FOUND_ERRORS:
            return None
        self._collections.put(name, collection)
        return collection

    @staticmethod
    def _query_collection(
        collection: Any,
        query_embedding: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        count = collection.count()
        n_results = min(options.top_k, count)
        if n_results <= 0:
            return []

        raw = collection.query(
            query_embeddings=[query_embedding],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )
        documents = raw["documents"][0] if raw.get("documents") else []
        metadatas = raw["metadatas"][0] if raw.get("metadatas") else []
        distances = raw["distances"][0] if raw.get("distances") else []

        results: list[SearchResult] = []
        for content, meta, distance in zip(documents, metadatas, distances):
            distance = max(0.0, float(distance))
            score = 1.0 / (1.0 + distance)
            if score < options.min_score:
                continue
            results.append(
                SearchResult(
                    chunk=ChromaDBProvider._metadata_to_chunk(content or "", meta or {}),
                    score=score,
                    distance=distance,
                )
            )
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    @staticmethod
    def _chunk_to_metadata(document_id: str, chunk: TextChunk) -> dict[str, Any]:
        return {
            "document_id": document_id,
            "chunk_index": chunk.index,
            "start_char": chunk.metadata.start_char,
            "end_char": chunk.metadata.end_char,
            "length": chunk.metadata.length,
        }

    @staticmethod
    def _metadata_to_chunk(content: str, meta: dict[str, Any]) -> TextChunk:
        return TextChunk(
            content=content,
            index=int(meta.get("chunk_index", 0)),
            metadata=ChunkMetadata(
                start_char=int(meta.get("start_char", 0)),
                end_char=int(meta.get("end_char", 0)),
                length=int(meta.get("length", len(content))),
            ),
        )
