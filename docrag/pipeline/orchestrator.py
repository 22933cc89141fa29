"""Central orchestrator for document ingestion and retrieval.

:class:`RAGPipeline` is what a job-queue worker calls.  It wires the
chunker, the embedding service and the vector store into one ingestion
flow and exposes search, delete and stats operations on top of them.

Ingestion runs strictly in sequence for one job::

    QUEUED -> CHUNKING (10) -> EMBEDDING (40) -> STORING (70) -> DONE (100)

with FAILED reachable from any in-progress phase.  Each phase transition
is broadcast through the :class:`ProgressTracker` and, when given, the
job's own progress callback.

This is the only layer that turns exceptions into result objects: every
public method answers with a ``success``-tagged model and never raises,
so a single bad document can never crash the worker.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from docrag.models.pipeline import (
    DeleteResponse,
    DocumentSearchResponse,
    DocumentStats,
    DocumentStatsResponse,
    GlobalSearchResponse,
    IngestionJob,
    IngestionPhase,
    IngestionResult,
    SearchHit,
)
from docrag.models.rag import (
    ChunkingResult,
    ChunkingStrategy,
    EmbeddingOptions,
    EmbeddingProviderName,
    SearchOptions,
    SearchResult,
)
from docrag.pipeline.progress_tracker import ProgressTracker
from docrag.utils.concurrency import throttled_gather

if TYPE_CHECKING:
    from docrag.config.settings import Settings
    from docrag.interfaces.vector_store_provider import IVectorStoreProvider
    from docrag.services.embedding_service import EmbeddingService
    from docrag.services.ingestion.chunker import TextChunker

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[int], Awaitable[None] | None]

_PHASE_MESSAGES: dict[IngestionPhase, str] = {
    IngestionPhase.CHUNKING: "Chunking text",
    IngestionPhase.EMBEDDING: "Generating embeddings",
    IngestionPhase.STORING: "Storing vectors",
    IngestionPhase.DONE: "Ingestion complete",
}


class RAGPipeline:
    """Coordinates chunking, embedding and storage for document jobs.

    Parameters
    ----------
    chunker:
        Splits extracted text into chunks.
    embedding_service:
        Turns chunks and queries into vectors.
    vector_store:
        Persists and searches per-document collections.
    progress_tracker:
        Receives phase updates; a private tracker is created when omitted.
    settings:
        Supplies search defaults and the batch ingestion concurrency.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_service: EmbeddingService,
        vector_store: IVectorStoreProvider,
        progress_tracker: ProgressTracker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._progress_tracker = progress_tracker or ProgressTracker()
        self._default_top_k = settings.rag_search_top_k if settings else 5
        self._default_min_score = settings.rag_search_min_score if settings else 0.5
        self._default_concurrency = settings.ingestion_concurrency if settings else 2

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._progress_tracker

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def process_ingestion_job(
        self,
        job: IngestionJob,
        progress_callback: ProgressCallback | None = None,
    ) -> IngestionResult:
        """Chunk, embed and store one document.

        Parameters
        ----------
        job:
            The document id, its extracted text, and chunking/embedding
            options.
        progress_callback:
            Optional sync or async callable receiving the progress
            percentage at each checkpoint.  Its failures are logged and
            ignored.

        Returns
        -------
        IngestionResult
            ``success=True`` with counts on completion.  On any failure,
            ``success=False`` with zero counts and the error message.
        """
        started = time.perf_counter()
        document_id = job.document_id
        log = logger.bind(document_id=document_id, user_id=job.user_id or None)
        log.info(
            "ingestion_started",
            strategy=job.chunking_options.strategy.value,
            priority=job.priority.value,
            text_length=len(job.extracted_text),
        )

        try:
            await self._advance(document_id, IngestionPhase.CHUNKING, progress_callback)
            chunking = self._chunk(job)

            await self._advance(document_id, IngestionPhase.EMBEDDING, progress_callback)
            embedding = await self._embedding_service.generate_embeddings(
                chunking.chunks, job.embedding_options
            )

            await self._advance(document_id, IngestionPhase.STORING, progress_callback)
            storage = await self._vector_store.store_chunks(
                document_id, chunking.chunks, embedding.embeddings
            )

            await self._advance(document_id, IngestionPhase.DONE, progress_callback)
        except Exception as exc:
            elapsed = time.perf_counter() - started
            log.error(
                "ingestion_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                elapsed_s=round(elapsed, 3),
            )
            await self._progress_tracker.update(
                document_id, IngestionPhase.FAILED, IngestionPhase.FAILED.checkpoint, str(exc)
            )
            return IngestionResult(
                success=False,
                document_id=document_id,
                processing_time=elapsed,
                error=str(exc) or type(exc).__name__,
            )

        elapsed = time.perf_counter() - started
        log.info(
            "ingestion_complete",
            chunks=storage.stored_count,
            dimensions=embedding.dimensions,
            provider=embedding.provider.value,
            collection=storage.collection_name,
            elapsed_s=round(elapsed, 3),
        )
        return IngestionResult(
            success=True,
            document_id=document_id,
            chunks_count=storage.stored_count,
            embedding_dimensions=embedding.dimensions,
            collection_name=storage.collection_name,
            processing_time=elapsed,
        )

    async def process_ingestion_jobs(
        self,
        jobs: list[IngestionJob],
        concurrency: int | None = None,
    ) -> list[IngestionResult]:
        """Run independent jobs side by side; results follow input order."""
        limit = concurrency if concurrency is not None else self._default_concurrency
        outcomes = await throttled_gather(
            [self.process_ingestion_job(job) for job in jobs],
            concurrency=limit,
        )
        results: list[IngestionResult] = []
        for job, outcome in zip(jobs, outcomes):
            if isinstance(outcome, BaseException):
                # Only reachable on cancellation; process_ingestion_job never raises.
                results.append(
                    IngestionResult(
                        success=False, document_id=job.document_id, error=str(outcome)
                    )
                )
            else:
                results.append(outcome)
        return results

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def search_in_document(
        self,
        document_id: str,
        query: str,
        top_k: int | None = None,
        min_score: float | None = None,
        embedding_provider: EmbeddingProviderName | str | None = None,
        model: str | None = None,
    ) -> DocumentSearchResponse:
        """Return the chunks of one document most similar to *query*.

        The query must be embedded with the same provider and model the
        document was ingested with for scores to be meaningful.
        """
        try:
            options = self._search_options(top_k, min_score)
            query_vector = await self._embedding_service.generate_query_embedding(
                query, self._embedding_options(embedding_provider, model)
            )
            hits = await self._vector_store.search_similar(document_id, query_vector, options)
        except Exception as exc:
            logger.error("document_search_failed", document_id=document_id, error=str(exc))
            return DocumentSearchResponse(success=False, error=str(exc) or type(exc).__name__)

        logger.info("document_search_complete", document_id=document_id, hits=len(hits))
        return DocumentSearchResponse(success=True, results=[_to_hit(h) for h in hits])

    async def search_all_documents(
        self,
        query: str,
        top_k: int | None = None,
        min_score: float | None = None,
        embedding_provider: EmbeddingProviderName | str | None = None,
        model: str | None = None,
    ) -> GlobalSearchResponse:
        """Search every stored document; results are keyed by collection name."""
        try:
            options = self._search_options(top_k, min_score)
            query_vector = await self._embedding_service.generate_query_embedding(
                query, self._embedding_options(embedding_provider, model)
            )
            by_collection = await self._vector_store.search_global(query_vector, options)
        except Exception as exc:
            logger.error("global_search_failed", error=str(exc))
            return GlobalSearchResponse(success=False, error=str(exc) or type(exc).__name__)

        return GlobalSearchResponse(
            success=True,
            results={name: [_to_hit(h) for h in hits] for name, hits in by_collection.items()},
        )

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def delete_document_rag(self, document_id: str) -> DeleteResponse:
        try:
            deleted = await self._vector_store.delete_collection(document_id)
        except Exception as exc:
            logger.error("document_delete_failed", document_id=document_id, error=str(exc))
            return DeleteResponse(success=False, error=str(exc) or type(exc).__name__)
        self._progress_tracker.forget(document_id)
        return DeleteResponse(success=True, deleted=deleted)

    async def get_document_rag_stats(self, document_id: str) -> DocumentStatsResponse:
        try:
            stats = await self._vector_store.get_collection_stats(document_id)
        except Exception as exc:
            logger.error("document_stats_failed", document_id=document_id, error=str(exc))
            return DocumentStatsResponse(success=False, error=str(exc) or type(exc).__name__)
        return DocumentStatsResponse(
            success=True,
            stats=DocumentStats(
                collection_name=stats.name, chunks_count=stats.count, exists=stats.exists
            ),
        )

    async def close(self) -> None:
        """Release the store's cached collection handles."""
        try:
            await self._vector_store.close()
        except Exception as exc:
            logger.warning("pipeline_close_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _chunk(self, job: IngestionJob) -> ChunkingResult:
        opts = job.chunking_options
        text = job.extracted_text
        if opts.preprocess:
            text = self._chunker.preprocess_text(text)

        if opts.strategy is ChunkingStrategy.CHAPTERS:
            return self._chunker.chunk_by_chapters(
                text,
                pattern=opts.chapter_pattern,
                chunk_size=opts.chunk_size,
                chunk_overlap=opts.chunk_overlap,
            )
        if opts.strategy is ChunkingStrategy.FIXED:
            return self._chunker.chunk_by_fixed_size(
                text,
                size=opts.chunk_size if opts.chunk_size is not None else 1000,
                overlap=opts.chunk_overlap if opts.chunk_overlap is not None else 0,
            )
        return self._chunker.chunk_text(
            text,
            chunk_size=opts.chunk_size,
            chunk_overlap=opts.chunk_overlap,
            separators=opts.separators,
        )

    async def _advance(
        self,
        document_id: str,
        phase: IngestionPhase,
        progress_callback: ProgressCallback | None,
    ) -> None:
        progress = phase.checkpoint
        await self._progress_tracker.update(
            document_id, phase, progress, _PHASE_MESSAGES.get(phase, "")
        )
        if progress_callback is None:
            return
        try:
            result = progress_callback(progress)
            if asyncio.iscoroutine(result):
                await result
        except Exception as exc:
            logger.warning(
                "progress_callback_error",
                document_id=document_id,
                progress=progress,
                error=str(exc),
            )

    def _search_options(self, top_k: int | None, min_score: float | None) -> SearchOptions:
        return SearchOptions(
            top_k=self._default_top_k if top_k is None else top_k,
            min_score=self._default_min_score if min_score is None else min_score,
        )

    @staticmethod
    def _embedding_options(
        provider: EmbeddingProviderName | str | None, model: str | None
    ) -> EmbeddingOptions:
        return EmbeddingOptions(
            provider=EmbeddingProviderName(provider) if provider else None,
            model=model,
        )


def _to_hit(result: SearchResult) -> SearchHit:
    return SearchHit(
        content=result.chunk.content,
        score=result.score,
        chunk_index=result.chunk.index,
    )
