"""Composition root: builds docrag components from :class:`Settings`.

Job-queue workers and the CLI both call :func:`build_pipeline`; the
narrower factories exist for callers that only need one component.
"""

from __future__ import annotations

import structlog

from docrag.config.settings import Settings
from docrag.interfaces.vector_store_provider import IVectorStoreProvider
from docrag.pipeline.orchestrator import RAGPipeline
from docrag.pipeline.progress_tracker import ProgressTracker
from docrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from docrag.services.embedding_service import EmbeddingService
from docrag.services.ingestion.chunker import TextChunker

logger = structlog.get_logger(logger_name=__name__)


def build_chunker(settings: Settings) -> TextChunker:
    return TextChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)


def build_embedding_service(settings: Settings) -> EmbeddingService:
    return EmbeddingService(settings)


def build_vector_store(settings: Settings) -> ChromaDBProvider:
    return ChromaDBProvider(settings=settings)


def build_pipeline(
    settings: Settings | None = None,
    vector_store: IVectorStoreProvider | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> RAGPipeline:
    """Construct a :class:`RAGPipeline` with every dependency injected.

    Parameters
    ----------
    settings:
        Application settings; read from the environment when omitted.
    vector_store:
        Reuse an existing store instead of opening a new client.
    progress_tracker:
        Share a tracker with other pipelines or listeners.
    """
    s = settings or Settings()
    pipeline = RAGPipeline(
        chunker=build_chunker(s),
        embedding_service=build_embedding_service(s),
        vector_store=vector_store or build_vector_store(s),
        progress_tracker=progress_tracker,
        settings=s,
    )
    logger.info(
        "pipeline_built",
        embedding_providers=s.get_configured_embedding_providers(),
        chroma=s.chroma_url or s.chromadb_persist_dir,
    )
    return pipeline
