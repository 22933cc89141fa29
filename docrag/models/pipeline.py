"""Ingestion job and orchestrator result models.

An :class:`IngestionJob` is owned by the external job queue and consumed
once by :meth:`~docrag.pipeline.orchestrator.RAGPipeline.process_ingestion_job`,
which always answers with an :class:`IngestionResult`.  The search, delete
and stats operations likewise answer with plain result objects tagged by
``success`` so the queue and HTTP layers never see a raw exception.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from docrag.models.rag import ChunkingOptions, EmbeddingOptions


class IngestionPhase(str, Enum):  # noqa: UP042 (StrEnum needs 3.11)
    """States of one ingestion job.

    QUEUED -> CHUNKING -> EMBEDDING -> STORING -> DONE, with FAILED
    reachable from any in-progress state.
    """

    QUEUED = "QUEUED"
    CHUNKING = "CHUNKING"
    EMBEDDING = "EMBEDDING"
    STORING = "STORING"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def checkpoint(self) -> int:
        """Progress percentage reported when the phase is entered."""
        return _PHASE_CHECKPOINTS.get(self, 0)


_PHASE_CHECKPOINTS: dict[IngestionPhase, int] = {
    IngestionPhase.QUEUED: 0,
    IngestionPhase.CHUNKING: 10,
    IngestionPhase.EMBEDDING: 40,
    IngestionPhase.STORING: 70,
    IngestionPhase.DONE: 100,
}


class JobPriority(str, Enum):  # noqa: UP042
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class IngestionJob(BaseModel):
    """One unit of work turning extracted text into a populated collection."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(min_length=1)
    extracted_text: str = Field(description="Plain text supplied by the extraction service.")
    chunking_options: ChunkingOptions = Field(default_factory=ChunkingOptions)
    embedding_options: EmbeddingOptions = Field(default_factory=EmbeddingOptions)
    priority: JobPriority = JobPriority.NORMAL
    user_id: str = ""


class IngestionResult(BaseModel):
    """Outcome of one ingestion job; counts are zero when ``success`` is False."""

    model_config = ConfigDict(frozen=True)

    success: bool
    document_id: str
    chunks_count: int = Field(default=0, ge=0)
    embedding_dimensions: int = Field(default=0, ge=0)
    collection_name: str = ""
    processing_time: float = Field(default=0.0, ge=0.0, description="Elapsed seconds.")
    error: str | None = None


# ---------------------------------------------------------------------------
# Non-throwing response wrappers for the search / admin operations
# ---------------------------------------------------------------------------
class SearchHit(BaseModel):
    """Client-facing view of one search result."""

    model_config = ConfigDict(frozen=True)

    content: str
    score: float
    chunk_index: int


class DocumentSearchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    results: list[SearchHit] = Field(default_factory=list)
    error: str | None = None


class GlobalSearchResponse(BaseModel):
    """Search across every document; keys are collection names."""

    model_config = ConfigDict(frozen=True)

    success: bool
    results: dict[str, list[SearchHit]] = Field(default_factory=dict)
    error: str | None = None


class DeleteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    # False when there was no collection to delete.
    deleted: bool = False
    error: str | None = None


class DocumentStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection_name: str
    chunks_count: int = Field(default=0, ge=0)
    exists: bool = False


class DocumentStatsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    stats: DocumentStats | None = None
    error: str | None = None
