"""Pydantic v2 models shared across docrag."""

from docrag.models.pipeline import (
    DeleteResponse,
    DocumentSearchResponse,
    DocumentStats,
    DocumentStatsResponse,
    GlobalSearchResponse,
    IngestionJob,
    IngestionPhase,
    IngestionResult,
    JobPriority,
    SearchHit,
)
from docrag.models.rag import (
    ChunkingOptions,
    ChunkingResult,
    ChunkingStrategy,
    ChunkMetadata,
    CollectionStats,
    EmbeddingOptions,
    EmbeddingProviderName,
    EmbeddingResult,
    SearchOptions,
    SearchResult,
    StorageResult,
    TextChunk,
)

__all__ = [
    "ChunkMetadata",
    "ChunkingOptions",
    "ChunkingResult",
    "ChunkingStrategy",
    "CollectionStats",
    "DeleteResponse",
    "DocumentSearchResponse",
    "DocumentStats",
    "DocumentStatsResponse",
    "EmbeddingOptions",
    "EmbeddingProviderName",
    "EmbeddingResult",
    "GlobalSearchResponse",
    "IngestionJob",
    "IngestionPhase",
    "IngestionResult",
    "JobPriority",
    "SearchHit",
    "SearchOptions",
    "SearchResult",
    "StorageResult",
    "TextChunk",
]
