"""RAG data models: chunks, embeddings, storage and search results.

Pydantic v2 models for everything that flows between the chunker, the
embedding service and the vector store.  All models use frozen config:
chunks and vectors are produced fresh per ingestion job and never mutated
once created.

Data flow::

    raw text -> TextChunker -> ChunkingResult.chunks
             -> EmbeddingService -> EmbeddingResult.embeddings
             -> vector store (one collection per document)
    query    -> EmbeddingService (single vector) -> list[SearchResult]
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChunkingStrategy(str, Enum):  # noqa: UP042 (StrEnum needs 3.11)
    """Segmentation strategies selectable per ingestion job."""

    STANDARD = "standard"  # recursive separator splitting
    CHAPTERS = "chapters"  # one chunk per detected chapter heading
    FIXED = "fixed"  # fixed-size sliding window


class EmbeddingProviderName(str, Enum):  # noqa: UP042
    """Closed set of embedding backends.

    Default selection order is OPENAI, then HUGGINGFACE, then LOCAL,
    depending on which credentials are configured.
    """

    OPENAI = "openai"
    HUGGINGFACE = "huggingface"
    LOCAL = "local"


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Position of a chunk in its source text (half-open ``[start, end)``)."""

    model_config = ConfigDict(frozen=True)

    start_char: int = Field(ge=0, description="Offset of the first character.")
    end_char: int = Field(ge=0, description="Offset one past the last character.")
    length: int = Field(ge=0, description="Length of the chunk content.")


class TextChunk(BaseModel):
    """A bounded contiguous slice of a document, the unit of retrieval."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="The chunk's textual content.")
    index: int = Field(ge=0, description="0-based position in the chunk sequence.")
    metadata: ChunkMetadata


class ChunkingResult(BaseModel):
    """Ordered chunks plus aggregate size statistics."""

    model_config = ConfigDict(frozen=True)

    chunks: list[TextChunk] = Field(default_factory=list)
    total_chunks: int = Field(default=0, ge=0)
    total_characters: int = Field(default=0, ge=0)
    # Rounded mean chunk length; 0 when there are no chunks.
    average_chunk_size: int = Field(default=0, ge=0)

    @classmethod
    def from_chunks(cls, chunks: list[TextChunk]) -> ChunkingResult:
        """Build a result, computing the aggregates from *chunks*."""
        total_characters = sum(c.metadata.length for c in chunks)
        average = round(total_characters / len(chunks)) if chunks else 0
        return cls(
            chunks=chunks,
            total_chunks=len(chunks),
            total_characters=total_characters,
            average_chunk_size=average,
        )


class ChunkingOptions(BaseModel):
    """Per-job chunking configuration.

    Unset sizes fall back to the strategy's defaults: 1000/200 for
    ``standard`` and 1000/0 for ``fixed``.  ``chapters`` ignores sizes
    unless it falls back to standard chunking.
    """

    model_config = ConfigDict(frozen=True)

    strategy: ChunkingStrategy = ChunkingStrategy.STANDARD
    chunk_size: int | None = Field(default=None, gt=0)
    chunk_overlap: int | None = Field(default=None, ge=0)
    separators: list[str] | None = None
    chapter_pattern: str | None = Field(
        default=None,
        description="Regex overriding the default chapter heading pattern.",
    )
    preprocess: bool = Field(
        default=False,
        description="Normalize whitespace with TextChunker.preprocess_text first.",
    )


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------
class EmbeddingOptions(BaseModel):
    """Per-call embedding configuration; empty means default selection."""

    model_config = ConfigDict(frozen=True)

    provider: EmbeddingProviderName | None = None
    model: str | None = None


class EmbeddingResult(BaseModel):
    """Vectors positionally aligned with the chunks that produced them."""

    model_config = ConfigDict(frozen=True)

    embeddings: list[list[float]] = Field(default_factory=list)
    dimensions: int = Field(default=0, ge=0, description="Length of every vector.")
    provider: EmbeddingProviderName
    model: str
    processing_time: float = Field(
        default=0.0, ge=0.0, description="Wall-clock seconds for the backend call."
    )


# ---------------------------------------------------------------------------
# Vector store
# ---------------------------------------------------------------------------
class StorageResult(BaseModel):
    """Outcome of persisting one document's chunks."""

    model_config = ConfigDict(frozen=True)

    collection_name: str
    stored_count: int = Field(default=0, ge=0)
    dimensions: int = Field(default=0, ge=0)


class SearchOptions(BaseModel):
    """Retrieval bounds: result count and similarity floor."""

    model_config = ConfigDict(frozen=True)

    top_k: int = Field(default=5, ge=1)
    min_score: float = Field(default=0.0, ge=0.0, le=1.0)


class SearchResult(BaseModel):
    """A stored chunk matched by a similarity query.

    ``score = 1 / (1 + distance)`` where ``distance`` is the backend's
    cosine distance, so identical vectors score 1.0.
    """

    model_config = ConfigDict(frozen=True)

    chunk: TextChunk
    score: float = Field(gt=0.0, le=1.0)
    distance: float = Field(ge=0.0)


class CollectionStats(BaseModel):
    """Existence and size of a document's collection."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int = Field(default=0, ge=0)
    exists: bool = False
