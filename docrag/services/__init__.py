"""Chunking and embedding services used by the RAG pipeline."""

from docrag.services.embedding_service import EmbeddingService
from docrag.services.ingestion.chunker import TextChunker

__all__ = ["EmbeddingService", "TextChunker"]
