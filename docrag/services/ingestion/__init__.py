"""Text segmentation for document ingestion."""

from docrag.services.ingestion.chunker import TextChunker

__all__ = ["TextChunker"]
