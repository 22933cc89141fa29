"""Vector store provider implementations."""

from docrag.providers.vector_store.chromadb_provider import (
    ChromaDBProvider,
    build_chroma_client,
    collection_name_for,
)
from docrag.providers.vector_store.collection_cache import CollectionHandleCache

__all__ = [
    "ChromaDBProvider",
    "CollectionHandleCache",
    "build_chroma_client",
    "collection_name_for",
]
