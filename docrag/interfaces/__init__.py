"""Abstract provider interfaces for docrag backends."""

from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = ["IEmbeddingProvider", "IVectorStoreProvider"]
