"""Embedding provider implementations.

Three implementations of IEmbeddingProvider, in default selection order:
    1. OpenAIEmbeddingProvider      -- text-embedding-3-small, needs an API key.
    2. HuggingFaceEmbeddingProvider -- hosted feature-extraction, needs a token.
    3. SentenceTransformerEmbeddingProvider -- local all-MiniLM-L6-v2, no key.
"""

from docrag.providers.embedding.factory import (
    build_embedding_provider,
    is_provider_available,
    select_default_provider,
)
from docrag.providers.embedding.huggingface_embedding_provider import (
    HuggingFaceEmbeddingProvider,
)
from docrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docrag.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "HuggingFaceEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "build_embedding_provider",
    "is_provider_available",
    "select_default_provider",
]
