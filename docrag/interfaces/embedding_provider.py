"""Abstract base class for text-embedding backends.

Defines the contract for turning text into fixed-length vectors.
Implementations wrap the OpenAI embeddings API, the HuggingFace hosted
inference API, or a local sentence-transformers model.  The
:class:`~docrag.services.embedding_service.EmbeddingService` picks one per
call, so backends are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docrag.models.rag import EmbeddingProviderName


# Concrete implementations:
#   OpenAIEmbeddingProvider              -- text-embedding-3-small (API key)
#   HuggingFaceEmbeddingProvider         -- hosted feature-extraction (API token)
#   SentenceTransformerEmbeddingProvider -- all-MiniLM-L6-v2 on CPU, no key
# Located in: docrag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding backends used by the ingestion pipeline."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the backend."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more strings.  Implementations batch internally when the
            backend has a per-call limit.

        Returns
        -------
        list[list[float]]
            One vector per input, in input order, all of the same length.

        Raises
        ------
        docrag.utils.errors.ProviderCallError
            If the backend call fails or answers with misaligned output.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one string, typically a search query."""

    @abstractmethod
    def get_provider_name(self) -> EmbeddingProviderName:
        """Return which backend this provider talks to."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials or local dependencies are present.

        Must not make a network call or generate an embedding.
        """
