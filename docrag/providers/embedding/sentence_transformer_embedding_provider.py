"""Local sentence-transformers embedding provider adapter.

Runs a HuggingFace embedding model in-process with no API key.  The
model is loaded lazily on first use and inference runs in a worker
thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import threading

import structlog

from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.models.rag import EmbeddingProviderName
from docrag.utils.errors import ProviderCallError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
_BATCH_LIMIT = 64  # CPU-friendly batch size


class SentenceTransformerEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a local sentence-transformers model."""

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._model = None  # Lazy-loaded
        self._load_lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model_name

    def _load_model(self):
        """Load the model once; concurrent first calls share one load."""
        with self._load_lock:
            if self._model is not None:
                return self._model
            try:
                from sentence_transformers import SentenceTransformer

                logger.info("loading_sentence_transformer", model=self._model_name)
                self._model = SentenceTransformer(self._model_name)
                logger.info("sentence_transformer_loaded", model=self._model_name)
            except Exception as exc:
                raise ProviderCallError(
                    message=f"Failed to load sentence-transformers model '{self._model_name}': {exc}",
                    provider_name=self.get_provider_name().value,
                ) from exc
            return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._load_model()
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _BATCH_LIMIT):
            batch = texts[start : start + _BATCH_LIMIT]
            vectors = model.encode(
                batch,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
            all_embeddings.extend(vectors.tolist())
            logger.info(
                "sentence_transformer_embedding_batch",
                model=self._model_name,
                batch_size=len(batch),
            )
        return all_embeddings

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode, texts)
        except ProviderCallError:
            raise
        except Exception as exc:
            raise ProviderCallError(
                message=f"Sentence-transformers embedding error: {exc}",
                provider_name=self.get_provider_name().value,
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_provider_name(self) -> EmbeddingProviderName:
        return EmbeddingProviderName.LOCAL

    def is_available(self) -> bool:
        """Return ``True`` if sentence-transformers is installed."""
        try:
            import sentence_transformers  # noqa: F401

            return True
        except ImportError:
            return False
