"""Embedding generation with per-call backend selection.

:class:`EmbeddingService` turns chunks (or a search query) into vectors.
The backend is chosen per call from :class:`EmbeddingOptions`, falling back
to :func:`~docrag.providers.embedding.factory.select_default_provider`.
Built providers are memoized by ``(provider, model)`` so repeated jobs
reuse one HTTP client or one loaded local model.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.models.rag import (
    EmbeddingOptions,
    EmbeddingProviderName,
    EmbeddingResult,
    TextChunk,
)
from docrag.providers.embedding.factory import (
    build_embedding_provider,
    is_provider_available,
    select_default_provider,
)
from docrag.utils.errors import ConfigurationError, DocRAGError, ProviderCallError

logger = structlog.get_logger(logger_name=__name__)

ProviderFactory = Callable[[EmbeddingProviderName, Settings, str | None], IEmbeddingProvider]


class EmbeddingService:
    """Generates embeddings for chunks and queries.

    Parameters
    ----------
    settings:
        Credentials and default model names.
    provider_factory:
        Builds a provider from ``(name, settings, model)``; defaults to
        :func:`build_embedding_provider`.  Tests inject fakes here.
    """

    def __init__(
        self,
        settings: Settings,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self._settings = settings
        self._provider_factory = provider_factory or build_embedding_provider
        self._providers: dict[tuple[EmbeddingProviderName, str], IEmbeddingProvider] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_embeddings(
        self,
        chunks: list[TextChunk],
        options: EmbeddingOptions | None = None,
    ) -> EmbeddingResult:
        """Embed every chunk's content, preserving order.

        Returns
        -------
        EmbeddingResult
            ``embeddings[i]`` belongs to ``chunks[i]``.  An empty chunk list
            returns an empty result without contacting any backend, once
            the selected backend is known to be configured.

        Raises
        ------
        ConfigurationError
            If the selected backend has no credential.
        ProviderCallError
            If the backend fails or returns misaligned or ragged vectors.
        """
        options = options or EmbeddingOptions()
        provider_name = options.provider or select_default_provider(self._settings)
        model = options.model or self._default_model(provider_name)

        if not chunks:
            if not is_provider_available(provider_name, self._settings):
                raise ConfigurationError(
                    message=(
                        "No credential configured for embedding provider "
                        f"'{provider_name.value}'"
                    ),
                    provider_name=provider_name.value,
                )
            return EmbeddingResult(
                embeddings=[], dimensions=0, provider=provider_name, model=model
            )

        provider = self._get_provider(provider_name, model)
        started = time.perf_counter()
        vectors = await self._call(provider, [chunk.content for chunk in chunks])
        elapsed = time.perf_counter() - started

        dimensions = self._check_vectors(vectors, expected=len(chunks), provider=provider_name)
        logger.info(
            "embeddings_generated",
            provider=provider_name.value,
            model=model,
            count=len(vectors),
            dimensions=dimensions,
            elapsed_s=round(elapsed, 3),
        )
        return EmbeddingResult(
            embeddings=vectors,
            dimensions=dimensions,
            provider=provider_name,
            model=model,
            processing_time=elapsed,
        )

    async def generate_query_embedding(
        self,
        query: str,
        options: EmbeddingOptions | None = None,
    ) -> list[float]:
        """Embed a single search query with the same selection rules."""
        options = options or EmbeddingOptions()
        provider_name = options.provider or select_default_provider(self._settings)
        model = options.model or self._default_model(provider_name)
        provider = self._get_provider(provider_name, model)

        vectors = await self._call(provider, [query])
        self._check_vectors(vectors, expected=1, provider=provider_name)
        return vectors[0]

    def is_provider_available(self, name: EmbeddingProviderName | str) -> bool:
        """Return ``True`` if *name* is configured; never raises."""
        return is_provider_available(name, self._settings)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _default_model(self, provider: EmbeddingProviderName) -> str:
        if provider is EmbeddingProviderName.OPENAI:
            return self._settings.openai_embedding_model
        if provider is EmbeddingProviderName.HUGGINGFACE:
            return self._settings.huggingface_embedding_model
        return self._settings.local_embedding_model

    def _get_provider(self, name: EmbeddingProviderName, model: str) -> IEmbeddingProvider:
        key = (name, model)
        provider = self._providers.get(key)
        if provider is None:
            provider = self._provider_factory(name, self._settings, model)
            self._providers[key] = provider
        return provider

    @staticmethod
    async def _call(provider: IEmbeddingProvider, texts: list[str]) -> list[list[float]]:
        try:
            return await provider.embed(texts)
        except DocRAGError:
            raise
        except Exception as exc:
            raise ProviderCallError(
                message=f"Embedding call failed: {exc}",
                provider_name=provider.get_provider_name().value,
            ) from exc

    @staticmethod
    def _check_vectors(
        vectors: list[list[float]], expected: int, provider: EmbeddingProviderName
    ) -> int:
        """Return the shared vector length, or raise if output is unusable."""
        if len(vectors) != expected:
            raise ProviderCallError(
                message=f"Expected {expected} embeddings, received {len(vectors)}",
                provider_name=provider.value,
            )
        lengths = {len(v) for v in vectors}
        if len(lengths) != 1 or 0 in lengths:
            raise ProviderCallError(
                message=f"Embeddings have inconsistent dimensions: {sorted(lengths)}",
                provider_name=provider.value,
            )
        return lengths.pop()
