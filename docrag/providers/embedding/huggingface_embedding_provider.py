"""HuggingFace hosted-inference embedding provider adapter.

Calls the feature-extraction pipeline of the HuggingFace inference API
over ``httpx``.  Sentence-embedding models answer with one pooled vector
per input; plain encoder models answer with one vector per token, which
is mean-pooled here so every input still maps to a single vector.
"""

from __future__ import annotations

import httpx
import structlog

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.models.rag import EmbeddingProviderName
from docrag.utils.errors import ConfigurationError, ProviderCallError

logger = structlog.get_logger(logger_name=__name__)

_HF_BATCH_LIMIT = 32


class HuggingFaceEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the HuggingFace inference API.

    Parameters
    ----------
    settings:
        Supplies the API token, default model, endpoint and timeout.
    model:
        Overrides ``huggingface_embedding_model``.
    http_client:
        Optional shared ``httpx.AsyncClient``; when omitted a short-lived
        client is opened per :meth:`embed` call.
    """

    def __init__(
        self,
        settings: Settings,
        model: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not settings.huggingface_api_key:
            raise ConfigurationError(
                message="HUGGINGFACE_API_KEY is not configured",
                provider_name=EmbeddingProviderName.HUGGINGFACE.value,
            )
        self._api_key = settings.huggingface_api_key
        self._model = model or settings.huggingface_embedding_model
        self._endpoint = (
            f"{settings.huggingface_inference_url.rstrip('/')}/{self._model}"
            "/pipeline/feature-extraction"
        )
        self._timeout = settings.embedding_timeout
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in batches of 32 per request."""
        if not texts:
            return []

        try:
            if self._http_client is not None:
                return await self._embed_batches(self._http_client, texts)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await self._embed_batches(client, texts)
        except httpx.HTTPError as exc:
            raise ProviderCallError(
                message=f"HuggingFace inference error: {exc}",
                provider_name=self.get_provider_name().value,
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_provider_name(self) -> EmbeddingProviderName:
        return EmbeddingProviderName.HUGGINGFACE

    def is_available(self) -> bool:
        """Return ``True`` if an API token is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed_batches(
        self, client: httpx.AsyncClient, texts: list[str]
    ) -> list[list[float]]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _HF_BATCH_LIMIT):
            batch = texts[start : start + _HF_BATCH_LIMIT]
            response = await client.post(
                self._endpoint,
                json={"inputs": batch, "options": {"wait_for_model": True}},
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            vectors = self._to_sentence_vectors(response.json(), expected=len(batch))
            all_embeddings.extend(vectors)
            logger.info(
                "huggingface_embedding_batch",
                model=self._model,
                batch_size=len(batch),
            )
        return all_embeddings

    def _to_sentence_vectors(self, payload: object, expected: int) -> list[list[float]]:
        """Normalize the feature-extraction payload to one vector per input."""
        if not isinstance(payload, list) or not payload:
            raise ProviderCallError(
                message=f"Unexpected feature-extraction payload: {type(payload).__name__}",
                provider_name=self.get_provider_name().value,
            )

        # A single input may come back as a bare vector.
        if isinstance(payload[0], (int, float)):
            payload = [payload]

        vectors: list[list[float]] = []
        for item in payload:
            if item and isinstance(item[0], list):
                vectors.append(_mean_pool(item))
            else:
                vectors.append([float(v) for v in item])

        if len(vectors) != expected:
            raise ProviderCallError(
                message=f"Expected {expected} embeddings, received {len(vectors)}",
                provider_name=self.get_provider_name().value,
            )
        return vectors


def _mean_pool(token_vectors: list[list[float]]) -> list[float]:
    width = len(token_vectors[0])
    count = len(token_vectors)
    return [sum(token[i] for token in token_vectors) / count for i in range(width)]
