"""Embedding provider selection and construction.

Default selection follows credential availability: OpenAI when an API
key is set, otherwise HuggingFace when a token is set, otherwise the
local sentence-transformers model.
"""

from __future__ import annotations

import structlog

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.models.rag import EmbeddingProviderName
from docrag.providers.embedding.huggingface_embedding_provider import (
    HuggingFaceEmbeddingProvider,
)
from docrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docrag.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)
from docrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def select_default_provider(settings: Settings) -> EmbeddingProviderName:
    """Pick the first backend whose credentials are configured."""
    if settings.openai_api_key:
        return EmbeddingProviderName.OPENAI
    if settings.huggingface_api_key:
        return EmbeddingProviderName.HUGGINGFACE
    return EmbeddingProviderName.LOCAL


def is_provider_available(name: EmbeddingProviderName | str, settings: Settings) -> bool:
    """Return ``True`` if *name* has the credentials it needs.

    The local backend needs none and is always reported available.
    Unknown names are reported unavailable.
    """
    try:
        provider = EmbeddingProviderName(name)
    except ValueError:
        return False
    if provider is EmbeddingProviderName.OPENAI:
        return bool(settings.openai_api_key)
    if provider is EmbeddingProviderName.HUGGINGFACE:
        return bool(settings.huggingface_api_key)
    return True


def build_embedding_provider(
    name: EmbeddingProviderName | str,
    settings: Settings,
    model: str | None = None,
) -> IEmbeddingProvider:
    """Construct the provider for *name*.

    Raises
    ------
    ConfigurationError
        If *name* is unknown or its credential is missing.  Raised before
        any client is created.
    """
    try:
        provider = EmbeddingProviderName(name)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown embedding provider: {name!r}") from exc

    if not is_provider_available(provider, settings):
        raise ConfigurationError(
            message=f"No credential configured for embedding provider '{provider.value}'",
            provider_name=provider.value,
        )

    if provider is EmbeddingProviderName.OPENAI:
        instance: IEmbeddingProvider = OpenAIEmbeddingProvider(settings, model=model)
    elif provider is EmbeddingProviderName.HUGGINGFACE:
        instance = HuggingFaceEmbeddingProvider(settings, model=model)
    else:
        instance = SentenceTransformerEmbeddingProvider(
            model_name=model or settings.local_embedding_model
        )

    logger.info("embedding_provider_built", provider=provider.value, model=instance.model)
    return instance
