"""Custom exception hierarchy for docrag.

All application exceptions inherit from :class:`DocRAGError`, which carries
an optional ``provider_name`` so error handlers can identify which backend
(e.g. "openai", "huggingface", "chromadb") caused the failure.

    DocRAGError  (base -- catch-all for any docrag error)
    +-- ConfigurationError   (missing credential / invalid chunking options)
    +-- ProviderCallError    (embedding or vector-store backend failure)
    +-- InvariantViolation   (misaligned chunks and embeddings)

The chunker, embedding service and vector store raise these; the pipeline
orchestrator is the only layer that turns them into result objects.
"""


class DocRAGError(Exception):
    """Base exception for all docrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets,
    e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(DocRAGError):
    """Raised when configuration is invalid or a provider credential is missing.

    Never retried: the same call fails the same way until configuration
    changes.
    """

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderCallError(DocRAGError):
    """Raised when an embedding or vector-store backend call fails.

    Wraps transport, auth, server and timeout failures with the root
    message.  Retrying is the caller's decision.
    """

    def __init__(
        self,
        message: str = "Backend call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvariantViolation(DocRAGError):
    """Raised when chunks and embeddings are not positionally aligned."""

    def __init__(
        self,
        message: str = "Internal invariant violated",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
