"""Shared pytest fixtures for the docrag test suite."""

from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path

import pytest
import structlog
from structlog._config import BoundLoggerLazyProxy

from docrag.config.settings import Settings
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.models.rag import EmbeddingProviderName

# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_structlog():
    """Undo any logging configuration a test performs (e.g. via ``main()``).

    ``configure_logging`` binds structlog to the current ``sys.stderr`` and
    caches loggers on first use; under ``capsys`` that stream is closed after
    the test, which would break logging in every later test.
    """
    was_configured = structlog.is_configured()
    saved_config = structlog.get_config()
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    if was_configured:
        structlog.configure(**saved_config)
    else:
        structlog.reset_defaults()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for name, module in list(sys.modules.items()):
        if not name.startswith("docrag") or module is None:
            continue
        for value in list(vars(module).values()):
            if isinstance(value, BoundLoggerLazyProxy):
                value.__dict__.pop("bind", None)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(tmp_path: Path | None = None, **overrides) -> Settings:
    """Settings with every credential blank so the environment cannot leak in."""
    values = {
        "openai_api_key": "",
        "openai_base_url": "",
        "huggingface_api_key": "",
        "chroma_url": "",
        "chromadb_persist_dir": str(tmp_path / "chroma") if tmp_path else "./data/chromadb",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


# ---------------------------------------------------------------------------
# Embedding fakes
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 16


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic unit vector derived from the SHA-256 of *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [b - 127.5 for b in raw[:dim]]
    magnitude = sum(v * v for v in values) ** 0.5
    return [v / magnitude for v in values]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider."""

    def __init__(
        self,
        name: EmbeddingProviderName = EmbeddingProviderName.LOCAL,
        model: str = "fake-model",
    ) -> None:
        self._name = name
        self._model = model
        self.calls: list[list[str]] = []

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_provider_name(self) -> EmbeddingProviderName:
        return self._name

    def is_available(self) -> bool:
        return True


class FakeProviderFactory:
    """Provider factory recording every build, for EmbeddingService tests."""

    def __init__(self, provider: IEmbeddingProvider | None = None) -> None:
        self.provider = provider
        self.built: list[tuple[EmbeddingProviderName, str | None]] = []

    def __call__(
        self, name: EmbeddingProviderName, settings: Settings, model: str | None = None
    ) -> IEmbeddingProvider:
        self.built.append((name, model))
        if self.provider is not None:
            return self.provider
        return FakeEmbeddingProvider(name=name, model=model or "fake-model")


@pytest.fixture
def fake_provider_factory() -> FakeProviderFactory:
    return FakeProviderFactory()


# ---------------------------------------------------------------------------
# Sample text
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_document_text() -> str:
    """Multi-paragraph prose with distinct sentences."""
    paragraphs = []
    for p in range(6):
        sentences = [
            f"Paragraph {p} sentence {s} describes item number {p * 10 + s} in detail."
            for s in range(5)
        ]
        paragraphs.append(" ".join(sentences))
    return "\n\n".join(paragraphs)
