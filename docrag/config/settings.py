"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  An empty
credential string means "not configured": the embedding provider selection
skips providers with empty keys and falls through to the next one.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docrag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    huggingface_api_key: str = ""
    huggingface_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    huggingface_inference_url: str = "https://router.huggingface.co/hf-inference/models"
    local_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_timeout: float = 60.0  # seconds, per backend HTTP call

    # === Vector store ===
    # Empty chroma_url = embedded PersistentClient at chromadb_persist_dir.
    chroma_url: str = ""
    chromadb_persist_dir: str = "./data/chromadb"
    collection_cache_size: int = 256

    # === Chunking defaults (standard strategy) ===
    chunk_size: int = 1000
    chunk_overlap: int = 200

    # === Search defaults used by the orchestrator ===
    rag_search_top_k: int = 5
    rag_search_min_score: float = 0.5

    # === Workers ===
    ingestion_concurrency: int = 2

    # === App config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_configured_embedding_providers(self) -> list[str]:
        """Return embedding provider names usable with the current credentials."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.huggingface_api_key:
            providers.append("huggingface")
        providers.append("local")
        return providers
