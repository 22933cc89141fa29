"""Utility modules for docrag.

- **errors** -- Domain exception hierarchy rooted at DocRAGError.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **concurrency** -- semaphore-bounded gather for running independent
  ingestion jobs side by side.
"""

from docrag.utils.concurrency import throttled_gather
from docrag.utils.errors import (
    ConfigurationError,
    DocRAGError,
    InvariantViolation,
    ProviderCallError,
)
from docrag.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DocRAGError",
    "InvariantViolation",
    "ProviderCallError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
