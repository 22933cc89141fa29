"""Configuration module: exports Settings and load_settings."""

from docrag.config.loader import load_settings
from docrag.config.settings import Settings

__all__ = ["Settings", "load_settings"]
