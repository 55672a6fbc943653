"""Configuration module: exports Settings and the YAML config loader."""

from src.config.loader import DEFAULT_PROVIDER_PRIORITY, load_config
from src.config.settings import Settings

__all__ = ["DEFAULT_PROVIDER_PRIORITY", "Settings", "load_config"]
