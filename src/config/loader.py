"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  : static defaults checked into the repo
#   2. .env file           : local developer overrides (not committed)
#   3. Environment vars    : set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-based values on top:
#   base = {"ocr": {"provider_priority": [...]}}
#   overrides = {"ocr": {"confidence_threshold": 0.3}}
#   result = {"ocr": {"provider_priority": [...], "confidence_threshold": 0.3}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError

DEFAULT_PROVIDER_PRIORITY = ["tesseract", "google_vision", "azure", "opencv"]


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not an
            error; built-in defaults apply.
        settings: Settings instance to merge; read from the environment when
            omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: if the YAML cannot be parsed or names an
            unknown provider.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "ocr": {
            "confidence_threshold": settings.ocr_confidence_threshold,
            "per_attempt_timeout_ms": settings.ocr_per_attempt_timeout_ms,
            "max_attempts": settings.ocr_max_attempts,
            "batch_concurrency": settings.ocr_batch_concurrency,
            "normalize_noisy_case": settings.ocr_normalize_noisy_case,
            "enabled": settings.get_enabled_provider_flags(),
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)

    ocr = yaml_config["ocr"]
    priority = ocr.get("provider_priority") or list(DEFAULT_PROVIDER_PRIORITY)
    unknown = [name for name in priority if name not in DEFAULT_PROVIDER_PRIORITY]
    if unknown:
        raise ConfigurationError(f"Unknown OCR providers in provider_priority: {unknown}")
    ocr["provider_priority"] = priority
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
