"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables**, e.g. GOOGLE_VISION_API_KEY=AIza...
#      (highest priority, always wins)
#   2. **.env file**: key=value lines in the project root .env file
#      (used for local development)
#
# Field name `google_vision_api_key` maps to env var
# `GOOGLE_VISION_API_KEY` (pydantic-settings uppercases and matches).
#
# SECURITY: The .env file is in .gitignore and never committed.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """screentext application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Decision engine ===
    ocr_confidence_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    ocr_per_attempt_timeout_ms: int = Field(default=30_000, gt=0)
    # None = one attempt per enabled provider plus one.
    ocr_max_attempts: int | None = Field(default=None, ge=1)
    ocr_batch_concurrency: int = Field(default=4, ge=1)
    ocr_normalize_noisy_case: bool = True

    # === Local providers ===
    tesseract_enabled: bool = True
    tesseract_languages: str = "eng"
    opencv_enabled: bool = True

    # === Remote providers ===
    # Empty string = "not configured": the registry disables the provider.
    google_vision_enabled: bool = True
    google_vision_api_key: str = ""
    azure_vision_enabled: bool = True
    azure_vision_endpoint: str = ""
    azure_vision_key: str = ""
    azure_poll_interval_s: float = Field(default=1.0, ge=0.0)
    azure_max_polls: int = Field(default=10, ge=1)

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    max_upload_bytes: int = 10 * 1024 * 1024

    def get_enabled_provider_flags(self) -> dict[str, bool]:
        """Feature flag per provider key used in ``ocr.provider_priority``."""
        return {
            "tesseract": self.tesseract_enabled,
            "google_vision": self.google_vision_enabled,
            "azure": self.azure_vision_enabled,
            "opencv": self.opencv_enabled,
        }
