"""Unit tests for settings and the YAML configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import DEFAULT_PROVIDER_PRIORITY, _deep_merge, load_config
from src.config.settings import Settings
from src.utils.errors import ConfigurationError


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only, ignoring any local .env file."""
    return Settings(_env_file=None)


class TestLoadConfig:
    def test_repo_config_loads(self, project_root: Path, settings: Settings) -> None:
        config = load_config(str(project_root / "config" / "config.yaml"), settings)

        assert config["ocr"]["provider_priority"] == ["tesseract", "google_vision", "azure", "opencv"]
        assert "image/png" in config["api"]["allowed_content_types"]

    def test_missing_file_uses_defaults(self, tmp_path: Path, settings: Settings) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings)

        assert config["ocr"]["provider_priority"] == DEFAULT_PROVIDER_PRIORITY
        assert config["ocr"]["confidence_threshold"] == pytest.approx(0.3)

    def test_custom_priority(self, tmp_path: Path, settings: Settings) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("ocr:\n  provider_priority: [azure, tesseract]\n")

        config = load_config(str(path), settings)
        assert config["ocr"]["provider_priority"] == ["azure", "tesseract"]

    def test_unknown_provider_rejected(self, tmp_path: Path, settings: Settings) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("ocr:\n  provider_priority: [tesseract, paddle]\n")

        with pytest.raises(ConfigurationError, match="paddle"):
            load_config(str(path), settings)

    def test_invalid_yaml_rejected(self, tmp_path: Path, settings: Settings) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("ocr: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path), settings)

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("ocr:\n  confidence_threshold: 0.9\n")
        monkeypatch.setenv("OCR_CONFIDENCE_THRESHOLD", "0.45")
        monkeypatch.setenv("AZURE_VISION_ENABLED", "false")

        config = load_config(str(path), Settings(_env_file=None))

        assert config["ocr"]["confidence_threshold"] == pytest.approx(0.45)
        assert config["ocr"]["enabled"]["azure"] is False


class TestDeepMerge:
    def test_nested_merge(self) -> None:
        base = {"ocr": {"provider_priority": ["tesseract"], "x": 1}}
        _deep_merge(base, {"ocr": {"x": 2}, "logging": {"level": "DEBUG"}})

        assert base == {
            "ocr": {"provider_priority": ["tesseract"], "x": 2},
            "logging": {"level": "DEBUG"},
        }


class TestSettings:
    def test_defaults(self, settings: Settings) -> None:
        assert settings.ocr_max_attempts is None
        assert settings.max_upload_bytes == 10 * 1024 * 1024
        assert settings.get_enabled_provider_flags() == {
            "tesseract": True,
            "google_vision": True,
            "azure": True,
            "opencv": True,
        }

    def test_threshold_bounds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_CONFIDENCE_THRESHOLD", "1.5")
        with pytest.raises(ValueError):
            Settings(_env_file=None)
