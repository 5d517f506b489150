"""Tests for centralized configuration module."""

import pytest
from pathlib import Path


@pytest.mark.unit
class TestProjectConfig:
    """Tests for project configuration."""

    def test_project_root_is_correct(self):
        """Should return the project root directory."""
        from config import PROJECT_ROOT

        assert (PROJECT_ROOT / "pyproject.toml").exists()
        assert (PROJECT_ROOT / "src").is_dir()

    def test_src_dir_is_correct(self):
        """Should return the src directory."""
        from config import SRC_DIR

        assert SRC_DIR.is_dir()
        assert (SRC_DIR / "api.py").exists()

    def test_get_env_returns_value(self, monkeypatch):
        """Should return environment variable value."""
        from config import get_env

        monkeypatch.setenv("TEST_CONFIG_VAR", "test_value")

        assert get_env("TEST_CONFIG_VAR") == "test_value"

    def test_get_env_returns_default(self):
        """Should return default when env var not set."""
        from config import get_env

        assert get_env("NONEXISTENT_VAR_12345", default="fallback") == "fallback"

    def test_get_env_raises_without_default(self):
        """Should raise KeyError when var not set and no default."""
        from config import get_env

        with pytest.raises(KeyError):
            get_env("NONEXISTENT_VAR_12345")


@pytest.mark.unit
class TestServiceSettings:
    """Tests for keys, cache directory and debounce settings."""

    def test_gemini_key_from_env(self, monkeypatch):
        from config import get_gemini_api_key

        monkeypatch.setenv("GEMINI_API_KEY", "abc")

        assert get_gemini_api_key() == "abc"

    def test_missing_gemini_key_raises_configuration_error(self, monkeypatch):
        from config import get_gemini_api_key
        from exceptions import ConfigurationError

        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            get_gemini_api_key()

    def test_missing_supabase_url_raises_configuration_error(self, monkeypatch):
        from config import get_supabase_url
        from exceptions import ConfigurationError

        monkeypatch.delenv("SUPABASE_URL", raising=False)

        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            get_supabase_url()

    def test_cache_dir_from_env(self, monkeypatch, tmp_path):
        from config import get_cache_dir

        monkeypatch.setenv("ILLUSTRATOR_CACHE_DIR", str(tmp_path / "images"))

        assert get_cache_dir() == tmp_path / "images"

    def test_cache_dir_default_under_project(self, monkeypatch):
        from config import PROJECT_ROOT, get_cache_dir

        monkeypatch.delenv("ILLUSTRATOR_CACHE_DIR", raising=False)

        assert get_cache_dir() == Path(PROJECT_ROOT / ".cache" / "scene_images")

    def test_debounce_default(self):
        from config import DEFAULT_SAVE_DEBOUNCE_SECONDS, get_save_debounce_seconds

        assert get_save_debounce_seconds() == DEFAULT_SAVE_DEBOUNCE_SECONDS

    def test_debounce_from_env(self, monkeypatch):
        from config import get_save_debounce_seconds

        monkeypatch.setenv("ILLUSTRATOR_SAVE_DEBOUNCE", "0.5")

        assert get_save_debounce_seconds() == 0.5

    def test_invalid_debounce_raises(self, monkeypatch):
        from config import get_save_debounce_seconds
        from exceptions import ConfigurationError

        monkeypatch.setenv("ILLUSTRATOR_SAVE_DEBOUNCE", "soon")

        with pytest.raises(ConfigurationError, match="must be a number"):
            get_save_debounce_seconds()
