"""Unit tests for the configuration module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from dfx_upgrade.config import DEFAULT_RELEASE_ROOT, Settings, get_settings


def _make_settings(**overrides) -> Settings:
    """Create a Settings instance isolated from any .env file."""
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    """Tests for default values."""

    def test_release_root_default(self):
        assert _make_settings().release_root == DEFAULT_RELEASE_ROOT == "https://sdk.dfinity.org"

    def test_timeouts_unbounded_by_default(self):
        settings = _make_settings()
        assert settings.manifest_timeout is None
        assert settings.download_timeout is None

    def test_install_path_and_version_unset(self):
        settings = _make_settings()
        assert settings.install_path is None
        assert settings.installed_version is None

    def test_logging_defaults(self):
        settings = _make_settings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"
        assert settings.is_json_logging is False


class TestEnvironment:
    """Tests for DFX_* environment variables."""

    def test_release_root_from_env(self, monkeypatch):
        monkeypatch.setenv("DFX_RELEASE_ROOT", "https://mirror.example.test")
        assert _make_settings().release_root == "https://mirror.example.test"

    def test_timeouts_from_env(self, monkeypatch):
        monkeypatch.setenv("DFX_MANIFEST_TIMEOUT", "5")
        monkeypatch.setenv("DFX_DOWNLOAD_TIMEOUT", "120.5")

        settings = _make_settings()

        assert settings.manifest_timeout == 5.0
        assert settings.download_timeout == 120.5

    def test_install_path_from_env(self, monkeypatch):
        monkeypatch.setenv("DFX_INSTALL_PATH", "/opt/dfx/bin/dfx")
        assert _make_settings().install_path == Path("/opt/dfx/bin/dfx")

    def test_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("dfx_log_format", "json")
        assert _make_settings().is_json_logging is True

    def test_unprefixed_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("RELEASE_ROOT", "https://ignored.example.test")
        assert _make_settings().release_root == DEFAULT_RELEASE_ROOT


class TestValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("value", [0, -1])
    def test_timeout_must_be_positive(self, value):
        with pytest.raises(ValidationError):
            _make_settings(manifest_timeout=value)

    def test_unknown_log_format_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(log_format="xml")


class TestGetSettings:
    """Tests for the cached accessor."""

    def test_returns_cached_instance(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_environment(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("DFX_LOG_LEVEL", "DEBUG")
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.log_level == "DEBUG"
