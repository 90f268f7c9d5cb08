"""Tests for runtime settings."""
from pathlib import Path

import pytest

from hmpact import settings


@pytest.fixture
def fake_home(tmp_path, monkeypatch):
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    for var in ("LOCALAPPDATA", "XDG_CACHE_HOME", "HMPACT_CACHE_DIR", "HMPACT_HOME"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


class TestCacheDir:
    """Tests for the per-OS cache directory."""

    def test_windows(self, fake_home, monkeypatch):
        monkeypatch.setenv("LOCALAPPDATA", str(fake_home / "Local"))
        assert settings.platform_cache_dir("win32") == fake_home / "Local" / "hmpact" / "cache"

    def test_windows_without_localappdata(self, fake_home):
        assert settings.platform_cache_dir("win32") == fake_home / "AppData" / "Local" / "hmpact" / "cache"

    def test_macos(self, fake_home):
        assert settings.platform_cache_dir("darwin") == fake_home / "Library" / "Caches" / "hmpact"

    def test_linux_xdg(self, fake_home, monkeypatch):
        monkeypatch.setenv("XDG_CACHE_HOME", str(fake_home / "xdg"))
        assert settings.platform_cache_dir("linux") == fake_home / "xdg" / "hmpact"

    def test_linux_default(self, fake_home):
        assert settings.platform_cache_dir("linux") == fake_home / ".cache" / "hmpact"

    def test_override(self, fake_home, monkeypatch):
        monkeypatch.setenv("HMPACT_CACHE_DIR", str(fake_home / "custom"))
        assert settings.cache_dir() == fake_home / "custom"


class TestHomeAndTimeout:
    """Tests for home_dir and fetch_timeout."""

    def test_home_default(self, fake_home):
        assert settings.home_dir() == fake_home / ".hmpact"

    def test_home_override(self, fake_home, monkeypatch):
        monkeypatch.setenv("HMPACT_HOME", str(fake_home / "h"))
        assert settings.home_dir() == fake_home / "h"

    def test_timeout_default(self, monkeypatch):
        monkeypatch.delenv("HMPACT_FETCH_TIMEOUT", raising=False)
        assert settings.fetch_timeout() == settings.DEFAULT_FETCH_TIMEOUT

    def test_timeout_env(self, monkeypatch):
        monkeypatch.setenv("HMPACT_FETCH_TIMEOUT", "5")
        assert settings.fetch_timeout() == 5.0

    def test_timeout_invalid(self, monkeypatch):
        monkeypatch.setenv("HMPACT_FETCH_TIMEOUT", "soon")
        assert settings.fetch_timeout() == settings.DEFAULT_FETCH_TIMEOUT
