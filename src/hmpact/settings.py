"""Runtime settings for the hmpact store.

Environment Variables:
    HMPACT_HOME: Per-user hmpact directory (default: ~/.hmpact)
    HMPACT_CACHE_DIR: Cache store root (default: per-OS cache directory)
    HMPACT_FETCH_TIMEOUT: Network fetch timeout in seconds (default: 30)

Values are read from the environment at call time so tests and callers can
override them without reloading the module.
"""
import os
import sys
from pathlib import Path

APP_NAME = "hmpact"

# Candidate manifest filenames, searched in order. Only the first is a
# supported format today.
MANIFEST_FILENAMES = ("hmpact.jsonc", "hmpact.json")
SUPPORTED_MANIFEST_EXTENSIONS = (".jsonc",)

USER_CONFIG_FILENAME = "configs.jsonc"

DEFAULT_FETCH_TIMEOUT = 30.0


def home_dir() -> Path:
    """Per-user hmpact directory."""
    override = os.environ.get("HMPACT_HOME")
    if override:
        return Path(override)
    return Path.home() / f".{APP_NAME}"


def platform_cache_dir(platform: str = sys.platform) -> Path:
    """Get the platform-specific cache directory.

    - Windows: %LOCALAPPDATA%\\hmpact\\cache
    - macOS: ~/Library/Caches/hmpact
    - Linux/Unix: $XDG_CACHE_HOME/hmpact or ~/.cache/hmpact
    """
    home = Path.home()

    if platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_NAME / "cache"
        return home / "AppData" / "Local" / APP_NAME / "cache"

    if platform == "darwin":
        return home / "Library" / "Caches" / APP_NAME

    xdg_cache_home = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache_home:
        return Path(xdg_cache_home) / APP_NAME
    return home / ".cache" / APP_NAME


def cache_dir() -> Path:
    """Cache store root, honouring HMPACT_CACHE_DIR."""
    override = os.environ.get("HMPACT_CACHE_DIR")
    if override:
        return Path(override)
    return platform_cache_dir()


def fetch_timeout() -> float:
    """Network fetch timeout in seconds."""
    raw = os.environ.get("HMPACT_FETCH_TIMEOUT")
    if not raw:
        return DEFAULT_FETCH_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_FETCH_TIMEOUT
