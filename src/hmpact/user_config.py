"""Per-user configuration (~/.hmpact/configs.jsonc)."""
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .codec import SchemaValidator, read_file
from .settings import USER_CONFIG_FILENAME, home_dir

logger = logging.getLogger(__name__)


class LanguageSettings(BaseModel):
    """Language pack selection."""
    default: str
    # pack name -> language code -> pack URL
    packs: dict[str, dict[str, str]]


class UserConfig(BaseModel):
    lang: LanguageSettings


def user_config_path() -> Path:
    return home_dir() / USER_CONFIG_FILENAME


def load_user_config(path: Optional[Path] = None) -> Optional[UserConfig]:
    """
    Load the user config.

    Returns None (after logging why) when the file is missing, malformed or
    invalid, so callers fall back to defaults.
    """
    path = Path(path) if path else user_config_path()
    result = read_file(path, SchemaValidator(UserConfig))

    if result.status == "not_found":
        logger.warning("User config file not found. Using default configuration.")
        return None
    if result.status == "validation_failed":
        logger.error(f"User config validation failed: {result.message}")
        return None
    if not result.ok:
        logger.error(f"Failed to load user config: {result.message}")
        return None

    logger.debug(f"User config loaded from {path}")
    return result.data
