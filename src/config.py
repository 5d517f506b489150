"""Centralized configuration for the novel illustrator.

This module provides:
- PROJECT_ROOT and SRC_DIR paths
- Environment variable access with get_env()
- Automatic .env loading
- Model names used for analysis, segmentation and illustration

Usage:
    from config import PROJECT_ROOT, get_env

    api_key = get_env("GEMINI_API_KEY")
    cache_dir = get_cache_dir()
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from exceptions import ConfigurationError

# Calculate paths once at import time
SRC_DIR = Path(__file__).parent.resolve()
PROJECT_ROOT = SRC_DIR.parent.resolve()

# Load .env from project root
_env_path = PROJECT_ROOT / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# Vision model for reference analysis, text model for segmentation/titles
VISION_MODEL = "gemini-2.5-flash"
TEXT_MODEL = "gemini-2.5-flash"
ILLUSTRATION_MODEL = "gemini-2.5-flash-image"

DEFAULT_SAVE_DEBOUNCE_SECONDS = 2.0


def get_env(key: str, default: Optional[str] = None) -> str:
    """Get environment variable value.

    Args:
        key: Environment variable name
        default: Default value if not set. If None and key not found, raises KeyError.

    Returns:
        Environment variable value or default

    Raises:
        KeyError: If key not found and no default provided
    """
    value = os.environ.get(key)
    if value is not None:
        return value
    if default is not None:
        return default
    raise KeyError(f"Environment variable '{key}' not set and no default provided")


def _require_env(key: str) -> str:
    try:
        return get_env(key)
    except KeyError as e:
        raise ConfigurationError(f"{key} is not set. Add it to .env or the environment.") from e


def get_gemini_api_key() -> str:
    """Get Gemini API key from environment."""
    return _require_env("GEMINI_API_KEY")


def get_supabase_url() -> str:
    """Get Supabase project URL."""
    return _require_env("SUPABASE_URL")


def get_supabase_key() -> str:
    """Get Supabase anon/service key."""
    return _require_env("SUPABASE_KEY")


def get_cache_dir() -> Path:
    """Get the directory holding cached scene images."""
    default = PROJECT_ROOT / ".cache" / "scene_images"
    return Path(get_env("ILLUSTRATOR_CACHE_DIR", default=str(default)))


def get_save_debounce_seconds() -> float:
    """Quiet period before a story is mirrored to the remote store."""
    raw = get_env("ILLUSTRATOR_SAVE_DEBOUNCE", default=str(DEFAULT_SAVE_DEBOUNCE_SECONDS))
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"ILLUSTRATOR_SAVE_DEBOUNCE must be a number, got '{raw}'") from e
