"""
Runtime settings from the environment (.env supported). Read once and reused.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    api_timeout: float = 10.0
    match_threshold: float = 0.6
    default_min_stock: float = 5
    log_level: str = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def load_settings() -> Settings:
    """Build settings from the current environment."""
    threshold = _env_float("MATCH_THRESHOLD", 0.6)
    if not 0.0 <= threshold <= 1.0:
        logger.warning(f"MATCH_THRESHOLD must be between 0 and 1, got {threshold}; using 0.6")
        threshold = 0.6
    return Settings(
        api_url=(os.getenv("STOCK_API_URL") or "").rstrip("/") or None,
        api_token=os.getenv("STOCK_API_TOKEN") or None,
        api_timeout=_env_float("STOCK_API_TIMEOUT", 10.0),
        match_threshold=threshold,
        default_min_stock=_env_float("DEFAULT_MIN_STOCK", 5),
        log_level=(os.getenv("INTAKE_LOG_LEVEL") or "INFO").upper(),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return shared settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests, or after changing the environment)."""
    global _settings
    _settings = None
