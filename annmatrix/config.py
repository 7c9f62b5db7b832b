"""
annmatrix Configuration
=======================

Process-wide settings for the in-memory annotated matrix.

Settings are read from the `annmatrix:` block of a YAML file. The file is
taken from the explicit path argument, else from the ANNMATRIX_CONFIG
environment variable. Missing keys fall back to defaults.

Example config.yaml:
    annmatrix:
      index_column: index
      enforce_unique_labels: false
      log_level: INFO

Usage:
    from annmatrix.config import get_settings, configure_logging

    settings = get_settings()
    configure_logging()
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ANNMATRIX_CONFIG"
CONFIG_SECTION = "annmatrix"


@dataclass
class Settings:
    """Runtime settings."""
    index_column: str = "index"          # Column name of synthesized metadata tables
    enforce_unique_labels: bool = False  # Raise on duplicated row/column labels
    log_level: str = "WARNING"           # Level used by configure_logging()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return asdict(self)


def get_default_settings() -> Settings:
    """Settings with every field at its default."""
    return Settings()


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from YAML.

    Args:
        path: Config file. If None, ANNMATRIX_CONFIG is consulted.
              If neither is set, defaults are returned.

    Returns:
        Settings with file values overriding defaults
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return get_default_settings()

    config_file = Path(path)
    if not config_file.exists():
        logger.info(f"No config found at {config_file}, using defaults")
        return get_default_settings()

    with open(config_file) as f:
        raw = yaml.safe_load(f) or {}

    section = raw.get(CONFIG_SECTION, {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{CONFIG_SECTION}' block in {config_file} must be a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown setting(s) in {config_file}: {unknown} (available: {sorted(known)})")

    merged = {**get_default_settings().to_dict(), **section}
    merged['enforce_unique_labels'] = bool(merged['enforce_unique_labels'])
    return Settings(**merged)


# Global settings instance (lazy initialized)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or load the global settings."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Replace the global settings."""
    global _settings
    _settings = settings


def reset_settings():
    """Reset the global settings (for testing)."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging at `level` (defaults to settings.log_level)."""
    level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
