"""Settings loader wrapping the shared schema models."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .schema import (
    ConfigurationError,
    CurrencyConfig,
    Settings,
    StorageConfig,
    TierSettings,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
SETTINGS_FILE = CONFIG_DIRECTORY / "settings.yaml"

SETTINGS_ENV = "STOREFRONT_SETTINGS"
DATABASE_ENV = "STOREFRONT_DB"
WRITE_ATTEMPTS_ENV = "STOREFRONT_TIER_WRITE_ATTEMPTS"

logger = logging.getLogger(__name__)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must define a mapping at the top level")
    return data


def _parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        logger.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def resolve_settings_path() -> Path:
    """Return the settings file selected by the environment, if any."""

    override = os.getenv(SETTINGS_ENV)
    if override and override.strip():
        return Path(override.strip()).expanduser()
    return SETTINGS_FILE


@lru_cache(maxsize=4)
def load_settings_file(path: Path) -> Settings:
    """Load and cache the settings stored at ``path``."""

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    raw_settings = _load_yaml(path)

    try:
        return Settings.model_validate(raw_settings)
    except ValidationError as error:
        raise ConfigurationError(f"Settings validation failed: {error}") from error


def apply_environment_overrides(settings: Settings) -> Settings:
    """Layer environment variables over file-based ``settings``."""

    updates: dict[str, Any] = {}

    db_path = os.getenv(DATABASE_ENV)
    if db_path and db_path.strip():
        updates["storage"] = StorageConfig(
            backend="sqlite", path=str(Path(db_path.strip()).expanduser())
        )

    attempts = _parse_positive_int(os.getenv(WRITE_ATTEMPTS_ENV), env=WRITE_ATTEMPTS_ENV)
    if attempts is not None:
        updates["tiers"] = TierSettings(write_attempts=attempts)

    if not updates:
        return settings
    return settings.model_copy(update=updates)


def load_settings() -> Settings:
    """Return the effective settings for the running process."""

    return apply_environment_overrides(load_settings_file(resolve_settings_path()))


__all__ = [
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "CurrencyConfig",
    "DATABASE_ENV",
    "SETTINGS_ENV",
    "SETTINGS_FILE",
    "Settings",
    "StorageConfig",
    "TierSettings",
    "WRITE_ATTEMPTS_ENV",
    "apply_environment_overrides",
    "load_settings",
    "load_settings_file",
    "resolve_settings_path",
]
