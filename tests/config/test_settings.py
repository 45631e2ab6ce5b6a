"""Tests for loading settings from YAML and the environment."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from storefront.backend.config import settings as settings_module
from storefront.backend.config.schema import ConfigurationError
from storefront.backend.config.settings import (
    SETTINGS_FILE,
    apply_environment_overrides,
    load_settings,
    load_settings_file,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STOREFRONT_SETTINGS", "STOREFRONT_DB", "STOREFRONT_TIER_WRITE_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)
    load_settings_file.cache_clear()


def write_settings(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_bundled_settings_load() -> None:
    settings = load_settings_file(SETTINGS_FILE)

    assert settings.currency_codes == ["EUR", "GBP", "USD", "XAF"]
    assert settings.currency("eur").minor_units == 2
    assert settings.currency("XAF").minor_units == 0
    assert settings.storage.backend == "memory"
    assert settings.tiers.write_attempts == 3


def test_unknown_currency_raises_key_error() -> None:
    with pytest.raises(KeyError):
        load_settings_file(SETTINGS_FILE).currency("JPY")


def test_settings_path_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = write_settings(tmp_path / "settings.yaml", "currencies:\n  CHF:\n    minor_units: 2\n")
    monkeypatch.setenv("STOREFRONT_SETTINGS", str(path))

    assert load_settings().currency_codes == ["CHF"]


def test_currency_entries_default_minor_units(tmp_path: Path) -> None:
    path = write_settings(tmp_path / "settings.yaml", "currencies:\n  EUR:\n")

    assert load_settings_file(path).currency("EUR").minor_units == 2


@pytest.mark.parametrize(
    "body",
    [
        "currencies: {}\n",
        "currencies:\n  EUR:\n    minor_units: 7\n",
        "currencies:\n  EUR: {}\nstorage:\n  backend: sqlite\n",
        "currencies:\n  EUR: {}\ntiers:\n  write_attempts: 0\n",
        "currencies:\n  EUR: {}\nunexpected: true\n",
        "- not\n- a mapping\n",
    ],
)
def test_invalid_settings_raise_configuration_error(tmp_path: Path, body: str) -> None:
    path = write_settings(tmp_path / "settings.yaml", body)

    with pytest.raises(ConfigurationError):
        load_settings_file(path)


def test_missing_file_is_reported(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings_file(tmp_path / "absent.yaml")


def test_database_override_switches_to_sqlite(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("STOREFRONT_DB", str(tmp_path / "store.db"))

    settings = apply_environment_overrides(load_settings_file(SETTINGS_FILE))

    assert settings.storage.backend == "sqlite"
    assert settings.storage.path == str(tmp_path / "store.db")


@pytest.mark.parametrize(("raw", "expected"), [("5", 5), ("zero", 3), ("-2", 3), ("", 3)])
def test_write_attempt_override(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    raw: str,
    expected: int,
) -> None:
    monkeypatch.setenv("STOREFRONT_TIER_WRITE_ATTEMPTS", raw)

    with caplog.at_level("WARNING", logger=settings_module.__name__):
        settings = apply_environment_overrides(load_settings_file(SETTINGS_FILE))

    assert settings.tiers.write_attempts == expected
    if raw in {"zero", "-2"}:
        assert "Ignoring" in caplog.text


def test_settings_are_immutable() -> None:
    settings = load_settings_file(SETTINGS_FILE)

    with pytest.raises(ValidationError):
        settings.tiers = None  # type: ignore[misc]
