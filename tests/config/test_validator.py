"""Tests for the settings validator and tier grid audit."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from storefront.backend.app.models.tiers import ProfitGridTier, TierValues
from storefront.backend.app.services.tier_repository import SQLiteTierRepository
from storefront.backend.config.schema import Settings
from storefront.backend.config.settings import SETTINGS_FILE, load_settings_file
from storefront.backend.config.validator import audit_tier_grid, main, validate_settings

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_tier(tier_id: str, low: str, high: str, status: str = "active") -> ProfitGridTier:
    return ProfitGridTier(
        id=tier_id,
        min_amount=Decimal(low),
        max_amount=Decimal(high),
        gross_rate=Decimal("10"),
        deduction_rate=Decimal("2"),
        net_rate=Decimal("8"),
        status=status,  # type: ignore[arg-type]
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STOREFRONT_SETTINGS", "STOREFRONT_DB", "STOREFRONT_TIER_WRITE_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)
    load_settings_file.cache_clear()


def test_bundled_settings_are_valid() -> None:
    assert validate_settings(load_settings_file(SETTINGS_FILE)) == []


def test_validator_flags_malformed_and_duplicate_codes() -> None:
    settings = Settings.model_validate(
        {"currencies": {"eur": {}, "EUR": {}, "EURO": {"minor_units": 2}}}
    )

    errors = validate_settings(settings)

    assert any("'eur'" in error and "three uppercase" in error for error in errors)
    assert any("'EURO'" in error for error in errors)
    assert any("more than once" in error and "EUR" in error for error in errors)


def test_validator_flags_missing_database_directory(tmp_path: Path) -> None:
    settings = Settings.model_validate(
        {
            "currencies": {"EUR": {}},
            "storage": {"backend": "sqlite", "path": str(tmp_path / "nowhere" / "db.sqlite")},
        }
    )

    errors = validate_settings(settings)

    assert len(errors) == 1
    assert errors[0].startswith("storage:")


def test_audit_reports_overlaps_among_active_tiers() -> None:
    tiers = [
        make_tier("a", "0", "1000"),
        make_tier("b", "500", "1500"),
        make_tier("parked", "0", "5000", status="inactive"),
    ]

    errors = audit_tier_grid(tiers)

    assert len(errors) == 1
    assert "a [0, 1000)" in errors[0] and "b [500, 1500)" in errors[0]


def test_audit_reports_gaps() -> None:
    errors = audit_tier_grid([make_tier("a", "0", "100"), make_tier("b", "200", "300")])

    assert errors == ["tiers: amounts in [100, 200) are not covered by any active tier"]


def test_audit_accepts_contiguous_grid() -> None:
    assert audit_tier_grid([make_tier("b", "100", "200"), make_tier("a", "0", "100")]) == []


def test_cli_reports_ok_for_bundled_settings(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    assert "[settings] OK" in capsys.readouterr().out


def test_cli_fails_for_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--settings", str(tmp_path / "absent.yaml")]) == 1
    assert "failed to load" in capsys.readouterr().out


def test_cli_audits_sqlite_grid(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = tmp_path / "store.db"
    repository = SQLiteTierRepository(db_path)
    for revision, (low, high) in enumerate([("0", "100"), ("200", "300")]):
        repository.insert(
            TierValues(
                min_amount=Decimal(low),
                max_amount=Decimal(high),
                gross_rate=Decimal("5"),
                deduction_rate=Decimal("1"),
                net_rate=Decimal("4"),
                status="active",
            ),
            expected_revision=revision,
        )
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text(
        f"currencies:\n  EUR: {{}}\nstorage:\n  backend: sqlite\n  path: {db_path}\n",
        encoding="utf-8",
    )

    assert main(["--settings", str(settings_path), "--audit-tiers"]) == 1
    output = capsys.readouterr().out
    assert "[settings] OK" in output
    assert "[tiers] 1 issue(s) detected" in output
