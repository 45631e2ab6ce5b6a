"""Utilities for validating settings and stored tier grids and surfacing issues."""

from __future__ import annotations

import argparse
import re
from collections import Counter
from pathlib import Path
from typing import Sequence

from storefront.backend.app.models.tiers import ProfitGridTier
from storefront.backend.app.services.profit_grid.resolver import sort_tiers
from storefront.backend.app.services.profit_grid.utils import ranges_overlap
from storefront.backend.app.services.tier_repository import SQLiteTierRepository

from .schema import ConfigurationError, Settings, StorageConfig
from .settings import apply_environment_overrides, load_settings_file, resolve_settings_path

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_currencies(settings: Settings) -> list[str]:
    errors: list[str] = []

    for code, entry in settings.currencies.items():
        if not _CURRENCY_CODE.match(code):
            errors.append(
                _format_scope(
                    "currencies",
                    f"code '{code}' should be three uppercase letters (ISO 4217)",
                )
            )
        if entry.minor_units < 0 or entry.minor_units > 4:
            errors.append(
                _format_scope(
                    f"currencies.{code}",
                    f"minor units {entry.minor_units} must be between 0 and 4",
                )
            )

    duplicates = [
        code
        for code, count in Counter(code.upper() for code in settings.currencies).items()
        if count > 1
    ]
    if duplicates:
        errors.append(
            _format_scope(
                "currencies",
                f"codes declared more than once (ignoring case): {sorted(duplicates)}",
            )
        )

    return errors


def _validate_storage(storage: StorageConfig) -> list[str]:
    if storage.backend != "sqlite":
        return []
    if not storage.path:
        return [_format_scope("storage", "sqlite backend requires a path")]

    parent = Path(storage.path).expanduser().parent
    if not parent.is_dir():
        return [
            _format_scope("storage", f"database directory {parent} does not exist"),
        ]
    return []


def validate_settings(settings: Settings) -> list[str]:
    """Return a list of validation issues for the provided settings."""

    errors: list[str] = []
    errors.extend(_validate_currencies(settings))
    errors.extend(_validate_storage(settings.storage))
    return errors


def audit_tier_grid(tiers: Sequence[ProfitGridTier]) -> list[str]:
    """Report overlaps and gaps among the active tiers of a stored grid."""

    active = sort_tiers(tier for tier in tiers if tier.is_active)
    errors: list[str] = []

    for index, tier in enumerate(active):
        for other in active[index + 1 :]:
            if other.min_amount >= tier.max_amount:
                break
            if ranges_overlap(
                tier.min_amount, tier.max_amount, other.min_amount, other.max_amount
            ):
                errors.append(
                    _format_scope(
                        "tiers",
                        (
                            f"active tiers {tier.id} [{tier.min_amount}, {tier.max_amount}) "
                            f"and {other.id} [{other.min_amount}, {other.max_amount}) overlap"
                        ),
                    )
                )

    for previous, following in zip(active, active[1:]):
        if previous.max_amount < following.min_amount:
            errors.append(
                _format_scope(
                    "tiers",
                    (
                        f"amounts in [{previous.max_amount}, {following.min_amount}) "
                        "are not covered by any active tier"
                    ),
                )
            )

    return errors


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate storefront settings and report issues helpful to operators."
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Settings file to validate (defaults to STOREFRONT_SETTINGS or the bundled file)",
    )
    parser.add_argument(
        "--audit-tiers",
        action="store_true",
        help="Also check the stored profit grid for overlaps and coverage gaps",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    path = args.settings or resolve_settings_path()

    try:
        settings = apply_environment_overrides(load_settings_file(path))
    except (FileNotFoundError, ConfigurationError) as error:
        print(f"[settings] failed to load {path}: {error}")
        return 1

    exit_code = 0

    issues = validate_settings(settings)
    if issues:
        exit_code = 1
        print(f"[settings] {len(issues)} issue(s) detected:")
        for issue in issues:
            print(f"  - {issue}")
    else:
        print("[settings] OK")

    if args.audit_tiers:
        if settings.storage.backend != "sqlite":
            print("[tiers] skipped: in-memory storage has no persisted grid")
            return exit_code

        repository = SQLiteTierRepository(Path(settings.storage.path).expanduser())
        issues = audit_tier_grid(repository.list())
        if issues:
            exit_code = 1
            print(f"[tiers] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print("[tiers] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
