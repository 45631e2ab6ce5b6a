"""Structural and cross-tier validation for profit grid writes.

Every create, replace, patch, and status change funnels through
:func:`validate_tier`. The function is pure: it checks the candidate against
the snapshot of active tiers handed in by the caller and never touches the
repository itself, so the caller decides which snapshot the verdict applies to.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import localcontext
from typing import Any

from pydantic import ValidationError

from storefront.backend.app.models.tiers import (
    ProfitGridTier,
    TierInput,
    TierValues,
    canonical_decimal,
    exact_context,
)
from storefront.backend.app.services.errors import FieldViolation

from .utils import HUNDRED, ranges_overlap, violations_from_error


@dataclass(frozen=True)
class ValidationResult:
    """Either normalised tier values or the constraints the candidate broke."""

    tier: TierValues | None = None
    violations: tuple[FieldViolation, ...] = ()

    @property
    def ok(self) -> bool:
        return self.tier is not None and not self.violations


def _check_rates(tier_input: TierInput) -> tuple[Any, list[FieldViolation]]:
    if tier_input.net_rate is not None:
        return tier_input.net_rate, []

    with localcontext(exact_context(tier_input.gross_rate, tier_input.deduction_rate)):
        derived = canonical_decimal(tier_input.gross_rate - tier_input.deduction_rate)
    if derived < 0 or derived > HUNDRED:
        return derived, [
            FieldViolation(
                field="net_rate",
                reason=(
                    f"derived net rate {derived} (gross_rate - deduction_rate) "
                    "must be between 0 and 100"
                ),
            )
        ]
    return derived, []


def find_overlapping(
    values: TierValues,
    existing_active_tiers: Sequence[ProfitGridTier],
    exclude_id: str | None = None,
) -> list[ProfitGridTier]:
    """Return active tiers other than ``exclude_id`` whose range overlaps ``values``."""

    return [
        tier
        for tier in existing_active_tiers
        if tier.is_active
        and tier.id != exclude_id
        and ranges_overlap(values.min_amount, values.max_amount, tier.min_amount, tier.max_amount)
    ]


def validate_tier(
    candidate: Mapping[str, Any],
    existing_active_tiers: Sequence[ProfitGridTier],
    exclude_id: str | None = None,
) -> ValidationResult:
    """Validate ``candidate`` against the supplied active tier snapshot."""

    try:
        tier_input = TierInput.model_validate(dict(candidate))
    except ValidationError as error:
        return ValidationResult(violations=tuple(violations_from_error(error)))

    violations: list[FieldViolation] = []

    if tier_input.min_amount >= tier_input.max_amount:
        violations.append(
            FieldViolation(
                field="max_amount",
                reason=(
                    f"must be greater than min_amount ({tier_input.min_amount})"
                ),
            )
        )

    net_rate, rate_violations = _check_rates(tier_input)
    violations.extend(rate_violations)

    if violations:
        return ValidationResult(violations=tuple(violations))

    values = TierValues(
        min_amount=tier_input.min_amount,
        max_amount=tier_input.max_amount,
        gross_rate=tier_input.gross_rate,
        deduction_rate=tier_input.deduction_rate,
        net_rate=net_rate,
        status=tier_input.status,
    )

    if values.is_active:
        for tier in find_overlapping(values, existing_active_tiers, exclude_id):
            violations.append(
                FieldViolation(
                    field="range",
                    reason=(
                        f"[{values.min_amount}, {values.max_amount}) overlaps active tier "
                        f"{tier.id} [{tier.min_amount}, {tier.max_amount})"
                    ),
                )
            )

    if violations:
        return ValidationResult(violations=tuple(violations))
    return ValidationResult(tier=values)


__all__ = ["ValidationResult", "find_overlapping", "validate_tier"]
