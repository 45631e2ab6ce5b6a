"""Utility helpers shared by the profit grid components."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

from pydantic import ValidationError

from storefront.backend.app.models.tiers import exact_context
from storefront.backend.app.services.errors import FieldViolation

HUNDRED = Decimal(100)


def round_currency(value: Decimal, minor_units: int = 2) -> Decimal:
    """Round monetary amounts half-up to ``minor_units`` decimals."""

    with localcontext(exact_context(value, places=minor_units)):
        return value.quantize(Decimal(1).scaleb(-minor_units), rounding=ROUND_HALF_UP)


def apply_rate(amount: Decimal, rate: Decimal) -> Decimal:
    """Return ``rate`` percent of ``amount`` exactly, without rounding."""

    with localcontext(exact_context(amount, rate)):
        return amount * rate / HUNDRED


def ranges_overlap(
    first_min: Decimal, first_max: Decimal, second_min: Decimal, second_max: Decimal
) -> bool:
    """Return ``True`` when ``[first_min, first_max)`` and ``[second_min, second_max)`` overlap."""

    return first_min < second_max and second_min < first_max


def violations_from_error(error: ValidationError) -> list[FieldViolation]:
    """Translate a Pydantic error into field-level violations."""

    violations: list[FieldViolation] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if issue.get("type") == "missing":
            message = "field is required"
        elif "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        violations.append(FieldViolation(field=location or "__root__", reason=message))
    return violations


__all__ = [
    "HUNDRED",
    "apply_rate",
    "ranges_overlap",
    "round_currency",
    "violations_from_error",
]
