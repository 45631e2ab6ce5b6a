"""Derive gross, deduction, and net figures for an amount under a tier."""

from __future__ import annotations

from decimal import Decimal, localcontext

from storefront.backend.app.models.tiers import ProfitBreakdown, ProfitGridTier, exact_context

from .utils import apply_rate, round_currency


def compute(amount: Decimal, tier: ProfitGridTier, minor_units: int = 2) -> ProfitBreakdown:
    """Apply ``tier`` rates to ``amount``.

    Gross and deduction are each rounded half-up to ``minor_units`` before
    subtracting, so ``net_amount`` is exactly ``gross_amount - deduction_amount``.
    ``tier.net_rate`` is informational and plays no part here.
    """

    gross_amount = round_currency(apply_rate(amount, tier.gross_rate), minor_units)
    deduction_amount = round_currency(apply_rate(amount, tier.deduction_rate), minor_units)
    with localcontext(exact_context(gross_amount, deduction_amount)):
        net_amount = gross_amount - deduction_amount

    return ProfitBreakdown(
        gross_amount=gross_amount,
        deduction_amount=deduction_amount,
        net_amount=net_amount,
    )


__all__ = ["compute"]
