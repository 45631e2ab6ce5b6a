"""Unit tests for deriving profit figures from a resolved tier."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.backend.app.models.tiers import ProfitGridTier
from storefront.backend.app.services.profit_grid import compute, round_currency

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_tier(gross: str, deduction: str, net: str = "0") -> ProfitGridTier:
    return ProfitGridTier(
        id="tier",
        min_amount=Decimal("0"),
        max_amount=Decimal("100000"),
        gross_rate=Decimal(gross),
        deduction_rate=Decimal(deduction),
        net_rate=Decimal(net),
        status="active",
        created_at=NOW,
        updated_at=NOW,
    )


def test_first_tier_example() -> None:
    breakdown = compute(Decimal("500"), make_tier("10", "2"))

    assert breakdown.gross_amount == Decimal("50.00")
    assert breakdown.deduction_amount == Decimal("10.00")
    assert breakdown.net_amount == Decimal("40.00")
    assert str(breakdown.net_amount) == "40.00"


def test_second_tier_example() -> None:
    breakdown = compute(Decimal("1000"), make_tier("8", "1.5"))

    assert (breakdown.gross_amount, breakdown.deduction_amount, breakdown.net_amount) == (
        Decimal("80.00"),
        Decimal("15.00"),
        Decimal("65.00"),
    )


def test_each_figure_is_rounded_half_up_before_subtracting() -> None:
    # 0.125 and 0.0625 round to 0.13 and 0.06 independently.
    breakdown = compute(Decimal("1.25"), make_tier("10", "5"))

    assert breakdown.gross_amount == Decimal("0.13")
    assert breakdown.deduction_amount == Decimal("0.06")
    assert breakdown.net_amount == Decimal("0.07")


def test_zero_decimal_currency_rounds_to_whole_units() -> None:
    breakdown = compute(Decimal("1005"), make_tier("10", "2.5"), minor_units=0)

    assert str(breakdown.gross_amount) == "101"
    assert str(breakdown.deduction_amount) == "25"
    assert str(breakdown.net_amount) == "76"


def test_stored_net_rate_does_not_affect_net_amount() -> None:
    breakdown = compute(Decimal("500"), make_tier("10", "2", net="99"))

    assert breakdown.net_amount == breakdown.gross_amount - breakdown.deduction_amount


@pytest.mark.parametrize(
    ("value", "minor_units", "expected"),
    [
        ("2.345", 2, "2.35"),
        ("2.344", 2, "2.34"),
        ("-2.345", 2, "-2.35"),
        ("0.5", 0, "1"),
        ("1" + "0" * 30 + ".005", 2, "1" + "0" * 30 + ".01"),
    ],
)
def test_round_currency_is_half_up(value: str, minor_units: int, expected: str) -> None:
    assert str(round_currency(Decimal(value), minor_units)) == expected


def test_rate_product_is_rounded_once() -> None:
    # Rounding the product to 28 digits first would turn it into 1000.005.
    breakdown = compute(Decimal("1000.00499999999999999999999999"), make_tier("100", "0"))

    assert breakdown.gross_amount == Decimal("1000.00")
    assert breakdown.net_amount == Decimal("1000.00")


def test_amounts_beyond_the_default_precision() -> None:
    breakdown = compute(Decimal("1" + "0" * 27), make_tier("10", "2.5"))

    assert str(breakdown.gross_amount) == "1" + "0" * 26 + ".00"
    assert str(breakdown.deduction_amount) == "25" + "0" * 24 + ".00"
    assert str(breakdown.net_amount) == "75" + "0" * 24 + ".00"
