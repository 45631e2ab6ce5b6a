"""Unit tests for selecting the active tier that covers an amount."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.backend.app.models.tiers import ProfitGridTier
from storefront.backend.app.services.errors import (
    InconsistentConfigurationError,
    InvalidInputError,
    NoMatchingTierError,
)
from storefront.backend.app.services.profit_grid import resolve, sort_tiers

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_tier(tier_id: str, min_amount: str, max_amount: str, status: str = "active") -> ProfitGridTier:
    return ProfitGridTier(
        id=tier_id,
        min_amount=Decimal(min_amount),
        max_amount=Decimal(max_amount),
        gross_rate=Decimal("10"),
        deduction_rate=Decimal("2"),
        net_rate=Decimal("8"),
        status=status,  # type: ignore[arg-type]
        created_at=NOW,
        updated_at=NOW,
    )


# Deliberately unsorted to make sure the resolver orders tiers itself.
TIERS = [
    make_tier("c", "5000", "9000"),
    make_tier("a", "0", "1000"),
    make_tier("b", "1000", "5000"),
]


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        ("0", "a"),
        ("999.99", "a"),
        ("1000", "b"),
        ("4999.999", "b"),
        ("5000", "c"),
        ("8999.99", "c"),
    ],
)
def test_amount_resolves_to_covering_tier(amount: str, expected: str) -> None:
    assert resolve(Decimal(amount), TIERS).id == expected


def test_amount_at_highest_max_has_no_tier() -> None:
    with pytest.raises(NoMatchingTierError):
        resolve(Decimal("9000"), TIERS)


def test_amount_in_gap_has_no_tier() -> None:
    tiers = [make_tier("a", "0", "100"), make_tier("b", "200", "300")]

    with pytest.raises(NoMatchingTierError) as excinfo:
        resolve(Decimal("150"), tiers)

    assert excinfo.value.status == 404
    assert excinfo.value.errno == "no_matching_tier"


def test_amount_below_lowest_min_has_no_tier() -> None:
    with pytest.raises(NoMatchingTierError):
        resolve(Decimal("5"), [make_tier("a", "10", "20")])


def test_empty_grid_has_no_tier() -> None:
    with pytest.raises(NoMatchingTierError):
        resolve(Decimal("5"), [])


def test_negative_amount_is_invalid_input() -> None:
    with pytest.raises(InvalidInputError):
        resolve(Decimal("-0.01"), TIERS)


def test_inactive_tiers_never_match() -> None:
    with pytest.raises(NoMatchingTierError):
        resolve(Decimal("50"), [make_tier("parked", "0", "100", status="inactive")])


def test_overlapping_active_tiers_fail_loudly(caplog: pytest.LogCaptureFixture) -> None:
    tiers = [make_tier("x", "0", "1000"), make_tier("y", "500", "1500")]

    with caplog.at_level("ERROR"):
        with pytest.raises(InconsistentConfigurationError) as excinfo:
            resolve(Decimal("750"), tiers)

    assert excinfo.value.tier_ids == ("x", "y")
    assert excinfo.value.status == 500
    assert "Data integrity violation" in caplog.text


def test_sort_tiers_orders_by_min_then_id() -> None:
    tiers = [make_tier("b", "10", "20"), make_tier("a", "10", "15"), make_tier("z", "0", "5")]

    assert [tier.id for tier in sort_tiers(tiers)] == ["z", "a", "b"]
