"""Select the single active tier whose range contains an amount."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from storefront.backend.app.models.tiers import ProfitGridTier
from storefront.backend.app.services.errors import (
    InconsistentConfigurationError,
    InvalidInputError,
    NoMatchingTierError,
)

logger = logging.getLogger(__name__)


def sort_tiers(tiers: Iterable[ProfitGridTier]) -> list[ProfitGridTier]:
    """Order tiers by lower bound, breaking ties on id for stable output."""

    return sorted(tiers, key=lambda tier: (tier.min_amount, tier.id))


def resolve(amount: Decimal, active_tiers: Iterable[ProfitGridTier]) -> ProfitGridTier:
    """Return the tier with ``min_amount <= amount < max_amount``.

    Ranges are inclusive at the lower bound and exclusive at the upper bound,
    so an amount equal to one tier's ``max_amount`` lands in the next tier.
    Tiers are sorted here rather than trusting the caller's ordering.
    """

    if amount < 0:
        raise InvalidInputError(f"Amount must not be negative (got {amount})")

    matches: list[ProfitGridTier] = []
    for tier in sort_tiers(active_tiers):
        if tier.min_amount > amount:
            break
        if tier.is_active and tier.contains(amount):
            matches.append(tier)

    if not matches:
        logger.info("No active profit grid tier covers amount %s", amount)
        raise NoMatchingTierError(amount)

    if len(matches) > 1:
        tier_ids = [tier.id for tier in matches]
        logger.error(
            "Data integrity violation: active tiers %s overlap at amount %s",
            ", ".join(tier_ids),
            amount,
        )
        raise InconsistentConfigurationError(amount, tier_ids)

    return matches[0]


__all__ = ["resolve", "sort_tiers"]
