"""Orchestrate profit grid calculations and tier management.

The service is the single entry point the HTTP layer uses for the profit grid.
``calculate`` reads a fresh snapshot of the active tiers on every call (tiers
are never cached between requests), resolves the matching tier, and derives
the monetary figures. Tier writes are validated against a snapshot and
committed only if that snapshot is still current; concurrent writers that
invalidate it trigger a bounded retry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import ValidationError

from storefront.backend.app.models.tiers import (
    STATUS_ACTIVE,
    CalculationRequest,
    CalculationResult,
    ProfitGridTier,
    StatusUpdateRequest,
    TierPatch,
    TierValues,
)
from storefront.backend.config.schema import Settings

from .errors import (
    InvalidInputError,
    InvalidResourceError,
    ResourceNotFoundError,
    StaleSnapshotError,
    ValidationFailedError,
    WriteConflictError,
)
from .profit_grid import compute, resolve, validate_tier
from .profit_grid.utils import violations_from_error
from .tier_repository import TierRepository, TierSnapshot

logger = logging.getLogger(__name__)

_RESOURCE = "Profit grid tier"

T = TypeVar("T")


def parse_calculation_request(payload: Mapping[str, Any]) -> CalculationRequest:
    """Validate a raw calculation body, reporting problems as invalid input."""

    try:
        return CalculationRequest.model_validate(dict(payload))
    except ValidationError as error:
        details = "; ".join(
            f"{violation.field}: {violation.reason}"
            for violation in violations_from_error(error)
        )
        raise InvalidInputError(f"Invalid calculation payload: {details}") from error


def parse_id_list(raw: str) -> list[str]:
    """Split a comma separated identifier list, dropping blanks and duplicates."""

    identifiers: list[str] = []
    for part in raw.split(","):
        identifier = part.strip()
        if identifier and identifier not in identifiers:
            identifiers.append(identifier)
    if not identifiers:
        raise InvalidResourceError("At least one identifier is required")
    return identifiers


class ProfitGridService:
    """Stateless facade over the tier repository and the rate engine."""

    def __init__(self, repository: TierRepository, settings: Settings) -> None:
        self._repository = repository
        self._settings = settings

    # -- calculation -----------------------------------------------------

    def calculate(self, amount: Decimal, currency: str) -> CalculationResult:
        """Resolve the tier for ``amount`` and derive gross/deduction/net figures."""

        if amount <= 0:
            raise InvalidInputError(f"Amount must be greater than zero (got {amount})")

        code = (currency or "").strip().upper()
        if not code:
            raise InvalidInputError("Currency is required")
        try:
            currency_config = self._settings.currency(code)
        except KeyError:
            supported = ", ".join(self._settings.currency_codes)
            raise InvalidInputError(
                f"Currency '{currency}' is not supported (expected one of {supported})"
            ) from None

        active = self._repository.snapshot(status=STATUS_ACTIVE)
        tier = resolve(amount, active.tiers)
        breakdown = compute(amount, tier, currency_config.minor_units)

        return CalculationResult(
            amount=amount,
            currency=code,
            tier_id=tier.id,
            gross_amount=breakdown.gross_amount,
            deduction_amount=breakdown.deduction_amount,
            net_amount=breakdown.net_amount,
            rates={
                "gross_rate": tier.gross_rate,
                "deduction_rate": tier.deduction_rate,
                "net_rate": tier.net_rate,
            },
        )

    def calculate_payload(self, payload: Mapping[str, Any]) -> CalculationResult:
        request = parse_calculation_request(payload)
        return self.calculate(request.amount, request.currency)

    # -- reads -----------------------------------------------------------

    def list(self) -> list[ProfitGridTier]:
        return self._repository.list()

    def list_active(self) -> list[ProfitGridTier]:
        return self._repository.list(status=STATUS_ACTIVE)

    def get_by_id(self, tier_id: str) -> ProfitGridTier:
        try:
            return self._repository.get(tier_id)
        except KeyError:
            raise ResourceNotFoundError(_RESOURCE, tier_id) from None

    # -- writes ----------------------------------------------------------

    def _validated(
        self,
        candidate: Mapping[str, Any],
        snapshot: TierSnapshot,
        exclude_id: str | None = None,
    ) -> TierValues:
        result = validate_tier(candidate, snapshot.tiers, exclude_id)
        if result.tier is None:
            raise ValidationFailedError(result.violations)
        return result.tier

    def _with_retry(self, operation: Callable[[], T]) -> T:
        attempts = self._settings.tiers.write_attempts
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except StaleSnapshotError as error:
                logger.info(
                    "Tier write raced a concurrent change (attempt %s/%s): %s",
                    attempt,
                    attempts,
                    error,
                )
        raise WriteConflictError(
            f"Profit grid changed concurrently; gave up after {attempts} attempt(s)"
        )

    def _write_existing(
        self, tier_id: str, build_candidate: Callable[[ProfitGridTier], Mapping[str, Any]]
    ) -> ProfitGridTier:
        def attempt() -> ProfitGridTier:
            current = self.get_by_id(tier_id)
            snapshot = self._repository.snapshot(status=STATUS_ACTIVE)
            values = self._validated(build_candidate(current), snapshot, exclude_id=tier_id)
            try:
                return self._repository.replace(
                    tier_id, values, expected_revision=snapshot.revision
                )
            except KeyError:
                raise ResourceNotFoundError(_RESOURCE, tier_id) from None

        return self._with_retry(attempt)

    def create(self, payload: Mapping[str, Any]) -> ProfitGridTier:
        """Validate and store a new tier."""

        def attempt() -> ProfitGridTier:
            snapshot = self._repository.snapshot(status=STATUS_ACTIVE)
            values = self._validated(payload, snapshot)
            return self._repository.insert(values, expected_revision=snapshot.revision)

        tier = self._with_retry(attempt)
        logger.info(
            "Created profit grid tier %s [%s, %s)", tier.id, tier.min_amount, tier.max_amount
        )
        return tier

    def update(self, tier_id: str, payload: Mapping[str, Any]) -> ProfitGridTier:
        """Replace every field of an existing tier; an omitted status is kept."""

        def build(current: ProfitGridTier) -> Mapping[str, Any]:
            candidate = dict(payload)
            candidate.setdefault("status", current.status)
            return candidate

        tier = self._write_existing(tier_id, build)
        logger.info("Replaced profit grid tier %s", tier_id)
        return tier

    def patch(self, tier_id: str, payload: Mapping[str, Any]) -> ProfitGridTier:
        """Change only the fields present in ``payload``, then re-validate the whole tier."""

        changes = TierPatch.from_payload(payload)
        if not changes.changes:
            raise ValidationFailedError([], message="Patch does not name any tier field")

        tier = self._write_existing(
            tier_id, lambda current: changes.apply(current.editable_fields())
        )
        logger.info("Patched profit grid tier %s (%s)", tier_id, ", ".join(changes.changes))
        return tier

    def update_status(self, tier_id: str, payload: Mapping[str, Any]) -> ProfitGridTier:
        """Toggle a tier between active and inactive."""

        try:
            request = StatusUpdateRequest.model_validate(dict(payload))
        except ValidationError as error:
            raise ValidationFailedError(violations_from_error(error)) from error

        def build(current: ProfitGridTier) -> Mapping[str, Any]:
            candidate = current.editable_fields()
            candidate["status"] = request.status
            return candidate

        tier = self._write_existing(tier_id, build)
        logger.info("Profit grid tier %s is now %s", tier_id, tier.status)
        return tier

    def delete(self, tier_id: str) -> ProfitGridTier:
        try:
            tier = self._repository.delete(tier_id)
        except KeyError:
            raise ResourceNotFoundError(_RESOURCE, tier_id) from None
        logger.info("Deleted profit grid tier %s", tier_id)
        return tier

    def delete_many(self, tier_ids: Iterable[str]) -> int:
        """Delete each existing id independently and report how many were removed."""

        identifiers = list(tier_ids)
        if not identifiers:
            raise InvalidResourceError("At least one identifier is required")
        deleted = self._repository.delete_many(identifiers)
        logger.info("Deleted %s of %s requested profit grid tiers", deleted, len(identifiers))
        return deleted


__all__ = [
    "ProfitGridService",
    "parse_calculation_request",
    "parse_id_list",
]
