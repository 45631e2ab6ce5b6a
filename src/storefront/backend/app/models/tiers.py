"""Profit grid tier records, request models, and calculation results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Context, Decimal, getcontext, localcontext
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "STATUS_ACTIVE",
    "STATUS_INACTIVE",
    "TIER_FIELDS",
    "TierStatus",
    "TierInput",
    "TierValues",
    "ProfitGridTier",
    "TierPatch",
    "StatusUpdateRequest",
    "CalculationRequest",
    "ProfitBreakdown",
    "CalculationResult",
    "MAX_DIGITS",
    "canonical_decimal",
    "exact_context",
    "normalise_status",
]

TierStatus = Literal["active", "inactive"]

STATUS_ACTIVE: TierStatus = "active"
STATUS_INACTIVE: TierStatus = "inactive"

# Widest value, in written digits, a tier field or calculation amount may carry.
MAX_DIGITS = 38

# Legacy admin clients still send the catalog-style visibility flags.
_STATUS_ALIASES = {"show": STATUS_ACTIVE, "hide": STATUS_INACTIVE}

TIER_FIELDS = (
    "min_amount",
    "max_amount",
    "gross_rate",
    "deduction_rate",
    "net_rate",
    "status",
)


def normalise_status(value: Any) -> Any:
    """Lower-case status strings and map legacy aliases onto tier states."""

    if isinstance(value, str):
        key = value.strip().lower()
        return _STATUS_ALIASES.get(key, key)
    return value


def exact_context(*values: Decimal, places: int = 0) -> Context:
    """Return a copy of the current context wide enough to keep ``values`` exact.

    The precision covers every digit the operands write out, so sums, products,
    and quantizing to ``places`` decimals never round behind the caller's back.
    """

    context = getcontext().copy()
    width = 0
    for value in values:
        _, digits, exponent = value.as_tuple()
        width += len(digits) + abs(exponent)
    context.prec = max(context.prec, width + places + 2)
    return context


def canonical_decimal(value: Decimal) -> Decimal:
    """Return ``value`` without redundant fraction digits or exponent notation."""

    if not value.is_finite():
        return value
    with localcontext(exact_context(value)):
        if value == value.to_integral_value():
            return value.quantize(Decimal(1))
        return value.normalize()


def _reject_booleans(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("Input should be a number, not a boolean")
    return value


class TierInput(BaseModel):
    """Structural validation for a tier submitted on create or replace."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    min_amount: Decimal = Field(..., ge=0, max_digits=MAX_DIGITS, allow_inf_nan=False)
    max_amount: Decimal = Field(..., ge=0, max_digits=MAX_DIGITS, allow_inf_nan=False)
    gross_rate: Decimal = Field(..., ge=0, le=100, max_digits=MAX_DIGITS, allow_inf_nan=False)
    deduction_rate: Decimal = Field(..., ge=0, le=100, max_digits=MAX_DIGITS, allow_inf_nan=False)
    net_rate: Decimal | None = Field(
        default=None, ge=0, le=100, max_digits=MAX_DIGITS, allow_inf_nan=False
    )
    status: TierStatus = STATUS_ACTIVE

    @field_validator(
        "min_amount",
        "max_amount",
        "gross_rate",
        "deduction_rate",
        "net_rate",
        mode="before",
    )
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return _reject_booleans(value)

    @field_validator(
        "min_amount",
        "max_amount",
        "gross_rate",
        "deduction_rate",
        "net_rate",
    )
    @classmethod
    def _canonicalise(cls, value: Decimal | None) -> Decimal | None:
        if value is None:
            return None
        return canonical_decimal(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        return normalise_status(value)


@dataclass(frozen=True)
class TierValues:
    """Validated, normalised tier fields ready to be persisted."""

    min_amount: Decimal
    max_amount: Decimal
    gross_rate: Decimal
    deduction_rate: Decimal
    net_rate: Decimal
    status: TierStatus

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


@dataclass(frozen=True)
class ProfitGridTier:
    """A persisted tier: an amount range ``[min_amount, max_amount)`` and its rates."""

    id: str
    min_amount: Decimal
    max_amount: Decimal
    gross_rate: Decimal
    deduction_rate: Decimal
    net_rate: Decimal
    status: TierStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_values(
        cls,
        tier_id: str,
        values: TierValues,
        *,
        created_at: datetime,
        updated_at: datetime,
    ) -> ProfitGridTier:
        return cls(
            id=tier_id,
            min_amount=values.min_amount,
            max_amount=values.max_amount,
            gross_rate=values.gross_rate,
            deduction_rate=values.deduction_rate,
            net_rate=values.net_rate,
            status=values.status,
            created_at=created_at,
            updated_at=updated_at,
        )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def contains(self, amount: Decimal) -> bool:
        """Return ``True`` when ``amount`` falls inside ``[min_amount, max_amount)``."""

        return self.min_amount <= amount < self.max_amount

    def editable_fields(self) -> dict[str, Any]:
        """Return the client-editable fields as a plain mapping."""

        return {
            "min_amount": self.min_amount,
            "max_amount": self.max_amount,
            "gross_rate": self.gross_rate,
            "deduction_rate": self.deduction_rate,
            "net_rate": self.net_rate,
            "status": self.status,
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            **self.editable_fields(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class TierPatch:
    """Explicit partial update naming exactly the fields a client supplied."""

    changes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TierPatch:
        return cls(changes={key: payload[key] for key in TIER_FIELDS if key in payload})

    def apply(self, current: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(current)
        merged.update(self.changes)
        if "net_rate" not in self.changes and (
            "gross_rate" in self.changes or "deduction_rate" in self.changes
        ):
            # A stale stored net rate would no longer describe the new rates.
            merged["net_rate"] = None
        return merged


class StatusUpdateRequest(BaseModel):
    """Body of a tier status toggle."""

    model_config = ConfigDict(extra="ignore")

    status: TierStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        return normalise_status(value)


class CalculationRequest(BaseModel):
    """Body of a profit calculation request."""

    model_config = ConfigDict(extra="ignore")

    amount: Decimal = Field(..., max_digits=MAX_DIGITS, allow_inf_nan=False)
    currency: str = Field(..., min_length=1)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Any:
        return _reject_booleans(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalise_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


@dataclass(frozen=True)
class ProfitBreakdown:
    """Monetary figures derived from an amount and a tier."""

    gross_amount: Decimal
    deduction_amount: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class CalculationResult:
    """Outcome of ``calculate`` returned to the HTTP layer."""

    amount: Decimal
    currency: str
    tier_id: str
    gross_amount: Decimal
    deduction_amount: Decimal
    net_amount: Decimal
    rates: Mapping[str, Decimal]

    def as_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "currency": self.currency,
            "tier_id": self.tier_id,
            "gross_amount": self.gross_amount,
            "deduction_amount": self.deduction_amount,
            "net_amount": self.net_amount,
            "rates": dict(self.rates),
        }
