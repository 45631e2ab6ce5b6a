"""Typed request models and records shared across routes and services.

Request bodies are validated with Pydantic; persisted records and derived
results are lightweight frozen dataclasses so the rate engine can treat them
as plain values.
"""

from __future__ import annotations

from .catalog import (
    CatalogDocument,
    CatalogStatus,
    CatalogStatusUpdate,
    CategoryInput,
    CouponInput,
    DiscountType,
    ExtraInput,
    LocalizedText,
)
from .tiers import (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    TIER_FIELDS,
    CalculationRequest,
    CalculationResult,
    ProfitBreakdown,
    ProfitGridTier,
    StatusUpdateRequest,
    TierInput,
    TierPatch,
    TierStatus,
    TierValues,
    canonical_decimal,
    normalise_status,
)

__all__ = [
    "STATUS_ACTIVE",
    "STATUS_INACTIVE",
    "TIER_FIELDS",
    "CalculationRequest",
    "CalculationResult",
    "CatalogDocument",
    "CatalogStatus",
    "CatalogStatusUpdate",
    "CategoryInput",
    "CouponInput",
    "DiscountType",
    "ExtraInput",
    "LocalizedText",
    "ProfitBreakdown",
    "ProfitGridTier",
    "StatusUpdateRequest",
    "TierInput",
    "TierPatch",
    "TierStatus",
    "TierValues",
    "canonical_decimal",
    "normalise_status",
]
