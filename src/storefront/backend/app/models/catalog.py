"""Pydantic models for catalog entities: coupons, extras, and categories."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "CatalogDocument",
    "CatalogStatus",
    "CatalogStatusUpdate",
    "CategoryInput",
    "CouponInput",
    "DiscountType",
    "ExtraInput",
    "LocalizedText",
]

CatalogStatus = Literal["show", "hide"]

LocalizedText = dict[str, str]


def _validate_localized(value: Any, *, required: bool) -> Any:
    if value is None:
        if required:
            raise ValueError("at least one translation is required")
        return None
    if isinstance(value, str):
        # Bare strings are accepted as the default-locale text.
        value = {"en": value}
    if not isinstance(value, Mapping):
        raise ValueError("must be a mapping of locale to text")
    cleaned: dict[str, str] = {}
    for locale, text in value.items():
        key = str(locale).strip()
        if not key:
            raise ValueError("locale keys must be non-empty")
        if not isinstance(text, str):
            raise ValueError(f"translation for '{key}' must be a string")
        cleaned[key] = text
    if required and not any(text.strip() for text in cleaned.values()):
        raise ValueError("at least one non-empty translation is required")
    return cleaned


def _normalise_catalog_status(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class CatalogModel(BaseModel):
    """Shared configuration for catalog request bodies."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        return _normalise_catalog_status(value)


class DiscountType(BaseModel):
    """How a coupon discount is applied."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["percentage", "fixed"]
    value: Decimal = Field(..., ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _cap_percentage(self) -> DiscountType:
        if self.type == "percentage" and self.value > 100:
            raise ValueError("percentage discounts cannot exceed 100")
        return self


class CouponInput(CatalogModel):
    """A discount coupon."""

    title: LocalizedText
    logo: str | None = None
    coupon_code: str = Field(..., min_length=1)
    start_time: datetime | None = None
    end_time: datetime
    discount_type: DiscountType | None = None
    minimum_amount: Decimal = Field(..., ge=0, allow_inf_nan=False)
    product_type: str | None = None
    status: CatalogStatus = "show"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> Any:
        return _validate_localized(value, required=True)

    @field_validator("coupon_code", mode="before")
    @classmethod
    def _strip_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_window(self) -> CouponInput:
        if self.start_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ExtraInput(CatalogModel):
    """An add-on that can be attached to products."""

    title: LocalizedText
    name: LocalizedText | None = None
    description: LocalizedText | None = None
    price: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    type: Literal["Simple", "Product", "Custom", "Grouped"]
    related_product: str | None = None
    group_items: list[str] = Field(default_factory=list)
    options: list[dict[str, Any]] = Field(default_factory=list)
    status: CatalogStatus = "show"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> Any:
        return _validate_localized(value, required=True)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _validate_optional_text(cls, value: Any) -> Any:
        return _validate_localized(value, required=False)


class CategoryInput(CatalogModel):
    """A product category, optionally nested under a parent."""

    name: LocalizedText
    slug: str | None = None
    description: LocalizedText | None = None
    parent_id: str | None = None
    icon: str | None = None
    image: str | None = None
    is_top_category: bool = False
    show_products_on_homepage: bool = False
    position: int = Field(default=0, ge=0)
    status: CatalogStatus = "show"

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> Any:
        return _validate_localized(value, required=True)

    @field_validator("description", mode="before")
    @classmethod
    def _validate_description(cls, value: Any) -> Any:
        return _validate_localized(value, required=False)

    @field_validator("parent_id", "slug", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CatalogStatusUpdate(CatalogModel):
    """Body of a catalog visibility toggle."""

    status: CatalogStatus


@dataclass(frozen=True)
class CatalogDocument:
    """A stored catalog entity: JSON-ready fields plus bookkeeping."""

    id: str
    data: Mapping[str, Any]
    created_at: datetime
    updated_at: datetime

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            **self.data,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
