"""Pydantic models describing the service settings schema."""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class CurrencyConfig(ImmutableModel):
    """Rounding metadata for a recognised currency."""

    minor_units: int = Field(default=2)

    @model_validator(mode="after")
    def _validate_minor_units(self) -> CurrencyConfig:
        if self.minor_units < 0 or self.minor_units > 4:
            raise ConfigurationError("Currency minor units must be between 0 and 4")
        return self


class StorageConfig(ImmutableModel):
    """Where tiers and catalog documents are persisted."""

    backend: Literal["memory", "sqlite"] = "memory"
    path: str | None = None

    @model_validator(mode="after")
    def _require_path_for_sqlite(self) -> StorageConfig:
        if self.backend == "sqlite" and not (self.path and self.path.strip()):
            raise ConfigurationError("SQLite storage requires a database path")
        return self


class TierSettings(ImmutableModel):
    """Behavioural knobs for profit grid tier writes."""

    write_attempts: int = Field(default=3)

    @model_validator(mode="after")
    def _validate_attempts(self) -> TierSettings:
        if self.write_attempts < 1:
            raise ConfigurationError("Tier write attempts must be at least 1")
        return self


class Settings(ImmutableModel):
    """Top-level settings document."""

    currencies: Mapping[str, CurrencyConfig]
    storage: StorageConfig = Field(default_factory=StorageConfig)
    tiers: TierSettings = Field(default_factory=TierSettings)

    @field_validator("currencies", mode="before")
    @classmethod
    def _coerce_currency_entries(cls, value: Any) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise ConfigurationError("Currencies must be declared as a mapping")
        coerced: dict[str, Any] = {}
        for code, entry in value.items():
            coerced[str(code)] = {} if entry is None else entry
        return coerced

    @model_validator(mode="after")
    def _require_currencies(self) -> Settings:
        if not self.currencies:
            raise ConfigurationError("At least one currency must be configured")
        return self

    def currency(self, code: str) -> CurrencyConfig:
        """Return the configuration for ``code`` (case-insensitive)."""

        normalised = code.strip().upper()
        for key, entry in self.currencies.items():
            if key.upper() == normalised:
                return entry
        raise KeyError(code)

    @property
    def currency_codes(self) -> list[str]:
        return sorted(code.upper() for code in self.currencies)


__all__ = [
    "ConfigurationError",
    "CurrencyConfig",
    "ImmutableModel",
    "Settings",
    "StorageConfig",
    "TierSettings",
]
