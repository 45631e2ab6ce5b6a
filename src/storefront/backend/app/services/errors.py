"""Typed errors raised by the service layer and mapped to HTTP by the app."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

ERRNO_GENERIC = "generic_error"
ERRNO_BAD_REQUEST = "bad_request"
ERRNO_VALIDATOR = "validator"
ERRNO_INVALID_INPUT = "invalid_input"
ERRNO_INVALID_RESOURCE = "invalid_resource"
ERRNO_RESOURCE_NOT_FOUND = "resource_not_found"
ERRNO_NO_MATCHING_TIER = "no_matching_tier"
ERRNO_INCONSISTENT_CONFIGURATION = "inconsistent_configuration"
ERRNO_REPOSITORY = "repository_error"
ERRNO_WRITE_CONFLICT = "write_conflict"


@dataclass(frozen=True)
class FieldViolation:
    """A single violated constraint reported against a request field."""

    field: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class StorefrontError(Exception):
    """Base class for errors that carry their own HTTP status and error number."""

    status = 500
    errno = ERRNO_GENERIC

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def extra(self) -> dict[str, Any]:
        """Additional payload merged into the error envelope."""

        return {}


class ValidationFailedError(StorefrontError):
    """Malformed or invariant-violating input on a write."""

    status = 412
    errno = ERRNO_VALIDATOR

    def __init__(self, violations: Iterable[FieldViolation], message: str | None = None) -> None:
        self.violations = tuple(violations)
        if message is None:
            details = "; ".join(f"{item.field}: {item.reason}" for item in self.violations)
            message = f"Validation failed: {details}" if details else "Validation failed"
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        return {"errors": [violation.as_dict() for violation in self.violations]}


class InvalidInputError(StorefrontError):
    """Calculation input that cannot be processed (bad amount or currency)."""

    status = 400
    errno = ERRNO_INVALID_INPUT


class InvalidResourceError(StorefrontError):
    """Identifiers in the request path are malformed."""

    status = 400
    errno = ERRNO_INVALID_RESOURCE


class NotFoundError(StorefrontError):
    """Something the caller referenced does not exist."""

    status = 404
    errno = ERRNO_RESOURCE_NOT_FOUND


class ResourceNotFoundError(NotFoundError):
    """No record exists with the requested identifier."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} '{identifier}' not found")
        self.resource = resource
        self.identifier = identifier


class NoMatchingTierError(NotFoundError):
    """No active tier's range contains the requested amount."""

    errno = ERRNO_NO_MATCHING_TIER

    def __init__(self, amount: Any) -> None:
        super().__init__(f"No active profit grid tier covers amount {amount}")
        self.amount = amount


class InconsistentConfigurationError(StorefrontError):
    """More than one active tier matched: the non-overlap invariant is broken."""

    status = 500
    errno = ERRNO_INCONSISTENT_CONFIGURATION

    def __init__(self, amount: Any, tier_ids: Iterable[str]) -> None:
        self.amount = amount
        self.tier_ids = tuple(tier_ids)
        super().__init__(
            f"Active tiers {', '.join(self.tier_ids)} overlap at amount {amount}"
        )


class RepositoryError(StorefrontError):
    """The underlying store failed."""

    status = 500
    errno = ERRNO_REPOSITORY


class StaleSnapshotError(RepositoryError):
    """A conditional write saw a newer revision than the one it was validated against."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected revision {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class WriteConflictError(StorefrontError):
    """Concurrent writers kept invalidating the snapshot a write was checked against."""

    status = 409
    errno = ERRNO_WRITE_CONFLICT


__all__ = [
    "ERRNO_BAD_REQUEST",
    "ERRNO_GENERIC",
    "ERRNO_INCONSISTENT_CONFIGURATION",
    "ERRNO_INVALID_INPUT",
    "ERRNO_INVALID_RESOURCE",
    "ERRNO_NO_MATCHING_TIER",
    "ERRNO_REPOSITORY",
    "ERRNO_RESOURCE_NOT_FOUND",
    "ERRNO_VALIDATOR",
    "ERRNO_WRITE_CONFLICT",
    "FieldViolation",
    "InconsistentConfigurationError",
    "InvalidInputError",
    "InvalidResourceError",
    "NoMatchingTierError",
    "NotFoundError",
    "RepositoryError",
    "ResourceNotFoundError",
    "StaleSnapshotError",
    "StorefrontError",
    "ValidationFailedError",
    "WriteConflictError",
]
