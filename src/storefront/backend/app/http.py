"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import jsonify

from storefront.backend.app.services.errors import StorefrontError


@dataclass(frozen=True)
class ProblemResponse:
    """Failure envelope: ``{status, errNo, errMsg}`` plus optional detail."""

    errno: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the serialisable payload for this problem response."""

        payload: dict[str, Any] = {"status": self.status, "errNo": self.errno}
        payload["errMsg"] = self.message or self.errno
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    errno: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Convenience factory mirroring Flask's ``jsonify`` interface."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(errno=errno, status=status, message=message, extra=additional)


def error_response(error: StorefrontError) -> ProblemResponse:
    """Build the failure envelope for a service-layer error."""

    return problem_response(
        error.errno, status=error.status, message=error.message, **error.extra()
    )


__all__ = [
    "ProblemResponse",
    "error_response",
    "problem_response",
]
