"""Application factory for the storefront backend services."""

import logging
import os
from warnings import warn

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, HTTPException

from storefront.backend.config import Settings, load_settings
from storefront.backend.version import get_project_version

from .http import error_response, problem_response
from .routes import register_routes
from .services.catalog_repository import DocumentRepository
from .services.errors import ERRNO_BAD_REQUEST, ERRNO_GENERIC, StorefrontError
from .services.registry import EXTENSION_KEY, build_services
from .services.tier_repository import TierRepository

logger = logging.getLogger(__name__)


def _parse_allowed_origins(raw: str | None) -> set[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return set()

    return {origin.strip() for origin in raw.split(",") if origin.strip()}


def create_app(
    settings: Settings | None = None,
    *,
    tier_repository: TierRepository | None = None,
    document_repository: DocumentRepository | None = None,
) -> Flask:
    """Create and configure the Flask application instance.

    ``settings`` defaults to :func:`load_settings`. Repositories may be injected
    (tests do this) and otherwise follow the configured storage backend.
    """

    app = Flask(__name__)

    settings = settings or load_settings()
    app.extensions[EXTENSION_KEY] = build_services(
        settings,
        tier_repository=tier_repository,
        document_repository=document_repository,
    )

    allowed_origins = _parse_allowed_origins(
        os.getenv("STOREFRONT_ALLOWED_ORIGINS")
    )

    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=1,
        )

    CORS(
        app,
        resources={r"/api/*": {"origins": sorted(allowed_origins)}},
        supports_credentials=False,
        methods=["GET", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type"],
    )

    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {
            "status": "ok",
            "version": get_project_version(),
            "currencies": settings.currency_codes,
        }
        return jsonify(payload)

    @app.errorhandler(StorefrontError)
    def handle_storefront_error(error: StorefrontError):
        """Map service-layer errors onto the failure envelope."""

        return error_response(error).to_response()

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response(ERRNO_BAD_REQUEST, status=400, message=message).to_response()

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        status = error.code or 500
        return problem_response(
            ERRNO_GENERIC, status=status, message=error.description or error.name
        ).to_response()

    logger.debug("Storefront application created with currencies %s", settings.currency_codes)
    return app


__all__ = ["EXTENSION_KEY", "create_app"]
