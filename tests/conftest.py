"""Test configuration utilities and shared fixtures."""

import sys
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install, so ``pytest`` works straight from a fresh checkout.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from storefront.backend.app import create_app  # noqa: E402
from storefront.backend.app.services.catalog_repository import (  # noqa: E402
    InMemoryDocumentRepository,
)
from storefront.backend.app.services.tier_repository import (  # noqa: E402
    InMemoryTierRepository,
)
from storefront.backend.config.schema import Settings  # noqa: E402


@pytest.fixture()
def settings() -> Settings:
    """Return settings with two-decimal and zero-decimal currencies."""

    return Settings.model_validate(
        {
            "currencies": {
                "EUR": {"minor_units": 2},
                "USD": {"minor_units": 2},
                "XAF": {"minor_units": 0},
            },
            "storage": {"backend": "memory"},
            "tiers": {"write_attempts": 3},
        }
    )


@pytest.fixture()
def app(settings: Settings) -> Flask:
    """Return a configured Flask application backed by in-memory storage."""

    application = create_app(
        settings,
        tier_repository=InMemoryTierRepository(),
        document_repository=InMemoryDocumentRepository(),
    )
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()
