"""WSGI entrypoint for deploying the storefront backend behind Passenger."""

import logging
import os

from storefront.backend.app import create_app

logging.basicConfig(
    level=os.getenv("STOREFRONT_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Passenger expects a module-level variable named ``application``.
application = create_app()
