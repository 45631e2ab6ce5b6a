"""Settings loading and validation for the storefront backend."""

from .schema import ConfigurationError, Settings
from .settings import load_settings

__all__ = ["ConfigurationError", "Settings", "load_settings"]
