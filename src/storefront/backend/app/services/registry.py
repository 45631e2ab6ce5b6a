"""Construct the process-wide service objects from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from flask import current_app

from storefront.backend.config.schema import Settings

from .catalog_repository import (
    DocumentRepository,
    InMemoryDocumentRepository,
    SQLiteDocumentRepository,
)
from .catalog_service import CategoryService, CouponService, ExtraService
from .profit_grid_service import ProfitGridService
from .tier_repository import InMemoryTierRepository, SQLiteTierRepository, TierRepository

logger = logging.getLogger(__name__)

EXTENSION_KEY = "storefront"


@dataclass(frozen=True)
class ServiceRegistry:
    """Stateless services shared by every request."""

    settings: Settings
    profit_grids: ProfitGridService
    coupons: CouponService
    extras: ExtraService
    categories: CategoryService


def _build_repositories(settings: Settings) -> tuple[TierRepository, DocumentRepository]:
    storage = settings.storage
    if storage.backend == "sqlite" and storage.path:
        path = Path(storage.path).expanduser()
        logger.info("Using SQLite storage at %s", path)
        return SQLiteTierRepository(path), SQLiteDocumentRepository(path)

    logger.info("Using in-memory storage; data is lost on restart")
    return InMemoryTierRepository(), InMemoryDocumentRepository()


def build_services(
    settings: Settings,
    *,
    tier_repository: TierRepository | None = None,
    document_repository: DocumentRepository | None = None,
) -> ServiceRegistry:
    """Wire repositories into services, honouring explicitly supplied stores."""

    if tier_repository is None or document_repository is None:
        default_tiers, default_documents = _build_repositories(settings)
        tier_repository = tier_repository or default_tiers
        document_repository = document_repository or default_documents

    return ServiceRegistry(
        settings=settings,
        profit_grids=ProfitGridService(tier_repository, settings),
        coupons=CouponService(document_repository),
        extras=ExtraService(document_repository),
        categories=CategoryService(document_repository),
    )


def current_services() -> ServiceRegistry:
    """Return the registry attached to the active Flask application."""

    return current_app.extensions[EXTENSION_KEY]


__all__ = ["EXTENSION_KEY", "ServiceRegistry", "build_services", "current_services"]
