"""REST endpoints for catalog collections: coupons, extras, and categories.

The three collections share the same CRUD surface, so their blueprints are
produced by :func:`build_catalog_blueprint`; collection-specific read routes
are attached afterwards.
"""

from __future__ import annotations

from typing import Any, Callable

from flask import Blueprint, request

from storefront.backend.app.services.catalog_service import (
    CatalogService,
    CategoryService,
    CouponService,
)
from storefront.backend.app.services.profit_grid_service import parse_id_list
from storefront.backend.app.services.registry import ServiceRegistry, current_services
from storefront.backend.services import (
    build_collection_response,
    build_success_response,
    parse_json_list,
    parse_json_object,
)

ServiceGetter = Callable[[ServiceRegistry], CatalogService]


def build_catalog_blueprint(
    name: str,
    plural: str,
    singular: str,
    get_service: ServiceGetter,
    *,
    include_index: bool = True,
) -> Blueprint:
    """Create a blueprint exposing the shared CRUD routes for one collection."""

    blueprint = Blueprint(name, __name__, url_prefix="/api/v1")

    def service() -> CatalogService:
        return get_service(current_services())

    if include_index:

        @blueprint.get(f"/{plural}")
        def index() -> tuple[Any, int]:
            return build_collection_response(service().index())

        @blueprint.get(f"/{plural}/showing")
        def showing() -> tuple[Any, int]:
            return build_collection_response(service().showing())

    @blueprint.post(f"/{plural}")
    def store() -> tuple[Any, int]:
        return build_success_response(service().store(parse_json_object(request)), status=201)

    @blueprint.post(f"/{plural}/many")
    def store_many() -> tuple[Any, int]:
        documents = service().store_many(parse_json_list(request))
        return build_success_response(documents, status=201)

    @blueprint.delete(f"/{plural}/<string:ids>/many")
    def delete_many(ids: str) -> tuple[Any, int]:
        deleted = service().delete_many(parse_id_list(ids))
        return build_success_response({"deleted_count": deleted})

    @blueprint.get(f"/{singular}/<string:document_id>")
    def show(document_id: str) -> tuple[Any, int]:
        return build_success_response(service().show(document_id))

    @blueprint.put(f"/{singular}/<string:document_id>")
    def update(document_id: str) -> tuple[Any, int]:
        document = service().update(document_id, parse_json_object(request))
        return build_success_response(document)

    @blueprint.put(f"/{singular}/<string:document_id>/status")
    def update_status(document_id: str) -> tuple[Any, int]:
        document = service().update_status(document_id, parse_json_object(request))
        return build_success_response(document)

    @blueprint.delete(f"/{singular}/<string:document_id>")
    def delete(document_id: str) -> tuple[Any, int]:
        return build_success_response(service().delete(document_id))

    return blueprint


coupons_blueprint = build_catalog_blueprint(
    "coupons", "coupons", "coupon", lambda registry: registry.coupons
)
extras_blueprint = build_catalog_blueprint(
    "extras", "extras", "extra", lambda registry: registry.extras
)
categories_blueprint = build_catalog_blueprint(
    "categories",
    "categories",
    "category",
    lambda registry: registry.categories,
    include_index=False,
)


@coupons_blueprint.get("/coupon/code/<string:code>")
def show_coupon_by_code(code: str) -> tuple[Any, int]:
    coupons: CouponService = current_services().coupons
    return build_success_response(coupons.show_by_code(code))


def _categories() -> CategoryService:
    return current_services().categories


@categories_blueprint.get("/categories")
def list_categories() -> tuple[Any, int]:
    return build_collection_response(_categories().index())


@categories_blueprint.get("/categories/all")
def category_tree() -> tuple[Any, int]:
    """Every category nested under its parent."""

    return build_success_response(_categories().tree())


@categories_blueprint.get("/categories/showing")
def showing_category_tree() -> tuple[Any, int]:
    return build_success_response(_categories().showing_tree())


__all__ = [
    "build_catalog_blueprint",
    "categories_blueprint",
    "coupons_blueprint",
    "extras_blueprint",
]
