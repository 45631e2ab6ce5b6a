"""REST endpoints for profit grid tiers and profit calculations."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, request

from storefront.backend.app.services.profit_grid_service import (
    ProfitGridService,
    parse_id_list,
)
from storefront.backend.app.services.registry import current_services
from storefront.backend.services import (
    build_collection_response,
    build_success_response,
    parse_json_object,
)

blueprint = Blueprint("profit_grids", __name__, url_prefix="/api/v1")


def _service() -> ProfitGridService:
    return current_services().profit_grids


@blueprint.post("/profitGrids")
def create_tier() -> tuple[Any, int]:
    tier = _service().create(parse_json_object(request))
    return build_success_response(tier, status=201)


@blueprint.get("/profitGrids")
def list_tiers() -> tuple[Any, int]:
    return build_collection_response(_service().list())


@blueprint.get("/profitGrids/showing")
def list_active_tiers() -> tuple[Any, int]:
    return build_collection_response(_service().list_active())


@blueprint.post("/profitGrids/calculate")
def calculate() -> tuple[Any, int]:
    """Resolve the active tier for an amount and return the profit breakdown."""

    result = _service().calculate_payload(parse_json_object(request))
    return build_success_response(result)


@blueprint.delete("/profitGrids/<string:ids>/many")
def delete_many_tiers(ids: str) -> tuple[Any, int]:
    deleted = _service().delete_many(parse_id_list(ids))
    return build_success_response({"deleted_count": deleted})


@blueprint.get("/profitGrid/<string:tier_id>")
def get_tier(tier_id: str) -> tuple[Any, int]:
    return build_success_response(_service().get_by_id(tier_id))


@blueprint.put("/profitGrid/<string:tier_id>")
def replace_tier(tier_id: str) -> tuple[Any, int]:
    return build_success_response(_service().update(tier_id, parse_json_object(request)))


@blueprint.patch("/profitGrid/<string:tier_id>")
def patch_tier(tier_id: str) -> tuple[Any, int]:
    return build_success_response(_service().patch(tier_id, parse_json_object(request)))


@blueprint.patch("/profitGrid/<string:tier_id>/status")
def update_tier_status(tier_id: str) -> tuple[Any, int]:
    tier = _service().update_status(tier_id, parse_json_object(request))
    return build_success_response(tier)


@blueprint.delete("/profitGrid/<string:tier_id>")
def delete_tier(tier_id: str) -> tuple[Any, int]:
    return build_success_response(_service().delete(tier_id))
