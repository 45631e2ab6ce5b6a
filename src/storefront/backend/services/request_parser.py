"""Helpers for normalising incoming JSON request bodies."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Request
from werkzeug.exceptions import BadRequest


def _load_json(req: Request) -> Any:
    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request body must be valid JSON")
    return data


def parse_json_object(req: Request) -> dict[str, Any]:
    """Extract a JSON object from ``req``."""

    data = _load_json(req)
    if not isinstance(data, Mapping):
        raise BadRequest("Request JSON must be an object")
    return dict(data)


def parse_json_list(req: Request) -> list[Any]:
    """Extract a JSON array from ``req``, accepting ``{"items": [...]}`` too."""

    data = _load_json(req)
    if isinstance(data, Mapping) and isinstance(data.get("items"), list):
        data = data["items"]
    if not isinstance(data, list):
        raise BadRequest("Request JSON must be an array")
    return data
