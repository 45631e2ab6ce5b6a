"""Unit tests for JSON request body helpers."""

from __future__ import annotations

import pytest
from flask import Flask, request
from werkzeug.exceptions import BadRequest

from storefront.backend.services.request_parser import parse_json_list, parse_json_object


def test_parse_json_object_returns_mapping(app: Flask) -> None:
    with app.test_request_context(
        "/api/v1/profitGrids/calculate",
        method="POST",
        json={"amount": 500, "currency": "EUR"},
    ):
        payload = parse_json_object(request)

    assert payload == {"amount": 500, "currency": "EUR"}


def test_parse_json_object_rejects_non_object(app: Flask) -> None:
    """Non-object JSON payloads should trigger BadRequest responses."""

    with app.test_request_context(
        "/api/v1/profitGrids",
        method="POST",
        json=["not", "an", "object"],
    ):
        with pytest.raises(BadRequest):
            parse_json_object(request)


def test_parse_json_object_rejects_invalid_json(app: Flask) -> None:
    with app.test_request_context(
        "/api/v1/profitGrids",
        method="POST",
        data="{not json",
        content_type="application/json",
    ):
        with pytest.raises(BadRequest):
            parse_json_object(request)


@pytest.mark.parametrize("body", [[{"title": "A"}], {"items": [{"title": "A"}]}])
def test_parse_json_list_accepts_arrays_and_items_wrapper(app: Flask, body: object) -> None:
    with app.test_request_context("/api/v1/coupons/many", method="POST", json=body):
        assert parse_json_list(request) == [{"title": "A"}]


def test_parse_json_list_rejects_objects(app: Flask) -> None:
    with app.test_request_context("/api/v1/coupons/many", method="POST", json={"title": "A"}):
        with pytest.raises(BadRequest):
            parse_json_list(request)
