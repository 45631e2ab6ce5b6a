"""Unit tests for response formatting helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import Flask

from storefront.backend.app.http import error_response, problem_response
from storefront.backend.app.services.errors import FieldViolation, ValidationFailedError
from storefront.backend.services.response_builder import (
    build_collection_response,
    build_success_response,
)


@dataclass(frozen=True)
class Record:
    value: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return {"value": self.value}


def test_build_success_response_wraps_payload(app: Flask) -> None:
    with app.app_context():
        response, status = build_success_response({"foo": "bar"}, status=201)

    assert status == 201
    assert response.get_json() == {"status": 201, "data": {"foo": "bar"}}


def test_decimals_are_serialised_as_strings(app: Flask) -> None:
    with app.app_context():
        response, _ = build_success_response(Record(Decimal("40.00")))

    assert response.get_json()["data"] == {"value": "40.00"}


def test_build_collection_response_serialises_each_item(app: Flask) -> None:
    with app.app_context():
        response, status = build_collection_response([Record(Decimal("1")), Record(Decimal("2.5"))])

    assert status == 200
    assert response.get_json()["data"] == [{"value": "1"}, {"value": "2.5"}]


def test_problem_response_uses_errno_when_message_missing() -> None:
    assert problem_response("generic_error", status=500).as_dict() == {
        "status": 500,
        "errNo": "generic_error",
        "errMsg": "generic_error",
    }


def test_error_response_includes_field_violations() -> None:
    error = ValidationFailedError([FieldViolation(field="max_amount", reason="too small")])

    payload = error_response(error).as_dict()

    assert payload["status"] == 412
    assert payload["errNo"] == "validator"
    assert payload["errors"] == [{"field": "max_amount", "reason": "too small"}]
    assert "max_amount" in payload["errMsg"]
