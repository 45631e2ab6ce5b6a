"""Utilities for serialising service results into response envelopes."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Tuple

from flask import jsonify

ResponseTuple = Tuple[Any, int]


def _serialise(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, (list, tuple)):
        return [_serialise(item) for item in value]
    return value


def build_success_response(payload: Any, *, status: int = 200) -> ResponseTuple:
    """Return a Flask JSON response wrapping ``payload`` as ``{status, data}``."""

    return jsonify({"status": status, "data": _serialise(payload)}), status


def build_collection_response(items: Iterable[Any]) -> ResponseTuple:
    """Serialise a sequence of records."""

    return build_success_response([_serialise(item) for item in items])
