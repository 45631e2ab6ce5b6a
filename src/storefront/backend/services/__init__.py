"""Request/response helpers for the storefront backend."""

from .request_parser import parse_json_list, parse_json_object
from .response_builder import build_collection_response, build_success_response

__all__ = [
    "build_collection_response",
    "build_success_response",
    "parse_json_list",
    "parse_json_object",
]
