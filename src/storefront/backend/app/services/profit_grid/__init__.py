"""Rate engine components: tier validation, rate resolution, and profit maths."""

from .calculator import compute
from .resolver import resolve, sort_tiers
from .utils import apply_rate, ranges_overlap, round_currency
from .validator import ValidationResult, find_overlapping, validate_tier

__all__ = [
    "ValidationResult",
    "apply_rate",
    "compute",
    "find_overlapping",
    "ranges_overlap",
    "resolve",
    "round_currency",
    "sort_tiers",
    "validate_tier",
]
