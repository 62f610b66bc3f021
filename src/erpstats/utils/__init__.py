"""Utility functions for erpstats."""

from erpstats.utils.date_parser import (
    get_date_range,
    normalize_date,
    parse_date,
    parse_record_date,
)
from erpstats.utils.coercion import (
    coerce_amount,
    coerce_int,
    is_unset,
    parse_amount,
    try_amount,
)
from erpstats.utils.cache import TTLCache, make_key

__all__ = [
    "parse_date",
    "get_date_range",
    "parse_record_date",
    "normalize_date",
    "parse_amount",
    "coerce_amount",
    "try_amount",
    "coerce_int",
    "is_unset",
    "TTLCache",
    "make_key",
]
