"""Coercion helpers for ERP values that arrive as strings or numbers."""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# Values the dashboards use to mean "no constraint"
UNSET_SENTINELS = frozenset({"", "todos", "todas", "all", "any", "*"})


def is_unset(value: Any) -> bool:
    """Return True for None and the "all" sentinels ("todos", "all", ...)."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in UNSET_SENTINELS
    return False


def coerce_int(value: Any) -> Optional[int]:
    """Coerce an id/year/month value to int.

    Handles:
    - 2024
    - "2024"
    - " 2024 "
    - 2024.0 / "2024.0"

    Returns None for missing, sentinel or non-integral values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return None
    if isinstance(value, str):
        text = value.strip()
        if is_unset(text):
            return None
        if re.fullmatch(r"[+-]?\d+", text):
            return int(text)
        if re.fullmatch(r"[+-]?\d+\.0*", text):
            return int(text.split(".")[0])
    return None


def same_id(left: Any, right: Any) -> bool:
    """Compare two ids regardless of string/number representation."""
    left_id = coerce_int(left)
    if left_id is None:
        return False
    return left_id == coerce_int(right)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "123,45" (comma as decimal separator)
    - "€123.45"
    - "-123.45"
    - "1,234.56"
    - "1.234,56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and inner whitespace
    amount_str = re.sub(r"[$€£¥\s]", "", amount_str)

    if "," in amount_str and "." in amount_str:
        if amount_str.rfind(",") > amount_str.rfind("."):
            # 1.234,56
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            amount_str = amount_str.replace(",", "")
    elif "," in amount_str:
        amount_str = amount_str.replace(",", ".")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not finite")
    return -amount if is_negative else amount


def try_amount(value: Any) -> Optional[float]:
    """Coerce a money/quantity value to float.

    Missing values (None, blank strings) count as 0.0. A value that is present
    but is not a finite number returns None so the caller can report it.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        if not value.strip():
            return 0.0
        try:
            return float(parse_amount(value))
        except ValueError:
            return None
    return None


def coerce_amount(value: Any, default: float = 0.0) -> float:
    """Coerce a money/quantity value to float, falling back to ``default``."""
    if value is None:
        return default
    amount = try_amount(value)
    return default if amount is None else amount
