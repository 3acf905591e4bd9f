from __future__ import annotations

import math
import os
import re
from typing import Optional, Union

PT_PER_INCH = 72.0

_COMPLETE_NUMBER = re.compile(r"^[+-]?(\d+(\.\d+)?|\.\d+)$")
_NUMBER_PREFIX = re.compile(r"^[+-]?\d*\.?\d*$")

NumericInput = Union[float, int, str]


def inch_to_pt(value_in: float) -> float:
    return value_in * PT_PER_INCH


def format_inches(value: float) -> str:
    """Render a measurement to three decimals without trailing zeros."""
    rounded = round(value, 3)
    if rounded == 0:
        rounded = 0.0
    return f"{rounded:g}"


def slugify(value: str) -> str:
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "_", value)
    value = re.sub(r"_+", "_", value)
    return value.strip("_") or "setup_sheet"


def ensure_directory(path: str) -> None:
    os.makedirs(path, exist_ok=True)


class ValidationError(Exception):
    """Raised when a caller hands the engine something it cannot accept."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def is_complete_number(text: str) -> bool:
    return bool(_COMPLETE_NUMBER.match(text.strip()))


def is_number_prefix(text: str) -> bool:
    """True for text that could still become a number (``""``, ``"-"``, ``"1."``)."""
    return bool(_NUMBER_PREFIX.match(text.strip()))


def try_number(value: NumericInput) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and is_complete_number(value):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def effective_number(value: NumericInput, fallback: float) -> float:
    number = try_number(value)
    return fallback if number is None else number


def parse_float(value: str, field_name: str) -> float:
    try:
        result = float(value)
    except ValueError as exc:  # noqa: B904
        raise ValidationError(field_name, "must be a number") from exc
    if not math.isfinite(result):
        raise ValidationError(field_name, "must be a finite number")
    return result


def parse_positive_float(value: str, field_name: str) -> float:
    result = parse_float(value, field_name)
    if result <= 0:
        raise ValidationError(field_name, "must be greater than zero")
    return result
