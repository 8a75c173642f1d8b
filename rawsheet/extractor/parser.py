"""Metadata field parsing utilities."""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any


def get_first_value(metadata: Mapping, *keys: str) -> Any:
    """Get first non-None value from metadata by keys."""
    for key in keys:
        if key in metadata and metadata[key] is not None:
            return metadata[key]
    return None


def parse_rational(value: Any) -> Fraction | None:
    """
    Parse an exiftool rational into an exact fraction.

    Accepts numbers (``-n`` output such as 0.005), strings like "1/200" or
    "0.5", and [numerator, denominator] pairs.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            return None
        numerator, denominator = _fraction(value[0]), _fraction(value[1])
        if numerator is None or not denominator:
            return None
        return numerator / denominator
    return _fraction(value)


def parse_decimal(value: Any) -> Decimal | None:
    """Parse an exiftool numeric value (e.g. FNumber 2.8) into a Decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (list, tuple)):
        fraction = parse_rational(value)
        if fraction is None:
            return None
        return Decimal(fraction.numerator) / Decimal(fraction.denominator)
    text = str(value).strip()
    if "/" in text:
        fraction = parse_rational(text)
        if fraction is None:
            return None
        return Decimal(fraction.numerator) / Decimal(fraction.denominator)
    try:
        result = Decimal(text)
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _fraction(value: Any) -> Fraction | None:
    # str() keeps floats like 0.005 exact: Fraction(0.005) would not be 1/200
    text = str(value).strip()
    try:
        return Fraction(text)
    except (ValueError, ZeroDivisionError):
        return None
