from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction

NAN = float("nan")


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Fraction):
        return Decimal(value.numerator) / Decimal(value.denominator)
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value, places: int = 0):
    """Round away from zero on ties. Whole units come back as ``int``, anything finer as ``float``."""
    if isinstance(value, float) and not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    rounded = _to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    if places == 0:
        return int(rounded)
    return float(rounded)


def coerce_money(value):
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("money amount must be numeric")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        decimal_value = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError("money amount must be numeric") from exc
    if not decimal_value.is_finite():
        raise ValueError("money amount must be finite")
    return round_half_up(decimal_value)


def inclusive_tax(price: int, rate) -> int:
    if not rate or rate <= 0:
        return 0
    rate_value = _to_decimal(rate)
    return round_half_up(Decimal(price) * rate_value / (Decimal(100) + rate_value))


def scale(amount: int, ratio) -> int:
    if not ratio:
        return amount
    return round_half_up(Fraction(amount) * (1 - Fraction(ratio)))


def safe_ratio(part, whole) -> float:
    if not whole:
        return NAN
    return part / whole


def percentage(part, whole) -> float:
    if not whole:
        return NAN
    return part / whole * 100


def average_or_zero(total, count) -> float:
    if not count:
        return 0.0
    return total / count
