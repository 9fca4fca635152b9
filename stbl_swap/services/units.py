"""Conversions between human decimal amounts and integer base units, plus display formatting."""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from ..core.errors import InvalidAmount

# Wide enough that scaling never rounds for any realistic input length
_PRECISION = 120

_THOUSAND = Decimal("1000")
_ONE = Decimal("1")
_CENT = Decimal("0.01")


def _to_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None:
        return None
    if isinstance(raw, Decimal):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        return None


def _trim(text: str) -> str:
    if "." not in text:
        return text
    return text.rstrip("0").rstrip(".")


def _quantize(value: Decimal, places: int, rounding: str = ROUND_HALF_UP) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def parse_decimal(text: Any) -> Optional[Decimal]:
    """Parse any finite decimal, sign included; None otherwise."""

    value = _to_decimal(text)
    if value is None or not value.is_finite():
        return None
    return value


def parse_amount(text: Any) -> Optional[Decimal]:
    """Parse a user-entered amount; None when it is not a finite non-negative number."""

    value = parse_decimal(text)
    if value is None or value < 0:
        return None
    return value


def is_positive_amount(text: Any) -> bool:
    value = parse_amount(text)
    return value is not None and value > 0


def to_base_units(human_amount: Any, decimals: int) -> int:
    """
    Convert a human decimal amount into integer base units.

    The result is truncated toward zero, so it never exceeds the amount the
    user typed. Raises InvalidAmount for anything that is not a finite,
    non-negative number.
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")

    value = parse_amount(human_amount)
    if value is None:
        raise InvalidAmount(f"{human_amount!r} is not a valid amount")

    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            scaled = value.scaleb(decimals)
            if scaled.adjusted() >= _PRECISION:
                raise InvalidAmount(f"{human_amount!r} is out of range")
            return int(scaled.to_integral_value(rounding=ROUND_DOWN))
    except ArithmeticError as exc:
        # Exponent outside the decimal context (e.g. "1e999999")
        raise InvalidAmount(f"{human_amount!r} is out of range") from exc


def from_base_units(amount: int, decimals: int) -> str:
    """Render base units as a plain decimal string without trailing zeros."""

    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    if int(amount) < 0:
        raise InvalidAmount(f"{amount!r} is negative")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(int(amount)).scaleb(-decimals)
    return _trim(format(value, "f"))


def format_token_amount(value: Any, places: int = 6) -> str:
    """Fixed number of decimals, then trimmed. Empty string for unparseable input."""

    number = _to_decimal(value)
    if number is None or not number.is_finite():
        return ""
    return _trim(format(_quantize(number, places), "f"))


def format_currency(amount: Any) -> str:
    """
    Tiered USD formatting.

    >= 1000 shows grouped whole dollars, [1, 1000) up to 2 decimals,
    [0.01, 1) up to 4, anything smaller up to 6.
    """
    number = _to_decimal(amount)
    if number is None or not number.is_finite():
        return ""

    if number >= _THOUSAND:
        return f"${format(_quantize(number, 0), ',f')}"
    if number >= _ONE:
        places = 2
    elif number >= _CENT:
        places = 4
    else:
        places = 6
    return f"${_trim(format(_quantize(number, places), 'f'))}"


def format_usd_value(amount: Any) -> str:
    """Grouped dollar value with at most two decimals, used for the input estimate."""

    number = _to_decimal(amount)
    if number is None or not number.is_finite():
        return ""
    return _trim(format(_quantize(number, 2), ",f"))


def format_percent(change: Any) -> str:
    """24h change with two decimals and an explicit sign for non-negative values."""

    number = _to_decimal(change)
    if number is None or not number.is_finite():
        return ""
    sign = "+" if number >= 0 else ""
    return f"{sign}{format(_quantize(number, 2), 'f')}%"


def format_price_impact(fraction: Any) -> str:
    number = _to_decimal(fraction)
    if number is None or not number.is_finite():
        return ""
    return f"{format(_quantize(number * 100, 3), 'f')}%"


def truncate_address(address: Optional[str]) -> str:
    if not address:
        return ""
    return f"{address[:4]}...{address[-4:]}"
