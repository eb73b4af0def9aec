"""
Parse-or-default primitives for upstream money and quantity fields.

Every parser returns either ``Ok(value)`` or ``Defaulted(value, raw, reason)``
and never raises, so a single malformed field cannot abort a rollup.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Union

ZERO = Decimal("0")


@dataclass(frozen=True)
class Ok:
    """Field parsed cleanly."""
    value: Any

    @property
    def defaulted(self) -> bool:
        return False


@dataclass(frozen=True)
class Defaulted:
    """Field could not be used as-is; ``value`` is the fallback."""
    value: Any
    raw: Any
    reason: str

    @property
    def defaulted(self) -> bool:
        return True


ParseResult = Union[Ok, Defaulted]


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr keeps 0.1 as 0.1 instead of the binary expansion
        return Decimal(repr(value))
    if isinstance(value, str):
        return Decimal(value.strip().replace(",", ""))
    raise TypeError(f"unsupported type {type(value).__name__}")


def parse_decimal(value: Any, default: Decimal = ZERO) -> ParseResult:
    """Parse a money-like value into a finite Decimal."""
    if is_blank(value):
        return Defaulted(default, value, "missing")
    try:
        number = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return Defaulted(default, value, "not a number")
    if not number.is_finite():
        return Defaulted(default, value, "not finite")
    if number < 0:
        return Defaulted(default, value, "negative")
    return Ok(number)


def parse_quantity(value: Any, default: int = 0) -> ParseResult:
    """
    Parse a line quantity.

    Fractional input is truncated toward zero; anything non-numeric,
    non-finite or negative falls back to ``default``.
    """
    parsed = parse_decimal(value, Decimal(default))
    if isinstance(parsed, Defaulted):
        return Defaulted(default, value, parsed.reason)
    return Ok(int(parsed.value))


def parse_optional_decimal(value: Any) -> ParseResult:
    """Like ``parse_decimal`` but a missing value stays ``None``."""
    if is_blank(value):
        return Ok(None)
    parsed = parse_decimal(value)
    if isinstance(parsed, Defaulted):
        return Defaulted(None, value, parsed.reason)
    return parsed
