"""
Numbers - Conversion between on-chain base units and decimal amounts.

Tokens are stored on-chain as unsigned integers scaled by ``10**decimals``.
Callers work with human amounts ("1.5" tokens); contracts want base units
(1500000000000000000).  Both directions are exact: no float arithmetic is
ever involved.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

MAX_UINT256 = 2**256 - 1
MAX_DECIMALS = 255  # decimals() is a uint8
DEFAULT_DECIMALS = 18

AmountLike = Union[int, str, Decimal, float]


def _check_decimals(decimals: int) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise TypeError(f"decimals must be an int, got {type(decimals).__name__}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")
    return decimals


def _parse_decimal(value: AmountLike) -> Decimal:
    """Turn an accepted amount into an exact Decimal."""
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric amount")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, float):
        # repr gives the shortest string that round-trips the float
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace("_", "")
        if not text:
            raise ValueError("Empty string is not a numeric amount")
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Not a numeric amount: {value!r}") from None
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")

    if not parsed.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return parsed


def to_base_units(value: AmountLike, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a human amount to on-chain base units.

    Args:
        value: Amount such as ``"1.5"``, ``Decimal("2")`` or ``10``
        decimals: Token precision (power of ten between units)

    Returns:
        Integer amount in base units

    Raises:
        TypeError: If value is not a number or numeric string
        ValueError: If value is negative, not finite, has more fractional
            digits than ``decimals`` allows, or overflows uint256
    """
    _check_decimals(decimals)
    amount = _parse_decimal(value)
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {value!r}")

    if amount == 0:
        return 0

    _, digits, exponent = amount.as_tuple()
    # Drop trailing zeros so "1.500" counts as one fractional digit
    stripped = list(digits)
    exp = exponent
    while exp < 0 and stripped[-1] == 0:
        stripped.pop()
        exp += 1
    if -exp > decimals:
        raise ValueError(
            f"Amount {value!r} has more than {decimals} fractional digits"
        )

    if len(stripped) + exp + decimals > len(str(MAX_UINT256)):
        raise ValueError(f"Amount {value!r} exceeds uint256 in base units")

    coefficient = int("".join(str(d) for d in stripped))
    base = coefficient * 10 ** (exp + decimals)
    if base > MAX_UINT256:
        raise ValueError(f"Amount {value!r} exceeds uint256 in base units")
    return base


def _parse_base_units(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise TypeError("bool is not a base-unit amount")
    if isinstance(value, int):
        base = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            base = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError:
            raise ValueError(f"Not an integer base-unit amount: {value!r}") from None
    else:
        raise TypeError(f"Base units must be an int or integer string, got {type(value).__name__}")

    if base < 0:
        raise ValueError(f"Base units must not be negative, got {value!r}")
    return base


def to_decimal(value: Union[int, str], decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """
    Convert on-chain base units to a human amount.

    Args:
        value: Integer base units, or its decimal / ``0x`` hex string form
        decimals: Token precision

    Returns:
        Exact Decimal with trailing zeros removed
    """
    _check_decimals(decimals)
    base = _parse_base_units(value)

    with localcontext() as ctx:
        ctx.prec = len(str(base)) + decimals + 1
        result = Decimal(base).scaleb(-decimals)
        if result == result.to_integral_value():
            return result.quantize(Decimal(1))
        return result.normalize()


def format_amount(value: Union[int, str], decimals: int = DEFAULT_DECIMALS) -> str:
    """Base units as a plain decimal string (never scientific notation)."""
    return format(to_decimal(value, decimals), "f")
