"""
Checked unsigned 256-bit integer helpers.

All amounts handled by the engine are non-negative integers bounded by
``UINT256_MAX``. Python integers never wrap, so the bound is enforced
explicitly: any operand or result outside ``[0, UINT256_MAX]`` raises
``ArithmeticOverflow`` instead of being truncated. Division always floors.
"""

from __future__ import annotations

from typing import Final

from .exceptions import ArithmeticOverflow

UINT256_MAX: Final[int] = 2**256 - 1

# 10**77 is the largest power of ten below 2**256
MAX_POW10_EXPONENT: Final[int] = 77


def require_uint256(*values: int, name: str = "value") -> None:
    """Raise if any value is not an int in [0, UINT256_MAX]."""
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ArithmeticOverflow(
                f"{name} must be an integer, got {type(value).__name__}",
                details={"name": name},
            )
        if value < 0 or value > UINT256_MAX:
            raise ArithmeticOverflow(
                f"{name} out of uint256 range",
                details={"name": name, "value": value},
            )


def checked_add(x: int, y: int, name: str = "add") -> int:
    require_uint256(x, y, name=name)
    result = x + y
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{name}: addition overflow", details={"x": x, "y": y})
    return result


def checked_sub(x: int, y: int, name: str = "sub") -> int:
    require_uint256(x, y, name=name)
    if y > x:
        raise ArithmeticOverflow(f"{name}: subtraction underflow", details={"x": x, "y": y})
    return x - y


def checked_mul(x: int, y: int, name: str = "mul") -> int:
    require_uint256(x, y, name=name)
    result = x * y
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{name}: multiplication overflow", details={"x": x, "y": y})
    return result


def mul_div_down(x: int, y: int, denominator: int, name: str = "mul_div") -> int:
    """
    floor(x * y / denominator) with a full-width intermediate product.

    The intermediate ``x * y`` may exceed 256 bits (it is exact in Python);
    only the operands and the final quotient must fit.

    Raises:
        ArithmeticOverflow: operand or quotient out of range
        ZeroDivisionError: denominator is zero (callers map this to a domain error)
    """
    require_uint256(x, y, denominator, name=name)
    if denominator == 0:
        raise ZeroDivisionError(f"{name}: division by zero")
    result = (x * y) // denominator
    if result > UINT256_MAX:
        raise ArithmeticOverflow(
            f"{name}: quotient exceeds uint256",
            details={"x": x, "y": y, "denominator": denominator},
        )
    return result


def pow10(exponent: int) -> int:
    """10**exponent, refusing exponents whose result would not fit."""
    if exponent < 0 or exponent > MAX_POW10_EXPONENT:
        raise ArithmeticOverflow(
            "pow10: exponent out of range",
            details={"exponent": exponent, "max": MAX_POW10_EXPONENT},
        )
    return 10**exponent
