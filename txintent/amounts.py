"""
Fixed-point amount scaling.

Human-readable amounts ("1.5") are converted to integer minor units
(wei, lamports, token base units) with Decimal arithmetic and an explicit
floor rounding rule. Binary floats never take part in the scaling.
"""
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, localcontext
from typing import Union

AmountLike = Union[str, int, float, Decimal]

# Enough digits for uint256 values plus any realistic decimals count
_PRECISION = 100


def parse_amount(value: AmountLike) -> Decimal:
    """
    Parse a user supplied amount into a finite Decimal.

    Floats are routed through ``str`` so ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a valid number")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError("Amount must be a valid number")
    if not amount.is_finite():
        raise ValueError("Amount must be a valid number")
    return amount


def to_raw_amount(value: AmountLike, decimals: int) -> int:
    """
    Scale an amount by ``10**decimals`` and floor it to an integer.

    Args:
        value: Human-readable amount
        decimals: Decimal count of the asset (18 for ether, 9 for SOL)

    Returns:
        Integer amount in minor units
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    amount = parse_amount(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = amount.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_raw_amount(raw: int, decimals: int) -> Decimal:
    """Inverse of :func:`to_raw_amount` for display purposes"""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(raw).scaleb(-decimals)
