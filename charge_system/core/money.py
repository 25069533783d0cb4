"""
Exact money helpers.

Amounts travel through the system as ``Decimal`` quantized to cents and are
persisted as integer minor units, so no binary floating point is involved
anywhere between the request and the barcode.
"""
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def quantize_amount(amount: Decimal | int | str) -> Decimal:
    """Round an amount to two decimal places (half up)."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal | int | str) -> int:
    """
    Convert an amount to integer minor units.

    Example: to_minor_units(Decimal("150.50")) == 15050
    """
    return int(quantize_amount(amount) * 100)


def from_minor_units(amount_cents: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    return (Decimal(amount_cents) / 100).quantize(CENT)
