"""Monetary rounding utilities"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_payable(amount: Decimal) -> Decimal:
    """Round to 2 decimal places (the payable-amount boundary)"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(total: Decimal, percentage: float) -> Decimal:
    """Payable share of a total, rounded once"""
    share = Decimal(str(total)) * Decimal(str(percentage)) / Decimal(100)
    return to_payable(share)
