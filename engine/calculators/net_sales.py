"""
Net Sales Calculator

Nets returns and credits out of a transaction's gross amount.
"""

from decimal import Decimal

from ..money import ZERO


class NetSalesCalculator:
    """Calculates net sales (gross - returns/credits)."""

    def calculate(self, gross_amount: Decimal, returns: list[Decimal]) -> Decimal:
        """
        Net sales for one logical sale.

        Return amounts are subtracted by magnitude, whichever sign they were
        recorded with. The result is never negative.
        """
        total_returns = sum((abs(r) for r in returns), ZERO)
        return max(ZERO, gross_amount - total_returns)
