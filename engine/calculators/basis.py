"""
Basis Resolver

Picks the dollar amount commission rules are applied against.
"""

from decimal import Decimal

from ..models import BasisResolution, CalculationContext


class BasisResolver:
    """Resolves gross revenue vs. net sales for a transaction."""

    def resolve(self, context: CalculationContext) -> BasisResolution:
        """
        Resolve the basis once per calculation.

        NET_SALES uses net_amount; anything else (including unspecified)
        falls back to GROSS_REVENUE and gross_amount.
        """
        if context.commission_basis == "NET_SALES":
            amount = self.check_amount(context.net_amount, "net_amount", "NET_SALES")
            return BasisResolution(basis="NET_SALES", basis_amount=amount)

        amount = self.check_amount(context.gross_amount, "gross_amount", "GROSS_REVENUE")
        return BasisResolution(basis="GROSS_REVENUE", basis_amount=amount)

    @staticmethod
    def check_amount(amount: Decimal | None, field_name: str, basis: str | None = None) -> Decimal:
        """Fail fast on a missing or non-finite basis amount."""
        if amount is None:
            if basis is None:
                raise ValueError(f"{field_name} is required")
            raise ValueError(f"{field_name} is required when commission_basis={basis}")
        if not amount.is_finite():
            raise ValueError(f"{field_name} must be a finite number, got: {amount}")
        return amount

    @staticmethod
    def basis_name(context: CalculationContext | None) -> str:
        if context is not None and context.commission_basis == "NET_SALES":
            return "NET_SALES"
        return "GROSS_REVENUE"
