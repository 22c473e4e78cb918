"""
Commission Cap Enforcer

Applies a rule's min/max limits to the commission it computed.
"""

from decimal import Decimal

from ..models import CommissionRule
from ..money import quantize_money


class CapEnforcer:
    """Enforces per-rule commission floors and ceilings."""

    def apply(self, calculated: Decimal, rule: CommissionRule) -> tuple[Decimal, bool, bool]:
        """
        Apply min/max caps to a calculated commission.

        Returns (applied_amount, capped_by_min, capped_by_max).

        Caps limit the commission amount, never the sale amount. The minimum
        is checked first; min and max are mutually exclusive outcomes.
        """
        if rule.min_amount is not None and calculated < rule.min_amount:
            return quantize_money(rule.min_amount), True, False

        if rule.max_amount is not None and calculated > rule.max_amount:
            return quantize_money(rule.max_amount), False, True

        return calculated, False, False
