"""
Sale Amount Filter

Caller-stage filter that drops rules whose sale amount range excludes the
transaction, before they reach precedence selection.
"""

from decimal import Decimal

from ..models import CommissionRule


class SaleAmountFilter:
    """Applies min_sale_amount / max_sale_amount (both inclusive)."""

    def applies(self, rule: CommissionRule, sale_amount: Decimal) -> bool:
        if rule.min_sale_amount is not None and sale_amount < rule.min_sale_amount:
            return False
        if rule.max_sale_amount is not None and sale_amount > rule.max_sale_amount:
            return False
        return True

    def filter(self, rules: list[CommissionRule], sale_amount: Decimal) -> list[CommissionRule]:
        return [rule for rule in rules if self.applies(rule, sale_amount)]
