"""
Rule Stacker

Evaluates a set of simultaneously-applicable rules and sums them.
"""

from decimal import Decimal

from ..models import CommissionRule, RuleEvaluation
from ..money import ZERO, quantize_money
from .rule_evaluator import RuleEvaluator


class RuleStacker:
    """Sums the individually-capped output of every rule it is given."""

    def __init__(self, evaluator: RuleEvaluator | None = None):
        self.evaluator = evaluator or RuleEvaluator()

    def stack(self, basis_amount: Decimal, rules: list[CommissionRule]) -> tuple[list[RuleEvaluation], Decimal]:
        """
        Evaluate each rule against the same basis amount.

        Returns (evaluations, total_commission). Caps are applied per rule
        before summing, never to the total.
        """
        evaluations = [self.evaluator.evaluate(basis_amount, rule) for rule in rules]
        total = sum((e.applied_amount for e in evaluations), ZERO)
        return evaluations, quantize_money(total)
