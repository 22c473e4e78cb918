"""
Rule Evaluator

Computes the commission a single rule produces for a basis amount.
All use Decimal for precision with ROUND_HALF_UP rounding to the cent.
"""

import logging
from decimal import Decimal

from ..models import CommissionRule, RuleEvaluation, Tier, TierContribution
from ..money import HUNDRED, ZERO, quantize_money
from .caps import CapEnforcer

logger = logging.getLogger(__name__)


class RuleEvaluator:
    """Evaluates one commission rule against a basis amount."""

    def __init__(self, cap_enforcer: CapEnforcer | None = None):
        self.cap_enforcer = cap_enforcer or CapEnforcer()

    def evaluate(self, basis_amount: Decimal, rule: CommissionRule) -> RuleEvaluation:
        """
        Evaluate a rule and apply its caps.

        Misconfigured rules (missing value, empty tiers, unknown type)
        contribute zero instead of raising, so one bad rule cannot abort
        the whole calculation.
        """
        tier_breakdown: list[TierContribution] = []

        if rule.rule_type == "PERCENTAGE":
            calculated = self._calculate_percentage(basis_amount, rule)
        elif rule.rule_type == "FLAT_AMOUNT":
            calculated = self._calculate_flat(rule)
        elif rule.rule_type == "TIERED":
            tier_breakdown = self._calculate_tiered(basis_amount, rule)
            calculated = sum((t.commission for t in tier_breakdown), ZERO)
        else:
            logger.warning(f"Unsupported rule type {rule.rule_type} on rule {rule.id}, contributing 0")
            calculated = ZERO

        calculated = quantize_money(calculated)
        applied, capped_by_min, capped_by_max = self.cap_enforcer.apply(calculated, rule)

        return RuleEvaluation(
            rule=rule,
            calculated_amount=calculated,
            applied_amount=applied,
            capped_by_min=capped_by_min,
            capped_by_max=capped_by_max,
            tier_breakdown=tier_breakdown,
        )

    def _calculate_percentage(self, basis_amount: Decimal, rule: CommissionRule) -> Decimal:
        """basis × value%. Negative basis (returns) gives a negative commission."""
        if rule.value is None:
            logger.warning(f"PERCENTAGE rule {rule.id} has no value, contributing 0")
            return ZERO
        return quantize_money(basis_amount * rule.value / HUNDRED)

    def _calculate_flat(self, rule: CommissionRule) -> Decimal:
        """Flat amount, independent of the basis amount."""
        if rule.value is None:
            logger.warning(f"FLAT_AMOUNT rule {rule.id} has no value, contributing 0")
            return ZERO
        return quantize_money(rule.value)

    def _calculate_tiered(self, basis_amount: Decimal, rule: CommissionRule) -> list[TierContribution]:
        """
        Walk the tiers, charging each tier's rate on the slice of the basis
        between its threshold and the next one (no upper bound on the last).

        Handles:
        - Basis below the first threshold (no contribution)
        - Equal thresholds (empty slice, skipped)
        - Zero-commission slices such as a 0% base band (skipped)
        - Empty tier list (logged, zero)
        """
        if not rule.tiers:
            logger.warning(f"TIERED rule {rule.id} has no tiers, contributing 0")
            return []

        tiers: list[Tier] = sorted(rule.tiers, key=lambda t: t.threshold)
        breakdown = []

        for i, tier in enumerate(tiers):
            if basis_amount <= tier.threshold:
                break

            upper = tiers[i + 1].threshold if i + 1 < len(tiers) else None
            top = basis_amount if upper is None else min(basis_amount, upper)
            slice_amount = top - tier.threshold
            if slice_amount <= 0:
                continue

            commission = quantize_money(slice_amount * tier.rate / HUNDRED)
            if commission == 0:
                continue

            breakdown.append(
                TierContribution(
                    threshold=tier.threshold,
                    rate=tier.rate,
                    amount=quantize_money(slice_amount),
                    commission=commission,
                )
            )

        return breakdown
