"""
Trace Builder

Captures how every candidate rule was judged during a calculation so a
commission can be explained later, even after rules or source data change.
"""

from datetime import datetime, timezone
from decimal import Decimal

from .calculators.precedence import PrecedenceSelector
from .models import (
    ENGINE_VERSION,
    SCOPE_CONTEXT_FIELDS,
    CalculationResult,
    CalculationTrace,
    CommissionRule,
    RuleCondition,
    RuleEvaluation,
    RuleTrace,
)
from .money import HUNDRED, ZERO, quantize_money, to_money
from .output import format_rule


class TraceBuilder:
    """Builds an explanation trace for a finished calculation."""

    def __init__(self, selector: PrecedenceSelector | None = None):
        self.selector = selector or PrecedenceSelector()

    def build(
        self,
        rules: list[CommissionRule],
        result: CalculationResult,
        calculated_at: str | None = None,
        sale_filters_applied: bool = True,
    ) -> CalculationTrace:
        """
        Trace every candidate rule against the result.

        Rules are listed in precedence order. Only rules that contributed to
        the total are marked selected and carry calculation details. When the
        caller skipped sale amount filtering, sale amount conditions are
        reported as not checked.
        """
        evaluations = {id(e.rule): e for e in result.applied_rules}

        rule_trace = []
        for rule in self.selector.order_by_precedence(rules):
            conditions = self._build_conditions(rule, result, sale_filters_applied)
            evaluation = evaluations.get(id(rule))
            rule_trace.append(
                RuleTrace(
                    rule_id=rule.id,
                    rule_type=rule.rule_type,
                    scope=rule.scope,
                    priority=rule.priority,
                    description=format_rule(rule),
                    conditions=conditions,
                    eligible=all(c.passed for c in conditions),
                    selected=evaluation is not None,
                    calculation=self._build_calculation(evaluation, result) if evaluation else None,
                )
            )

        return CalculationTrace(
            engine_version=ENGINE_VERSION,
            basis=result.basis,
            basis_amount=result.basis_amount,
            rule_trace=rule_trace,
            selected_rule_ids=[e.rule_id for e in result.applied_rules],
            commission_amount=result.total_commission,
            effective_rate=self.effective_rate(result.total_commission, result.basis_amount),
            calculated_at=calculated_at or datetime.now(timezone.utc).isoformat(),
        )

    @staticmethod
    def effective_rate(commission: Decimal, basis_amount: Decimal) -> Decimal:
        """Commission as a percentage of the basis; 0 when the basis is not positive."""
        if basis_amount <= 0:
            return ZERO
        return quantize_money(commission / basis_amount * HUNDRED)

    def _build_conditions(
        self, rule: CommissionRule, result: CalculationResult, sale_filters_applied: bool = True
    ) -> list[RuleCondition]:
        sale_amount = result.basis_amount
        conditions = []

        if not sale_filters_applied:
            for expected in (rule.min_sale_amount, rule.max_sale_amount):
                if expected is not None:
                    conditions.append(RuleCondition("sale_amount", "not_checked", expected, sale_amount, True))
        else:
            conditions.extend(self._sale_amount_conditions(rule, sale_amount))

        if rule.scope == "GLOBAL":
            conditions.append(RuleCondition("scope", "equals", "GLOBAL", "GLOBAL", True))
        elif result.mode == "stacked":
            # Stacked calculations skip scope matching entirely
            conditions.append(RuleCondition("scope", "not_checked", rule.scope, None, True))
        else:
            context_field = SCOPE_CONTEXT_FIELDS.get(rule.scope, "scope")
            actual = getattr(result.context, context_field, None) if result.context else None
            passed = result.context is not None and self.selector.rule_matches(rule, result.context)
            conditions.append(RuleCondition(context_field, "equals", rule.discriminator, actual, passed))

        return conditions

    def _sale_amount_conditions(self, rule: CommissionRule, sale_amount: Decimal) -> list[RuleCondition]:
        conditions = []

        if rule.min_sale_amount is not None:
            conditions.append(
                RuleCondition(
                    field="sale_amount",
                    operator="greater_than_or_equal",
                    expected=rule.min_sale_amount,
                    actual=sale_amount,
                    passed=sale_amount >= rule.min_sale_amount,
                )
            )

        if rule.max_sale_amount is not None:
            conditions.append(
                RuleCondition(
                    field="sale_amount",
                    operator="less_than_or_equal",
                    expected=rule.max_sale_amount,
                    actual=sale_amount,
                    passed=sale_amount <= rule.max_sale_amount,
                )
            )

        return conditions

    def _build_calculation(self, evaluation: RuleEvaluation, result: CalculationResult) -> dict:
        rule = evaluation.rule
        return {
            "basis": result.basis,
            "basis_amount": to_money(result.basis_amount),
            "rate": float(rule.value) if rule.rule_type == "PERCENTAGE" and rule.value is not None else None,
            "flat_amount": to_money(rule.value) if rule.rule_type == "FLAT_AMOUNT" and rule.value is not None else None,
            "tiers": [
                {"threshold": to_money(t.threshold), "rate": float(t.rate), "commission": to_money(t.commission)}
                for t in evaluation.tier_breakdown
            ],
            "raw_amount": to_money(evaluation.calculated_amount),
            "min_cap": to_money(rule.min_amount) if rule.min_amount is not None else None,
            "max_cap": to_money(rule.max_amount) if rule.max_amount is not None else None,
            "final_amount": to_money(evaluation.applied_amount),
        }
