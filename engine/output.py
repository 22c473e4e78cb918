"""
Output Builder

Constructs API responses and calculation-record metadata from results.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .models import ENGINE_VERSION, CalculationResult, CalculationTrace, CommissionRule, RuleEvaluation
from .money import to_money


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"${value:,.2f}"


def _pct(value: Decimal) -> str:
    """Format a percentage without trailing zeros (10, 7.5, 3.33)."""
    return f"{value.normalize():f}"


def format_rule(rule: CommissionRule) -> str:
    """Describe a rule's configuration for display."""
    range_desc = ""
    if rule.min_sale_amount is not None and rule.max_sale_amount is not None:
        range_desc = f" (sales ${rule.min_sale_amount:.0f}-${rule.max_sale_amount:.0f})"
    elif rule.min_sale_amount is not None:
        range_desc = f" (sales ${rule.min_sale_amount:.0f}+)"
    elif rule.max_sale_amount is not None:
        range_desc = f" (sales up to ${rule.max_sale_amount:.0f})"

    if rule.rule_type == "PERCENTAGE":
        if rule.value is None:
            return f"Percentage rule with no rate{range_desc}"
        return f"{_pct(rule.value)}% of sale{range_desc}"

    if rule.rule_type == "FLAT_AMOUNT":
        if rule.value is None:
            return f"Flat rule with no amount{range_desc}"
        return f"{_fmt(rule.value)} per sale{range_desc}"

    if rule.rule_type == "TIERED":
        if not rule.tiers:
            return f"Tiered rule with no tiers{range_desc}"
        steps = ", ".join(f"{_pct(t.rate)}% from ${t.threshold:,.0f}" for t in rule.tiers)
        return f"Tiered: {steps}{range_desc}"

    return "Unknown rule type"


def rule_type_label(rule_type: str) -> str:
    labels = {"PERCENTAGE": "Percentage", "FLAT_AMOUNT": "Flat Amount", "TIERED": "Tiered"}
    return labels.get(rule_type, rule_type)


def describe_evaluation(evaluation: RuleEvaluation, basis_amount: Decimal) -> str:
    """Explain how one rule arrived at its applied amount."""
    rule = evaluation.rule

    if rule.rule_type == "PERCENTAGE" and rule.value is not None:
        description = f"{_pct(rule.value)}% of {_fmt(basis_amount)}"
    elif rule.rule_type == "FLAT_AMOUNT" and rule.value is not None:
        description = f"Flat amount of {_fmt(rule.value)}"
    elif rule.rule_type == "TIERED" and evaluation.tier_breakdown:
        parts = " + ".join(f"{_pct(t.rate)}% of {_fmt(t.amount)}" for t in evaluation.tier_breakdown)
        description = f"Tiered: {parts}"
    elif rule.rule_type == "TIERED":
        description = "Tiered: no tier produced a commission"
    else:
        description = f"{rule_type_label(rule.rule_type)} rule contributed nothing (not configured)"

    if evaluation.capped_by_min:
        description += f" (raised to minimum of {_fmt(rule.min_amount)})"
    elif evaluation.capped_by_max:
        description += f" (capped at maximum of {_fmt(rule.max_amount)})"

    return description


class OutputBuilder:
    """Builds the final output response."""

    def build(self, result: CalculationResult) -> dict:
        """Construct the complete response from a calculation result."""
        return {
            "calculation_summary": self._build_summary(result),
            "calculations": self._build_calculations(result),
            "applied_rules": [self._build_applied_rule(e, result.basis_amount) for e in result.applied_rules],
            "matched_rules": [
                {"rule_id": m.rule_id, "scope": m.scope, "priority": m.priority, "selected": m.selected}
                for m in result.matched_rules
            ],
            "selected_rule": self._build_selected_rule(result),
            "context": self._build_context(result),
        }

    def _build_summary(self, result: CalculationResult) -> dict:
        return {
            "mode": result.mode,
            "basis": result.basis,
            "basis_amount": to_money(result.basis_amount),
            "tie_policy": result.tie_policy,
            "total_commission": to_money(result.total_commission),
            "rules_matched": len(result.matched_rules),
            "rules_applied": len(result.applied_rules),
        }

    def _build_calculations(self, result: CalculationResult) -> dict:
        """Build calculations section with value and dynamic description for each field."""
        basis_label = "net sales" if result.basis == "NET_SALES" else "gross revenue"
        applied = result.applied_rules

        if not applied:
            total_desc = "No applicable rules - no commission owed for this transaction"
        elif len(applied) == 1:
            total_desc = f"Single rule {applied[0].rule_id}: {_fmt(to_money(result.total_commission))}"
        else:
            parts = " + ".join(_fmt(to_money(e.applied_amount)) for e in applied)
            total_desc = f"{len(applied)} stacked rules: {parts} = {_fmt(to_money(result.total_commission))}"

        return {
            "basis_amount": {
                "value": to_money(result.basis_amount),
                "description": f"Commission basis is {basis_label} ({_fmt(to_money(result.basis_amount))})",
            },
            "total_commission": {
                "value": to_money(result.total_commission),
                "description": total_desc,
            },
        }

    def _build_applied_rule(self, evaluation: RuleEvaluation, basis_amount: Decimal) -> dict:
        rule = evaluation.rule
        return {
            "rule_id": rule.id,
            "rule_type": rule.rule_type,
            "scope": rule.scope,
            "priority": rule.priority,
            "calculated_amount": to_money(evaluation.calculated_amount),
            "applied_amount": to_money(evaluation.applied_amount),
            "capped_by_min": evaluation.capped_by_min,
            "capped_by_max": evaluation.capped_by_max,
            "tier_breakdown": [
                {
                    "threshold": to_money(t.threshold),
                    "rate": float(t.rate),
                    "amount": to_money(t.amount),
                    "commission": to_money(t.commission),
                }
                for t in evaluation.tier_breakdown
            ],
            "description": describe_evaluation(evaluation, basis_amount),
        }

    def _build_selected_rule(self, result: CalculationResult) -> Optional[dict]:
        selected = result.selected_rule
        if selected is None:
            return None
        return {
            "rule_id": selected.rule_id,
            "scope": selected.scope,
            "priority": selected.priority,
            "description": selected.description,
        }

    def _build_context(self, result: CalculationResult) -> dict:
        context = result.context
        if context is None:
            return {}
        return {
            "customer_id": context.customer_id,
            "customer_tier": context.customer_tier,
            "project_id": context.project_id,
            "product_category_id": context.product_category_id,
            "territory_id": context.territory_id,
        }

    def build_trace(self, trace: CalculationTrace) -> dict:
        """Serialize an explanation trace."""
        return {
            "engine_version": trace.engine_version,
            "basis": trace.basis,
            "basis_amount": to_money(trace.basis_amount),
            "rule_trace": [
                {
                    "rule_id": t.rule_id,
                    "rule_type": t.rule_type,
                    "scope": t.scope,
                    "priority": t.priority,
                    "description": t.description,
                    "conditions": [
                        {
                            "field": c.field,
                            "operator": c.operator,
                            "expected": self._plain(c.expected),
                            "actual": self._plain(c.actual),
                            "passed": c.passed,
                        }
                        for c in t.conditions
                    ],
                    "eligible": t.eligible,
                    "selected": t.selected,
                    "calculation": t.calculation,
                }
                for t in trace.rule_trace
            ],
            "output": {
                "selected_rule_ids": trace.selected_rule_ids,
                "commission_amount": to_money(trace.commission_amount),
                "effective_rate": float(trace.effective_rate),
            },
            "calculated_at": trace.calculated_at,
        }

    def build_record(self, result: CalculationResult, calculated_at: str | None = None) -> dict:
        """
        Build the metadata a persistence layer stores as an immutable
        calculation record. New records always start as PENDING.
        """
        context = result.context
        return {
            "status": "PENDING",
            "amount": to_money(result.total_commission),
            "basis": result.basis,
            "basis_amount": to_money(result.basis_amount),
            "gross_amount": to_money(context.gross_amount) if context and context.gross_amount is not None else None,
            "net_amount": to_money(context.net_amount) if context and context.net_amount is not None else None,
            "context": self._build_context(result),
            "selected_rule": self._build_selected_rule(result),
            "matched_rules": [
                {"rule_id": m.rule_id, "scope": m.scope, "priority": m.priority, "selected": m.selected}
                for m in result.matched_rules
            ],
            "applied_rules": [
                {
                    "rule_id": e.rule_id,
                    "rule_type": e.rule.rule_type,
                    "calculated_amount": to_money(e.calculated_amount),
                    "applied_amount": to_money(e.applied_amount),
                    "description": describe_evaluation(e, result.basis_amount),
                }
                for e in result.applied_rules
            ],
            "engine_version": ENGINE_VERSION,
            "calculated_at": calculated_at or datetime.now(timezone.utc).isoformat(),
        }

    def build_preview(self, sale_amount: Decimal, result: CalculationResult) -> dict:
        """Summarize a stacked calculation for plan previews."""
        return {
            "sale_amount": to_money(sale_amount),
            "total_commission": to_money(result.total_commission),
            "rules": [
                {
                    "type": e.rule.rule_type,
                    "description": describe_evaluation(e, sale_amount),
                    "amount": to_money(e.applied_amount),
                }
                for e in result.applied_rules
            ],
        }

    @staticmethod
    def _plain(value):
        """Decimals in trace conditions become floats for JSON."""
        if isinstance(value, Decimal):
            return to_money(value)
        return value
