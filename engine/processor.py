"""
Commission Processor - Main Orchestrator

Coordinates the commission calculation pipeline through discrete, testable steps.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict

from .calculators import (
    BasisResolver,
    NetSalesCalculator,
    PrecedenceSelector,
    RuleEvaluator,
    RuleStacker,
    SaleAmountFilter,
)
from .models import (
    TIE_POLICIES,
    BasisResolution,
    CalculationContext,
    CalculationInput,
    CalculationResult,
    CommissionRule,
    RuleEvaluation,
)
from .money import to_decimal
from .output import OutputBuilder
from .trace import TraceBuilder
from .validators import InputValidator, RuleValidator

logger = logging.getLogger(__name__)


class CommissionProcessor:
    """
    Main orchestrator for commission calculation.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Derive Net Sales (when only returns are given)
    3. Resolve Basis
    4. Filter Rules by Sale Amount
    5. Select by Precedence, or Stack every rule
    6. Evaluate and Sum
    7. Build Output

    The processor holds configuration only, so one instance can serve
    concurrent requests.
    """

    def __init__(self, tie_policy: str = "stack"):
        if tie_policy not in TIE_POLICIES:
            raise ValueError(f"Invalid tie_policy: {tie_policy}. Must be 'stack' or 'single'")
        self.tie_policy = tie_policy

        # Initialize all calculators
        self.validator = InputValidator()
        self.rule_validator = RuleValidator()
        self.net_sales_calculator = NetSalesCalculator()
        self.basis_resolver = BasisResolver()
        self.sale_filter = SaleAmountFilter()
        self.selector = PrecedenceSelector()
        self.evaluator = RuleEvaluator()
        self.stacker = RuleStacker(self.evaluator)
        self.trace_builder = TraceBuilder(self.selector)
        self.output_builder = OutputBuilder()

    # -------------------------------------------------------------------------
    # Engine operations
    # -------------------------------------------------------------------------

    def evaluate(self, basis_amount, rule: CommissionRule) -> RuleEvaluation:
        """Evaluate a single rule, caps included."""
        self.validator.validate_rules([rule])
        return self.evaluator.evaluate(self._basis_amount(basis_amount), rule)

    def resolve_basis(self, context: CalculationContext) -> BasisResolution:
        return self.basis_resolver.resolve(context)

    def calculate_with_context(
        self,
        basis_amount,
        rules: list[CommissionRule],
        context: CalculationContext | None = None,
    ) -> CalculationResult:
        """
        Evaluate and sum every rule given (pure stacking, no matching).

        Used when the caller has already narrowed the pool to rules that
        should all fire together, e.g. one plan's rule set.
        """
        amount = self._basis_amount(basis_amount)
        self.validator.validate_rules(rules)
        evaluations, total = self.stacker.stack(amount, rules)

        return CalculationResult(
            basis=BasisResolver.basis_name(context),
            basis_amount=amount,
            mode="stacked",
            total_commission=total,
            applied_rules=evaluations,
            context=context,
        )

    def calculate_with_precedence(
        self,
        basis_amount,
        rules: list[CommissionRule],
        context: CalculationContext,
        tie_policy: str | None = None,
    ) -> CalculationResult:
        """
        Apply only the matching rules at the highest priority.

        No match is a valid zero-commission outcome, not an error.
        """
        amount = self._basis_amount(basis_amount)
        self.validator.validate_rules(rules)
        policy = tie_policy or self.tie_policy

        matched, selected = self.selector.select(rules, context, policy)
        matched_rules, selected_rule = self.selector.describe_matches(matched, selected)
        evaluations, total = self.stacker.stack(amount, selected)

        return CalculationResult(
            basis=BasisResolver.basis_name(context),
            basis_amount=amount,
            mode="precedence",
            total_commission=total,
            applied_rules=evaluations,
            matched_rules=matched_rules,
            selected_rule=selected_rule,
            tie_policy=policy,
            context=context,
        )

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def process(self, input_data: CalculationInput) -> CalculationResult:
        """
        Run a calculation through the complete pipeline.

        Args:
            input_data: CalculationInput with context, candidate rules and options

        Returns:
            CalculationResult with totals and the audit trail
        """
        # Step 1: Validate
        self.validator.validate(input_data)
        self._log_rule_findings(input_data.rules)

        # Step 2: Derive net sales from returns if the caller did not
        context = self._with_net_sales(input_data.context)

        # Step 3: Resolve basis
        resolution = self.basis_resolver.resolve(context)

        # Step 4: Sale amount filters (caller-stage, before selection)
        rules = input_data.rules
        if input_data.apply_sale_filters:
            rules = self.sale_filter.filter(rules, resolution.basis_amount)

        # Step 5-6: Select or stack, then evaluate
        if input_data.mode == "stacked":
            return self.calculate_with_context(resolution.basis_amount, rules, context)

        return self.calculate_with_precedence(
            resolution.basis_amount, rules, context, tie_policy=input_data.tie_policy
        )

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculate from raw dictionary input.

        Convenience method for API usage.
        """
        input_data = CalculationInput.from_dict(data)
        result = self.process(input_data)

        output = self.output_builder.build(result)
        output["calculation_record"] = self.output_builder.build_record(result)
        if input_data.include_trace:
            trace = self.trace_builder.build(
                input_data.rules, result, sale_filters_applied=input_data.apply_sale_filters
            )
            output["trace"] = self.output_builder.build_trace(trace)
        return output

    def preview_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Preview a plan's stacked rules against a hypothetical sale amount."""
        sale_amount = self._basis_amount(data["sale_amount"])
        rules = [CommissionRule.from_dict(r) for r in data.get("rules") or []]
        result = self.calculate_with_context(sale_amount, rules)
        return self.output_builder.build_preview(sale_amount, result)

    def validate_rule_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Check a rule's configuration and look for duplicates among existing rules."""
        rule = CommissionRule.from_dict(data["rule"])
        existing = [CommissionRule.from_dict(r) for r in data.get("existing_rules") or []]

        errors = self.rule_validator.validate(rule)
        conflicts = self.rule_validator.detect_conflicts(rule, existing)
        return {
            "valid": not errors,
            "errors": [{"field": e.field, "message": e.message} for e in errors],
            "conflicts": [
                {"rule_id": c.rule_id, "description": c.description, "reason": c.reason} for c in conflicts
            ],
        }

    def _with_net_sales(self, context: CalculationContext) -> CalculationContext:
        if context.net_amount is not None or not context.returns or context.gross_amount is None:
            return context
        net = self.net_sales_calculator.calculate(context.gross_amount, context.returns)
        return replace(context, net_amount=net)

    def _log_rule_findings(self, rules: list[CommissionRule]) -> None:
        """Configuration problems never block a calculation; surface them as warnings."""
        for rule in rules:
            for error in self.rule_validator.validate(rule):
                logger.warning(f"Rule {rule.id} misconfigured ({error.field}): {error.message}")

    def _basis_amount(self, value) -> Decimal:
        return BasisResolver.check_amount(to_decimal(value, "basis_amount"), "basis_amount")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def calculate_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Calculate commission from Python dict and return Python dict.
    """
    processor = CommissionProcessor()
    return processor.process_from_dict(input_data)


def calculate_from_json(json_input: str) -> str:
    """
    Calculate commission from JSON string input and return JSON string output.
    """
    import json

    try:
        input_data = json.loads(json_input)
        processor = CommissionProcessor()
        result = processor.process_from_dict(input_data)
        return json.dumps(result, indent=2)

    except ValueError as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except Exception as e:
        error_response = {"error": str(e), "status": "failed"}
        return json.dumps(error_response, indent=2)
