"""
Input Validation for the Commission Engine

InputValidator checks calculation input before processing begins and raises
ValueError with clear messages for contract violations.

RuleValidator reports rule configuration problems without raising: a
misconfigured rule degrades to zero contribution at calculation time, so
these findings are advisory.
"""

from decimal import Decimal

from .models import (
    MODES,
    RULE_SCOPES,
    RULE_TYPES,
    SCOPE_DISCRIMINATORS,
    TIE_POLICIES,
    CalculationContext,
    CalculationInput,
    CommissionRule,
    RuleConflict,
    RuleValidationError,
)


class InputValidator:
    """Validates calculation input according to the engine contract."""

    def validate(self, input_data: CalculationInput) -> None:
        """
        Run all validations. Raises ValueError if any check fails.
        """
        self._validate_options(input_data)
        self._validate_context(input_data.context)
        self.validate_rules(input_data.rules)

    def validate_rules(self, rules: list[CommissionRule]) -> None:
        """Rule amounts that are present must be finite numbers."""
        for rule in rules:
            self._check_finite(rule.value, f"rule {rule.id} value")
            self._check_finite(rule.min_amount, f"rule {rule.id} min_amount")
            self._check_finite(rule.max_amount, f"rule {rule.id} max_amount")
            self._check_finite(rule.min_sale_amount, f"rule {rule.id} min_sale_amount")
            self._check_finite(rule.max_sale_amount, f"rule {rule.id} max_sale_amount")
            for tier in rule.tiers:
                self._check_finite(tier.threshold, f"rule {rule.id} tier threshold")
                self._check_finite(tier.rate, f"rule {rule.id} tier rate")

    def _validate_options(self, input_data: CalculationInput) -> None:
        if input_data.mode not in MODES:
            raise ValueError(f"Invalid mode: {input_data.mode}. Must be 'precedence' or 'stacked'")

        if input_data.tie_policy is not None and input_data.tie_policy not in TIE_POLICIES:
            raise ValueError(f"Invalid tie_policy: {input_data.tie_policy}. Must be 'stack' or 'single'")

        if not isinstance(input_data.apply_sale_filters, bool):
            raise ValueError(f"apply_sale_filters must be true or false, got: {input_data.apply_sale_filters!r}")

        if not isinstance(input_data.include_trace, bool):
            raise ValueError(f"include_trace must be true or false, got: {input_data.include_trace!r}")

    def _validate_context(self, context: CalculationContext) -> None:
        """Amounts that are present must be finite numbers."""
        self._check_finite(context.gross_amount, "gross_amount")
        self._check_finite(context.net_amount, "net_amount")

        for amount in context.returns:
            self._check_finite(amount, "returns")

    @staticmethod
    def _check_finite(amount: Decimal | None, field_name: str) -> None:
        if amount is not None and not amount.is_finite():
            raise ValueError(f"{field_name} must be a finite number, got: {amount}")


class RuleValidator:
    """Validates commission rule configuration."""

    def validate(self, rule: CommissionRule) -> list[RuleValidationError]:
        """Return every configuration problem found on the rule."""
        errors: list[RuleValidationError] = []
        errors.extend(self._validate_type(rule))
        errors.extend(self._validate_scope(rule))
        errors.extend(self._validate_ranges(rule))
        return errors

    def _validate_type(self, rule: CommissionRule) -> list[RuleValidationError]:
        if rule.rule_type not in RULE_TYPES:
            return [RuleValidationError("rule_type", f"Unsupported rule type: {rule.rule_type}")]

        if rule.rule_type == "PERCENTAGE":
            if rule.value is None or rule.value <= 0:
                return [RuleValidationError("value", "A positive percentage is required for PERCENTAGE rules")]
            if rule.value > 100:
                return [RuleValidationError("value", "Percentage cannot exceed 100")]

        if rule.rule_type == "FLAT_AMOUNT" and (rule.value is None or rule.value <= 0):
            return [RuleValidationError("value", "A positive amount is required for FLAT_AMOUNT rules")]

        if rule.rule_type == "TIERED":
            if not rule.tiers:
                return [RuleValidationError("tiers", "At least one tier is required for TIERED rules")]

            errors = []
            thresholds = [t.threshold for t in rule.tiers]
            if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
                errors.append(RuleValidationError("tiers", "Tier thresholds must be strictly increasing"))
            for i, tier in enumerate(rule.tiers):
                if not (0 <= tier.rate <= 100):
                    errors.append(RuleValidationError("tiers", f"Tier {i} rate must be between 0 and 100, got: {tier.rate}"))
            return errors

        return []

    def _validate_scope(self, rule: CommissionRule) -> list[RuleValidationError]:
        """The scope's discriminator is required; other scopes' must be unset."""
        if rule.scope not in RULE_SCOPES:
            return [RuleValidationError("scope", f"Unsupported scope: {rule.scope}")]

        errors = []
        required = SCOPE_DISCRIMINATORS.get(rule.scope)
        if required and getattr(rule, required) is None:
            errors.append(RuleValidationError(required, f"{required} is required for {rule.scope} scope"))

        for scope, attr in SCOPE_DISCRIMINATORS.items():
            if scope != rule.scope and getattr(rule, attr) is not None:
                errors.append(RuleValidationError(attr, f"{attr} should only be set for {scope} scope"))

        return errors

    def _validate_ranges(self, rule: CommissionRule) -> list[RuleValidationError]:
        errors = []

        if rule.min_amount is not None and rule.max_amount is not None:
            if rule.max_amount <= rule.min_amount:
                errors.append(
                    RuleValidationError("max_amount", "Maximum commission must be greater than minimum commission")
                )

        if rule.min_sale_amount is not None and rule.max_sale_amount is not None:
            if rule.max_sale_amount <= rule.min_sale_amount:
                errors.append(
                    RuleValidationError("max_sale_amount", "Maximum sale amount must be greater than minimum sale amount")
                )

        return errors

    def detect_conflicts(self, new_rule: CommissionRule, existing_rules: list[CommissionRule]) -> list[RuleConflict]:
        """Find existing rules with the same scope and discriminators."""
        conflicts = []
        for existing in existing_rules:
            if existing.id == new_rule.id:
                continue
            if existing.scope == new_rule.scope and all(
                getattr(existing, attr) == getattr(new_rule, attr) for attr in SCOPE_DISCRIMINATORS.values()
            ):
                conflicts.append(
                    RuleConflict(
                        rule_id=existing.id,
                        description=existing.description,
                        reason=(
                            "Duplicate rule with same scope and filters. At equal priority both rules "
                            "stack, or only the newer one applies under the 'single' tie policy."
                        ),
                    )
                )
        return conflicts
