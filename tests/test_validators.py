"""
Unit Tests for Input and Rule Validation
"""

from decimal import Decimal

import pytest

from engine.models import CalculationContext, CalculationInput, CommissionRule, Tier
from engine.validators import InputValidator, RuleValidator


def make_rule(**overrides) -> CommissionRule:
    data = {"id": "rule-1", "rule_type": "PERCENTAGE", "value": 10}
    data.update(overrides)
    return CommissionRule.from_dict(data)


class TestInputValidator:
    """Contract violations raise ValueError."""

    @pytest.fixture
    def validator(self):
        return InputValidator()

    def test_valid_input(self, validator):
        validator.validate(CalculationInput(context=CalculationContext(gross_amount=Decimal("10000"))))

    def test_invalid_mode(self, validator):
        data = CalculationInput(context=CalculationContext(), mode="cumulative")
        with pytest.raises(ValueError, match="Invalid mode"):
            validator.validate(data)

    def test_invalid_tie_policy(self, validator):
        data = CalculationInput(context=CalculationContext(), tie_policy="newest")
        with pytest.raises(ValueError, match="Invalid tie_policy"):
            validator.validate(data)

    def test_nan_net_amount(self, validator):
        data = CalculationInput(context=CalculationContext(net_amount=Decimal("NaN")))
        with pytest.raises(ValueError, match="net_amount must be a finite number"):
            validator.validate(data)

    def test_infinite_return(self, validator):
        data = CalculationInput(context=CalculationContext(returns=[Decimal("Infinity")]))
        with pytest.raises(ValueError, match="returns must be a finite number"):
            validator.validate(data)

    def test_nan_rule_value(self, validator):
        rule = CommissionRule(id="r", rule_type="PERCENTAGE", value=Decimal("NaN"))
        with pytest.raises(ValueError, match="rule r value must be a finite number"):
            validator.validate_rules([rule])

    def test_infinite_tier_rate(self, validator):
        tier = Tier(threshold=Decimal("0"), rate=Decimal("Infinity"))
        rule = CommissionRule(id="t", rule_type="TIERED", tiers=[tier])
        data = CalculationInput(context=CalculationContext(gross_amount=Decimal("1000")), rules=[rule])
        with pytest.raises(ValueError, match="rule t tier rate must be a finite number"):
            validator.validate(data)

    @pytest.mark.parametrize("option", ["apply_sale_filters", "include_trace"])
    @pytest.mark.parametrize("value", ["false", 0, None])
    def test_flags_must_be_booleans(self, validator, option, value):
        data = CalculationInput(context=CalculationContext(gross_amount=Decimal("1000")), **{option: value})
        with pytest.raises(ValueError, match=f"{option} must be true or false"):
            validator.validate(data)


class TestRuleParsing:
    """Non-finite rule amounts are rejected while parsing."""

    @pytest.mark.parametrize("value", ["NaN", "Infinity", float("inf"), float("nan")])
    def test_non_finite_value(self, value):
        with pytest.raises(ValueError, match="value must be a finite number"):
            make_rule(value=value)

    @pytest.mark.parametrize("field", ["min_amount", "max_amount", "min_sale_amount", "max_sale_amount"])
    def test_non_finite_bounds(self, field):
        with pytest.raises(ValueError, match=f"{field} must be a finite number"):
            make_rule(**{field: float("inf")})

    def test_non_finite_tier_rate(self):
        with pytest.raises(ValueError, match="tier rate must be a finite number"):
            make_rule(rule_type="TIERED", tiers=[{"threshold": 0, "rate": "NaN"}])

    def test_boolean_value_rejected(self):
        with pytest.raises(ValueError, match="value must be numeric"):
            make_rule(value=True)


class TestRuleTypeValidation:
    @pytest.fixture
    def validator(self):
        return RuleValidator()

    def test_valid_percentage(self, validator):
        assert validator.validate(make_rule()) == []

    @pytest.mark.parametrize("value", [None, 0, -5])
    def test_percentage_must_be_positive(self, validator, value):
        errors = validator.validate(make_rule(value=value))
        assert [e.field for e in errors] == ["value"]

    def test_percentage_over_100(self, validator):
        errors = validator.validate(make_rule(value=150))
        assert errors[0].message == "Percentage cannot exceed 100"

    def test_flat_amount_must_be_positive(self, validator):
        errors = validator.validate(make_rule(rule_type="FLAT_AMOUNT", value=0))
        assert errors[0].message == "A positive amount is required for FLAT_AMOUNT rules"

    def test_tiered_requires_tiers(self, validator):
        errors = validator.validate(make_rule(rule_type="TIERED", value=None))
        assert errors[0].field == "tiers"

    def test_tier_thresholds_strictly_increasing(self, validator):
        rule = make_rule(
            rule_type="TIERED",
            tiers=[{"threshold": 0, "rate": 5}, {"threshold": 0, "rate": 7}],
        )
        messages = [e.message for e in validator.validate(rule)]
        assert "Tier thresholds must be strictly increasing" in messages

    def test_tier_rate_range(self, validator):
        rule = make_rule(rule_type="TIERED", tiers=[{"threshold": 0, "rate": 120}])
        messages = [e.message for e in validator.validate(rule)]
        assert messages == ["Tier 0 rate must be between 0 and 100, got: 120"]

    def test_unsupported_type(self, validator):
        errors = validator.validate(make_rule(rule_type="BONUS_POOL"))
        assert errors[0].message == "Unsupported rule type: BONUS_POOL"


class TestRuleScopeValidation:
    @pytest.fixture
    def validator(self):
        return RuleValidator()

    def test_scoped_rule_requires_discriminator(self, validator):
        errors = validator.validate(make_rule(scope="TERRITORY"))
        assert [(e.field, e.message) for e in errors] == [
            ("territory_id", "territory_id is required for TERRITORY scope")
        ]

    def test_foreign_discriminator_flagged(self, validator):
        errors = validator.validate(make_rule(scope="GLOBAL", customer_tier="VIP"))
        assert [e.message for e in errors] == ["customer_tier should only be set for CUSTOMER_TIER scope"]

    def test_valid_customer_specific(self, validator):
        assert validator.validate(make_rule(scope="CUSTOMER_SPECIFIC", client_id="client-123")) == []

    def test_unsupported_scope(self, validator):
        errors = validator.validate(make_rule(scope="REGION"))
        assert errors[0].field == "scope"


class TestRuleRangeValidation:
    @pytest.fixture
    def validator(self):
        return RuleValidator()

    def test_max_commission_not_above_min(self, validator):
        errors = validator.validate(make_rule(min_amount=500, max_amount=500))
        assert errors[0].message == "Maximum commission must be greater than minimum commission"

    def test_max_sale_not_above_min(self, validator):
        errors = validator.validate(make_rule(min_sale_amount=5000, max_sale_amount=1000))
        assert errors[0].field == "max_sale_amount"

    def test_multiple_problems_reported_together(self, validator):
        rule = make_rule(value=0, scope="TERRITORY", min_amount=10, max_amount=5)
        assert {e.field for e in validator.validate(rule)} == {"value", "territory_id", "max_amount"}


class TestConflictDetection:
    @pytest.fixture
    def validator(self):
        return RuleValidator()

    def test_same_scope_and_filters_conflict(self, validator):
        new_rule = make_rule(id="new", scope="CUSTOMER_TIER", customer_tier="VIP")
        existing = [
            make_rule(id="old", scope="CUSTOMER_TIER", customer_tier="VIP", description="VIP bonus"),
            make_rule(id="other", scope="CUSTOMER_TIER", customer_tier="STANDARD"),
        ]
        conflicts = validator.detect_conflicts(new_rule, existing)

        assert [c.rule_id for c in conflicts] == ["old"]
        assert conflicts[0].description == "VIP bonus"
        assert "Duplicate rule" in conflicts[0].reason

    def test_rule_does_not_conflict_with_itself(self, validator):
        rule = make_rule(id="same")
        assert validator.detect_conflicts(rule, [make_rule(id="same", value=20)]) == []

    def test_global_rules_conflict(self, validator):
        conflicts = validator.detect_conflicts(make_rule(id="a"), [make_rule(id="b")])
        assert len(conflicts) == 1
