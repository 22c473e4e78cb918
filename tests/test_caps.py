"""
Unit Tests for Cap Enforcer

Tests verify per-rule commission caps are applied correctly.
"""

from decimal import Decimal

import pytest

from engine.calculators.caps import CapEnforcer
from engine.models import CommissionRule


class TestCapEnforcement:
    """Test min/max caps on a calculated commission."""

    @pytest.fixture
    def enforcer(self):
        return CapEnforcer()

    def test_no_caps_configured_passes_through(self, enforcer):
        rule = self._make_rule()
        assert enforcer.apply(Decimal("5000"), rule) == (Decimal("5000"), False, False)

    def test_below_minimum(self, enforcer):
        rule = self._make_rule(min_amount=200)
        assert enforcer.apply(Decimal("100"), rule) == (Decimal("200"), True, False)

    def test_at_minimum_is_not_capped(self, enforcer):
        rule = self._make_rule(min_amount=200)
        assert enforcer.apply(Decimal("200"), rule) == (Decimal("200"), False, False)

    def test_above_maximum(self, enforcer):
        rule = self._make_rule(max_amount=5000)
        assert enforcer.apply(Decimal("10000"), rule) == (Decimal("5000"), False, True)

    def test_at_maximum_is_not_capped(self, enforcer):
        rule = self._make_rule(max_amount=5000)
        assert enforcer.apply(Decimal("5000"), rule) == (Decimal("5000"), False, False)

    def test_min_and_max_are_exclusive(self, enforcer):
        rule = self._make_rule(min_amount=200, max_amount=5000)
        for amount in ["-50", "100", "3000", "9000"]:
            _, by_min, by_max = enforcer.apply(Decimal(amount), rule)
            assert not (by_min and by_max)

    def test_cap_values_rounded_to_cents(self, enforcer):
        rule = self._make_rule(min_amount="199.999")
        applied, by_min, _ = enforcer.apply(Decimal("10"), rule)
        assert applied == Decimal("200.00")
        assert by_min is True

    @pytest.mark.parametrize("amount", ["-100", "0", "150", "200", "2500", "5000", "7500.55"])
    def test_capping_is_idempotent(self, enforcer, amount):
        """cap(cap(x)) == cap(x)"""
        rule = self._make_rule(min_amount=200, max_amount=5000)
        once, _, _ = enforcer.apply(Decimal(amount), rule)
        twice, _, _ = enforcer.apply(once, rule)
        assert twice == once

    def _make_rule(self, min_amount=None, max_amount=None) -> CommissionRule:
        return CommissionRule.from_dict(
            {
                "id": "cap-rule",
                "rule_type": "PERCENTAGE",
                "value": 10,
                "min_amount": min_amount,
                "max_amount": max_amount,
            }
        )
