"""
Precedence Selector

Decides which candidate rules apply to a transaction context.
"""

from ..models import (
    PRIORITY_VALUES,
    SCOPE_CONTEXT_FIELDS,
    TIE_POLICIES,
    CalculationContext,
    CommissionRule,
    MatchedRule,
    SelectedRule,
)


class PrecedenceSelector:
    """Matches rules against a context and ranks them by priority."""

    def rule_matches(self, rule: CommissionRule, context: CalculationContext) -> bool:
        """
        Check whether a rule's scope matches the context.

        GLOBAL always matches. Scoped rules match on their discriminator; a
        scoped rule with no discriminator, or an unknown scope, never matches.
        """
        if rule.scope == "GLOBAL":
            return True

        context_field = SCOPE_CONTEXT_FIELDS.get(rule.scope)
        if context_field is None:
            return False

        expected = rule.discriminator
        if expected is None:
            return False

        return expected == getattr(context, context_field)

    def order_by_precedence(self, rules: list[CommissionRule]) -> list[CommissionRule]:
        """Highest priority first, then newest first, then by id."""
        by_id = sorted(rules, key=lambda r: r.id)
        return sorted(by_id, key=lambda r: (r.priority, r.created_at or ""), reverse=True)

    def select(
        self,
        rules: list[CommissionRule],
        context: CalculationContext,
        tie_policy: str = "stack",
    ) -> tuple[list[CommissionRule], list[CommissionRule]]:
        """
        Select the rules to apply.

        Returns (matched, selected): every matching rule in precedence order,
        and the subset at the single highest priority. Under the 'stack'
        policy all rules tied at that priority are selected; under 'single'
        only the first in precedence order is.
        """
        if tie_policy not in TIE_POLICIES:
            raise ValueError(f"Invalid tie_policy: {tie_policy}. Must be one of {', '.join(TIE_POLICIES)}")

        matched = self.order_by_precedence([r for r in rules if self.rule_matches(r, context)])
        if not matched:
            return [], []

        top_priority = matched[0].priority
        selected = [r for r in matched if r.priority == top_priority]

        if tie_policy == "single":
            selected = selected[:1]

        return matched, selected

    def describe_matches(
        self, matched: list[CommissionRule], selected: list[CommissionRule]
    ) -> tuple[list[MatchedRule], SelectedRule | None]:
        """Build the audit entries for matched rules and the lead selected rule."""
        selected_ids = {id(r) for r in selected}
        matched_rules = [
            MatchedRule(rule_id=r.id, scope=r.scope, priority=r.priority, selected=id(r) in selected_ids)
            for r in matched
        ]

        if not selected:
            return matched_rules, None

        lead = selected[0]
        return matched_rules, SelectedRule(
            rule_id=lead.id,
            scope=lead.scope,
            priority=lead.priority,
            description=self.scope_description(lead),
        )

    @staticmethod
    def scope_description(rule: CommissionRule) -> str:
        if rule.priority >= PRIORITY_VALUES["PROJECT_SPECIFIC"]:
            return "Project-specific rule"
        if rule.scope == "CUSTOMER_SPECIFIC":
            return "Customer-specific rule"
        if rule.scope == "PRODUCT_CATEGORY":
            return "Product category rule"
        if rule.scope == "TERRITORY":
            return "Territory rule"
        if rule.scope == "CUSTOMER_TIER":
            return f"{rule.customer_tier} tier rule"
        return "Global default rule"
