"""
Domain Models for the Commission Engine

These dataclasses provide type-safe representations of rules, calculation
contexts and results. All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from .money import ZERO, to_decimal, to_optional_decimal

# =============================================================================
# CONSTANTS
# =============================================================================

# Bump when calculation logic changes; stored on every calculation record
ENGINE_VERSION = "1.0.0"

RULE_TYPES = ("PERCENTAGE", "FLAT_AMOUNT", "TIERED")

RULE_SCOPES = ("GLOBAL", "CUSTOMER_TIER", "PRODUCT_CATEGORY", "TERRITORY", "CUSTOMER_SPECIFIC")

COMMISSION_BASES = ("GROSS_REVENUE", "NET_SALES")

# Named priority levels and their numeric values (higher wins)
PRIORITY_VALUES = {
    "PROJECT_SPECIFIC": 100,
    "CUSTOMER_SPECIFIC": 90,
    "PRODUCT_CATEGORY": 80,
    "TERRITORY": 70,
    "CUSTOMER_TIER": 60,
    "DEFAULT": 50,
}

# Priority level assigned when a rule does not carry one
SCOPE_PRIORITY_LEVELS = {
    "GLOBAL": "DEFAULT",
    "CUSTOMER_TIER": "CUSTOMER_TIER",
    "PRODUCT_CATEGORY": "PRODUCT_CATEGORY",
    "TERRITORY": "TERRITORY",
    "CUSTOMER_SPECIFIC": "CUSTOMER_SPECIFIC",
}

# Rule attribute that must be set for each scoped rule
SCOPE_DISCRIMINATORS = {
    "CUSTOMER_TIER": "customer_tier",
    "PRODUCT_CATEGORY": "product_category_id",
    "TERRITORY": "territory_id",
    "CUSTOMER_SPECIFIC": "client_id",
}

# Context attribute each scoped rule is matched against
SCOPE_CONTEXT_FIELDS = {
    "CUSTOMER_TIER": "customer_tier",
    "PRODUCT_CATEGORY": "product_category_id",
    "TERRITORY": "territory_id",
    "CUSTOMER_SPECIFIC": "customer_id",
}

CUSTOMER_TIERS = ("STANDARD", "VIP", "NEW", "ENTERPRISE")

# 'stack' applies every rule tied at the top priority, 'single' picks one
TIE_POLICIES = ("stack", "single")

MODES = ("precedence", "stacked")


def _optional_str(value) -> str | None:
    return str(value) if value is not None else None


def _first_present(data: dict, *keys):
    """Value of the first key that is set and not null."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def parse_priority(value, scope: str) -> int:
    """Accept an integer, a numeric string or a named priority level."""
    if value is None:
        return PRIORITY_VALUES[SCOPE_PRIORITY_LEVELS.get(scope, "DEFAULT")]
    if isinstance(value, str):
        if value in PRIORITY_VALUES:
            return PRIORITY_VALUES[value]
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid priority: {value}") from None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"priority must be an integer or priority level, got: {value!r}")
    return value


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class Tier:
    """A single step of a tiered rule. Rate is a percentage."""

    threshold: Decimal
    rate: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "Tier":
        return cls(
            threshold=to_decimal(data["threshold"], "tier threshold"),
            rate=to_decimal(data["rate"], "tier rate"),
        )


@dataclass
class CommissionRule:
    """A configured commission rule, already fetched and active."""

    id: str
    rule_type: str
    value: Decimal | None = None
    tiers: list[Tier] = field(default_factory=list)
    min_amount: Decimal | None = None  # cap on the commission, not the sale
    max_amount: Decimal | None = None
    min_sale_amount: Decimal | None = None  # applicability filter
    max_sale_amount: Decimal | None = None
    scope: str = "GLOBAL"
    priority: int = PRIORITY_VALUES["DEFAULT"]
    customer_tier: str | None = None
    product_category_id: str | None = None
    territory_id: str | None = None
    client_id: str | None = None
    description: str | None = None
    created_at: str | None = None

    @property
    def discriminator(self) -> str | None:
        """The scope's match key, None for GLOBAL or unknown scopes."""
        attr = SCOPE_DISCRIMINATORS.get(self.scope)
        return getattr(self, attr) if attr else None

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionRule":
        scope = data.get("scope") or "GLOBAL"
        # Support legacy 'percentage' / 'flat_amount' columns as the rule value
        value = data.get("value")
        if value is None:
            value = data.get("percentage", data.get("flat_amount"))
        return cls(
            id=str(data["id"]),
            rule_type=data["rule_type"],
            value=to_optional_decimal(value, "value"),
            tiers=[Tier.from_dict(t) for t in data.get("tiers") or []],
            min_amount=to_optional_decimal(data.get("min_amount"), "min_amount"),
            max_amount=to_optional_decimal(data.get("max_amount"), "max_amount"),
            min_sale_amount=to_optional_decimal(data.get("min_sale_amount"), "min_sale_amount"),
            max_sale_amount=to_optional_decimal(data.get("max_sale_amount"), "max_sale_amount"),
            scope=scope,
            priority=parse_priority(data.get("priority"), scope),
            customer_tier=data.get("customer_tier"),
            product_category_id=_optional_str(data.get("product_category_id")),
            territory_id=_optional_str(data.get("territory_id")),
            client_id=_optional_str(data.get("client_id")),
            description=data.get("description"),
            created_at=data.get("created_at"),
        )


@dataclass
class CalculationContext:
    """The transaction being calculated, built fresh by the caller."""

    gross_amount: Decimal | None = None
    net_amount: Decimal | None = None  # gross minus returns/credits
    commission_basis: str = "GROSS_REVENUE"
    customer_id: str | None = None
    customer_tier: str | None = None
    project_id: str | None = None
    product_category_id: str | None = None
    territory_id: str | None = None
    transaction_date: str | None = None
    returns: list[Decimal] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationContext":
        gross = _first_present(data, "gross_amount", "gross_revenue")
        net = _first_present(data, "net_amount", "net_sales")
        return cls(
            gross_amount=to_optional_decimal(gross, "gross_amount"),
            net_amount=to_optional_decimal(net, "net_amount"),
            commission_basis=data.get("commission_basis") or "GROSS_REVENUE",
            # Support both 'customer_id' and 'client_id'
            customer_id=_optional_str(_first_present(data, "customer_id", "client_id")),
            customer_tier=data.get("customer_tier"),
            project_id=_optional_str(data.get("project_id")),
            product_category_id=_optional_str(data.get("product_category_id")),
            territory_id=_optional_str(data.get("territory_id")),
            transaction_date=data.get("transaction_date"),
            returns=[to_decimal(r, "returns") for r in data.get("returns") or []],
        )


@dataclass
class CalculationInput:
    """Complete input for one pass through the processing pipeline."""

    context: CalculationContext
    rules: list[CommissionRule] = field(default_factory=list)
    mode: str = "precedence"
    tie_policy: str | None = None  # None = processor default
    apply_sale_filters: bool = True
    include_trace: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationInput":
        return cls(
            context=CalculationContext.from_dict(data["context"]),
            rules=[CommissionRule.from_dict(r) for r in data.get("rules") or []],
            mode=data.get("mode", "precedence"),
            tie_policy=data.get("tie_policy"),
            apply_sale_filters=data.get("apply_sale_filters", True),
            include_trace=data.get("include_trace", False),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class BasisResolution:
    """Which basis was used and its dollar value."""

    basis: str
    basis_amount: Decimal


@dataclass
class TierContribution:
    """One tier's share of a tiered commission."""

    threshold: Decimal
    rate: Decimal
    amount: Decimal  # portion of the basis falling in this tier
    commission: Decimal


@dataclass
class RuleEvaluation:
    """Result of evaluating one rule against the basis amount."""

    rule: CommissionRule
    calculated_amount: Decimal = ZERO  # before caps
    applied_amount: Decimal = ZERO  # after caps
    capped_by_min: bool = False
    capped_by_max: bool = False
    tier_breakdown: list[TierContribution] = field(default_factory=list)

    @property
    def rule_id(self) -> str:
        return self.rule.id


@dataclass
class MatchedRule:
    """A candidate rule whose scope matched the context."""

    rule_id: str
    scope: str
    priority: int
    selected: bool


@dataclass
class SelectedRule:
    rule_id: str
    scope: str
    priority: int
    description: str


@dataclass
class CalculationResult:
    """Final output of a commission calculation."""

    basis: str
    basis_amount: Decimal
    mode: str
    total_commission: Decimal = ZERO
    applied_rules: list[RuleEvaluation] = field(default_factory=list)
    matched_rules: list[MatchedRule] = field(default_factory=list)
    selected_rule: SelectedRule | None = None
    tie_policy: str | None = None
    context: CalculationContext | None = None


@dataclass
class RuleValidationError:
    field: str
    message: str


@dataclass
class RuleConflict:
    rule_id: str
    description: str | None
    reason: str


# =============================================================================
# TRACE MODELS
# =============================================================================


@dataclass
class RuleCondition:
    """A single condition checked while matching a rule."""

    field: str
    operator: str
    expected: object
    actual: object
    passed: bool


@dataclass
class RuleTrace:
    """How one candidate rule fared during a calculation."""

    rule_id: str
    rule_type: str
    scope: str
    priority: int
    description: str
    conditions: list[RuleCondition] = field(default_factory=list)
    eligible: bool = False
    selected: bool = False
    calculation: dict | None = None  # only present when selected


@dataclass
class CalculationTrace:
    """Everything needed to explain a commission after the fact."""

    engine_version: str
    basis: str
    basis_amount: Decimal
    rule_trace: list[RuleTrace]
    selected_rule_ids: list[str]
    commission_amount: Decimal
    effective_rate: Decimal
    calculated_at: str
