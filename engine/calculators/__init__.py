"""
Calculators Package

Provides all calculation components for commission processing.
"""

from .basis import BasisResolver
from .caps import CapEnforcer
from .net_sales import NetSalesCalculator
from .precedence import PrecedenceSelector
from .rule_evaluator import RuleEvaluator
from .sale_filter import SaleAmountFilter
from .stacker import RuleStacker

__all__ = [
    "BasisResolver",
    "CapEnforcer",
    "NetSalesCalculator",
    "PrecedenceSelector",
    "RuleEvaluator",
    "RuleStacker",
    "SaleAmountFilter",
]
