"""
COMMISSION CALCULATION ENGINE
Version 1.0
"""

from .models import ENGINE_VERSION, CalculationContext, CalculationInput, CalculationResult, CommissionRule
from .processor import CommissionProcessor

__all__ = [
    "CommissionProcessor",
    "CalculationContext",
    "CalculationInput",
    "CalculationResult",
    "CommissionRule",
    "ENGINE_VERSION",
]
