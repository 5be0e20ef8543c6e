"""
Financial projection and break-even calculation engine for business plans.
"""

from .memo_cache import MemoizationCache, create_cache, default_cache
from .models import (
    PeriodType,
    ConfidenceLevel,
    CalculationMethod,
    Period,
    RevenueScenario,
    RevenueProjection,
    BreakEvenResult,
    Product,
    ProductBreakEven,
    MultiProductBreakEvenResult,
    SubscriptionBreakEvenResult,
    ProfitabilityResult,
    ValidationResult,
    FinancialItem,
    IncomeStatement,
    CashFlowLine,
    CashFlowStatement,
    BalanceSheet,
    FinancialStatements,
)

__version__ = "1.0.0"

__all__ = [
    # memo_cache.py
    "MemoizationCache",
    "create_cache",
    "default_cache",
    # models.py
    "PeriodType",
    "ConfidenceLevel",
    "CalculationMethod",
    "Period",
    "RevenueScenario",
    "RevenueProjection",
    "BreakEvenResult",
    "Product",
    "ProductBreakEven",
    "MultiProductBreakEvenResult",
    "SubscriptionBreakEvenResult",
    "ProfitabilityResult",
    "ValidationResult",
    "FinancialItem",
    "IncomeStatement",
    "CashFlowLine",
    "CashFlowStatement",
    "BalanceSheet",
    "FinancialStatements",
]
