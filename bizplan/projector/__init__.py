"""
Projector module for business plan projections.

Provides revenue projections, break-even analysis, profitability metrics
and period financial statements.
"""

from .npv_calculator import (
    ProfitabilityAnalyzer,
    create_profitability_analyzer,
    calculate_profitability,
    calculate_npv,
    calculate_irr,
    calculate_payback_period,
    calculate_profitability_index,
    calculate_mirr,
)
from .breakeven_model import (
    BreakEvenError,
    BreakEvenAnalyzer,
    create_break_even_analyzer,
    calculate_break_even,
    calculate_multi_product_break_even,
    calculate_subscription_break_even,
)
from .revenue_model import (
    RevenueProjectionCalculator,
    create_revenue_calculator,
    calculate_projected_revenue,
    generate_monthly_revenue,
    validate_revenue_projection,
    summarize_scenarios,
)
from .statements_model import (
    FinancialStatementsCalculator,
    create_statements_calculator,
    calculate_financial_statements,
    calculate_income_statement,
    calculate_cash_flow_statement,
    calculate_balance_sheet,
)

__all__ = [
    # npv_calculator.py
    "ProfitabilityAnalyzer",
    "create_profitability_analyzer",
    "calculate_profitability",
    "calculate_npv",
    "calculate_irr",
    "calculate_payback_period",
    "calculate_profitability_index",
    "calculate_mirr",
    # breakeven_model.py
    "BreakEvenError",
    "BreakEvenAnalyzer",
    "create_break_even_analyzer",
    "calculate_break_even",
    "calculate_multi_product_break_even",
    "calculate_subscription_break_even",
    # revenue_model.py
    "RevenueProjectionCalculator",
    "create_revenue_calculator",
    "calculate_projected_revenue",
    "generate_monthly_revenue",
    "validate_revenue_projection",
    "summarize_scenarios",
    # statements_model.py
    "FinancialStatementsCalculator",
    "create_statements_calculator",
    "calculate_financial_statements",
    "calculate_income_statement",
    "calculate_cash_flow_statement",
    "calculate_balance_sheet",
]
