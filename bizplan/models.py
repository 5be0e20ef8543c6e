"""Data models for the bizplan calculation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class PeriodType(str, Enum):
    """Time window granularity of a projection."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class ConfidenceLevel(str, Enum):
    """Qualitative confidence scaling a growth assumption."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CalculationMethod(str, Enum):
    """Revenue projection methods."""

    LINEAR = "linear"
    COMPOUND = "compound"
    HISTORICAL = "historical"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Period:
    """Time window a projection covers (ISO-8601 dates)."""

    start_date: str
    end_date: str
    period_type: PeriodType = PeriodType.ANNUAL

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Period":
        return cls(
            start_date=data.get("startDate", data.get("start_date", "")),
            end_date=data.get("endDate", data.get("end_date", "")),
            period_type=PeriodType(data.get("periodType", data.get("period_type", "annual"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "periodType": self.period_type.value,
        }


@dataclass(frozen=True)
class RevenueScenario:
    """One hypothesis within a revenue projection."""

    id: str
    name: str
    projected_revenue: float
    baseline_revenue: float
    probability_percentage: float
    is_preferred: bool = False
    assumptions: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RevenueScenario":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            projected_revenue=float(data.get("projectedRevenue", 0.0)),
            baseline_revenue=float(data.get("baselineRevenue", 0.0)),
            probability_percentage=float(data.get("probabilityPercentage", 0.0)),
            is_preferred=bool(data.get("isPreferred", False)),
            assumptions=tuple(data.get("assumptions", ())),
        )


@dataclass(frozen=True)
class BreakEvenResult:
    """Single-product break-even analysis."""

    break_even_point: float  # Revenue needed to cover fixed costs
    break_even_date: str  # ISO date of the month break-even is reached
    months_to_break_even: int
    fixed_costs: float
    variable_costs_per_unit: float
    revenue_per_unit: float
    units_at_break_even: float
    assumptions: Tuple[str, ...] = ()

    @property
    def contribution_margin(self) -> float:
        return self.revenue_per_unit - self.variable_costs_per_unit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakEvenPoint": self.break_even_point,
            "breakEvenDate": self.break_even_date,
            "monthsToBreakEven": self.months_to_break_even,
            "fixedCosts": self.fixed_costs,
            "variableCostsPerUnit": self.variable_costs_per_unit,
            "revenuePerUnit": self.revenue_per_unit,
            "unitsAtBreakEven": self.units_at_break_even,
            "assumptions": list(self.assumptions),
        }


@dataclass(frozen=True)
class RevenueProjection:
    """Revenue projection record as exchanged with the adapter layer."""

    id: Optional[str]
    plan_id: Optional[str]
    period: Optional[Period]
    scenarios: Tuple[RevenueScenario, ...] = ()
    total_revenue: float = 0.0
    revenue_by_category: Mapping[str, float] = field(default_factory=dict)
    break_even: Optional[BreakEvenResult] = None

    def __post_init__(self) -> None:
        if not isinstance(self.scenarios, tuple):
            object.__setattr__(self, "scenarios", tuple(self.scenarios))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RevenueProjection":
        """
        Build a projection from a camelCase record.

        Raises:
            ValueError, TypeError: If a field cannot be coerced (unknown period
                type, non-numeric amount)
        """
        period = data.get("period")
        return cls(
            id=data.get("id"),
            plan_id=data.get("planId"),
            period=Period.from_dict(period) if period else None,
            scenarios=tuple(RevenueScenario.from_dict(s) for s in data.get("scenarios") or ()),
            total_revenue=float(data.get("totalRevenue") or 0.0),
            revenue_by_category=dict(data.get("revenueByCategory") or {}),
        )


@dataclass(frozen=True)
class Product:
    """Product line in a multi-product sales mix."""

    name: str
    revenue_per_unit: float
    variable_costs_per_unit: float
    sales_mix: float  # Percentage of total unit sales

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        return cls(
            name=data["name"],
            revenue_per_unit=float(data["revenuePerUnit"]),
            variable_costs_per_unit=float(data["variableCostsPerUnit"]),
            sales_mix=float(data["salesMix"]),
        )


@dataclass(frozen=True)
class ProductBreakEven:
    """Share of a multi-product break-even attributed to one product."""

    name: str
    break_even_units: float
    break_even_revenue: float


@dataclass(frozen=True)
class MultiProductBreakEvenResult:
    """Sales-mix weighted break-even analysis."""

    break_even_revenue: float
    break_even_units: float
    contribution_margin_ratio: float
    break_even_by_product: Tuple[ProductBreakEven, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakEvenRevenue": self.break_even_revenue,
            "breakEvenUnits": self.break_even_units,
            "contributionMarginRatio": self.contribution_margin_ratio,
            "breakEvenByProduct": [
                {
                    "name": p.name,
                    "breakEvenUnits": p.break_even_units,
                    "breakEvenRevenue": p.break_even_revenue,
                }
                for p in self.break_even_by_product
            ],
        }


@dataclass(frozen=True)
class SubscriptionBreakEvenResult:
    """Recurring-revenue break-even analysis."""

    break_even_subscribers: float
    break_even_revenue: float
    break_even_months: int
    ltv: float  # Lifetime value
    cac: float  # Customer acquisition cost
    ltv_cac_ratio: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakEvenSubscribers": self.break_even_subscribers,
            "breakEvenRevenue": self.break_even_revenue,
            "breakEvenMonths": self.break_even_months,
            "ltv": self.ltv,
            "cac": self.cac,
            "ltvCacRatio": self.ltv_cac_ratio,
        }


@dataclass(frozen=True)
class ProfitabilityResult:
    """Investment profitability metrics."""

    roi: float  # Percent
    npv: float
    irr: float  # Percent
    payback_period: float  # Periods, -1 when never recovered
    discount_rate: float  # Percent, not a fraction
    initial_investment: float
    cash_flows: Tuple[float, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roi": self.roi,
            "npv": self.npv,
            "irr": self.irr,
            "paybackPeriod": self.payback_period,
            "discountRate": self.discount_rate,
            "initialInvestment": self.initial_investment,
            "cashFlows": list(self.cash_flows),
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a non-throwing pre-flight check."""

    is_valid: bool
    errors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


@dataclass(frozen=True)
class FinancialItem:
    """Line item of a financial statement (revenue, expense, asset, liability or equity)."""

    id: str
    name: str
    category: str  # e.g. costOfSales, operatingExpense, currentAsset, equity
    amount: float
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinancialItem":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            category=data.get("category", ""),
            amount=float(data.get("amount") or 0.0),
            description=data.get("description", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
        }


@dataclass(frozen=True)
class IncomeStatement:
    revenue: float
    cost_of_sales: float
    gross_profit: float
    operating_expenses: float
    operating_profit: float
    taxes: float
    net_profit: float
    revenue_items: Tuple[FinancialItem, ...] = ()
    expense_items: Tuple[FinancialItem, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue": self.revenue,
            "costOfSales": self.cost_of_sales,
            "grossProfit": self.gross_profit,
            "operatingExpenses": self.operating_expenses,
            "operatingProfit": self.operating_profit,
            "taxes": self.taxes,
            "netProfit": self.net_profit,
            "revenueItems": [i.to_dict() for i in self.revenue_items],
            "expenseItems": [i.to_dict() for i in self.expense_items],
        }


@dataclass(frozen=True)
class CashFlowLine:
    name: str
    amount: float
    description: str = ""


@dataclass(frozen=True)
class CashFlowStatement:
    operating_cash_flow: float
    investing_cash_flow: float
    financing_cash_flow: float
    net_cash_flow: float
    beginning_cash_balance: float
    ending_cash_balance: float
    operating_activities: Tuple[CashFlowLine, ...] = ()
    investing_activities: Tuple[CashFlowLine, ...] = ()
    financing_activities: Tuple[CashFlowLine, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        def lines(activities: Tuple[CashFlowLine, ...]) -> list:
            return [
                {"name": a.name, "amount": a.amount, "description": a.description}
                for a in activities
            ]

        return {
            "operatingCashFlow": self.operating_cash_flow,
            "investingCashFlow": self.investing_cash_flow,
            "financingCashFlow": self.financing_cash_flow,
            "netCashFlow": self.net_cash_flow,
            "beginningCashBalance": self.beginning_cash_balance,
            "endingCashBalance": self.ending_cash_balance,
            "operatingActivities": lines(self.operating_activities),
            "investingActivities": lines(self.investing_activities),
            "financingActivities": lines(self.financing_activities),
        }


@dataclass(frozen=True)
class BalanceSheet:
    current_assets: float
    non_current_assets: float
    total_assets: float
    current_liabilities: float
    non_current_liabilities: float
    total_liabilities: float
    equity: float
    asset_items: Tuple[FinancialItem, ...] = ()
    liability_items: Tuple[FinancialItem, ...] = ()
    equity_items: Tuple[FinancialItem, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentAssets": self.current_assets,
            "nonCurrentAssets": self.non_current_assets,
            "totalAssets": self.total_assets,
            "currentLiabilities": self.current_liabilities,
            "nonCurrentLiabilities": self.non_current_liabilities,
            "totalLiabilities": self.total_liabilities,
            "equity": self.equity,
            "assetItems": [i.to_dict() for i in self.asset_items],
            "liabilityItems": [i.to_dict() for i in self.liability_items],
            "equityItems": [i.to_dict() for i in self.equity_items],
        }


@dataclass(frozen=True)
class FinancialStatements:
    """Income statement, cash flow statement and balance sheet of one period."""

    income_statement: IncomeStatement
    cash_flow_statement: CashFlowStatement
    balance_sheet: BalanceSheet

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incomeStatement": self.income_statement.to_dict(),
            "cashFlowStatement": self.cash_flow_statement.to_dict(),
            "balanceSheet": self.balance_sheet.to_dict(),
        }
