"""
Financial statements model.

Builds the income statement, cash flow statement and balance sheet of one
period from categorized line items. The cash flow statement uses the indirect
method: net profit adjusted by changes in working capital against the previous
balance sheet, investing flows from non-current assets and financing flows from
non-current liabilities.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..memo_cache import MemoizationCache, default_cache, make_key
from ..models import (
    BalanceSheet,
    CashFlowLine,
    CashFlowStatement,
    FinancialItem,
    FinancialStatements,
    IncomeStatement,
)

logger = logging.getLogger(__name__)

ItemLike = Union[FinancialItem, Mapping[str, Any]]

COST_OF_SALES = "costOfSales"
OPERATING_EXPENSE = "operatingExpense"
CURRENT_ASSET = "currentAsset"
NON_CURRENT_ASSET = "nonCurrentAsset"
CURRENT_LIABILITY = "currentLiability"
NON_CURRENT_LIABILITY = "nonCurrentLiability"
EQUITY = "equity"

RETAINED_EARNINGS = "Retained Earnings"

# Imbalances above this amount get an explicit balancing equity item
BALANCING_THRESHOLD = 1.0


def _items(items: Optional[Iterable[ItemLike]]) -> Tuple[FinancialItem, ...]:
    return tuple(
        i if isinstance(i, FinancialItem) else FinancialItem.from_dict(i) for i in items or ()
    )


def _of(items: Sequence[FinancialItem], category: str) -> Tuple[FinancialItem, ...]:
    return tuple(i for i in items if i.category == category)


def _total(items: Iterable[FinancialItem]) -> float:
    return sum(i.amount for i in items)


def _cash(asset_items: Iterable[FinancialItem]) -> Optional[float]:
    """Amount of the asset item named Cash, if any."""
    for item in asset_items:
        if item.name.lower() == "cash":
            return item.amount
    return None


def _key_items(items: Sequence[FinancialItem]) -> Tuple[Tuple[Any, ...], ...]:
    return tuple((i.id, i.name, i.category, i.amount) for i in items)


class FinancialStatementsCalculator:
    """Calculator for period financial statements."""

    def __init__(self, cache: Optional[MemoizationCache] = None) -> None:
        """
        Initialize the statements calculator.

        Args:
            cache: Memoization cache for complete statement sets (shared default if omitted)
        """
        self.cache = cache if cache is not None else default_cache

    def calculate_financial_statements(
        self,
        projection_id: str,
        tax_rate: float,
        revenue_items: Sequence[ItemLike],
        expense_items: Sequence[ItemLike],
        asset_items: Sequence[ItemLike],
        liability_items: Sequence[ItemLike],
        equity_items: Sequence[ItemLike],
        previous_balance_sheet: Optional[BalanceSheet] = None,
    ) -> FinancialStatements:
        """
        Calculate all three statements for one period.

        Args:
            projection_id: Financial projection the items belong to
            tax_rate: Tax rate in percent applied to positive operating profit
            revenue_items: Revenue line items
            expense_items: Expense items (costOfSales or operatingExpense)
            asset_items: Asset items (currentAsset or nonCurrentAsset)
            liability_items: Liability items (currentLiability or nonCurrentLiability)
            equity_items: Equity items
            previous_balance_sheet: Closing balance sheet of the prior period, if any

        Returns:
            FinancialStatements
        """
        revenue = _items(revenue_items)
        expenses = _items(expense_items)
        assets = _items(asset_items)
        liabilities = _items(liability_items)
        equity = _items(equity_items)

        previous = None
        if previous_balance_sheet is not None:
            previous = (
                previous_balance_sheet.current_assets,
                previous_balance_sheet.non_current_assets,
                previous_balance_sheet.current_liabilities,
                previous_balance_sheet.non_current_liabilities,
                _cash(previous_balance_sheet.asset_items),
            )

        cache_key = make_key(
            "financial_statements",
            projection_id,
            tax_rate,
            _key_items(revenue),
            _key_items(expenses),
            _key_items(assets),
            _key_items(liabilities),
            _key_items(equity),
            previous,
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        income_statement = self.calculate_income_statement(revenue, expenses, tax_rate)
        cash_flow_statement = self.calculate_cash_flow_statement(
            income_statement, assets, liabilities, previous_balance_sheet
        )
        balance_sheet = self.calculate_balance_sheet(
            assets, liabilities, equity, income_statement.net_profit
        )

        result = FinancialStatements(income_statement, cash_flow_statement, balance_sheet)
        self.cache.set(cache_key, result)
        return result

    def calculate_income_statement(
        self,
        revenue_items: Sequence[ItemLike],
        expense_items: Sequence[ItemLike],
        tax_rate: float,
    ) -> IncomeStatement:
        """
        Calculate the income statement.

        Expense items outside costOfSales and operatingExpense are ignored.
        Taxes apply only to a positive operating profit.
        """
        revenue_items = _items(revenue_items)
        expense_items = _items(expense_items)

        cost_of_sales_items = _of(expense_items, COST_OF_SALES)
        operating_items = _of(expense_items, OPERATING_EXPENSE)

        revenue = _total(revenue_items)
        cost_of_sales = _total(cost_of_sales_items)
        operating_expenses = _total(operating_items)

        gross_profit = revenue - cost_of_sales
        operating_profit = gross_profit - operating_expenses
        taxes = operating_profit * (tax_rate / 100) if operating_profit > 0 else 0.0

        return IncomeStatement(
            revenue=revenue,
            cost_of_sales=cost_of_sales,
            gross_profit=gross_profit,
            operating_expenses=operating_expenses,
            operating_profit=operating_profit,
            taxes=taxes,
            net_profit=operating_profit - taxes,
            revenue_items=revenue_items,
            expense_items=cost_of_sales_items + operating_items,
        )

    def calculate_cash_flow_statement(
        self,
        income_statement: IncomeStatement,
        asset_items: Sequence[ItemLike],
        liability_items: Sequence[ItemLike],
        previous_balance_sheet: Optional[BalanceSheet] = None,
    ) -> CashFlowStatement:
        """
        Calculate the cash flow statement.

        Args:
            income_statement: Income statement of the period
            asset_items: Closing asset items of the period
            liability_items: Closing liability items of the period
            previous_balance_sheet: Opening position; all zero when omitted

        Returns:
            CashFlowStatement. The ending cash balance is the Cash asset item
            when present, otherwise beginning balance plus net cash flow.
        """
        asset_items = _items(asset_items)
        liability_items = _items(liability_items)
        prev = previous_balance_sheet

        change_in_current_assets = _total(_of(asset_items, CURRENT_ASSET)) - (
            prev.current_assets if prev else 0.0
        )
        change_in_non_current_assets = _total(_of(asset_items, NON_CURRENT_ASSET)) - (
            prev.non_current_assets if prev else 0.0
        )
        change_in_current_liabilities = _total(_of(liability_items, CURRENT_LIABILITY)) - (
            prev.current_liabilities if prev else 0.0
        )
        change_in_non_current_liabilities = _total(_of(liability_items, NON_CURRENT_LIABILITY)) - (
            prev.non_current_liabilities if prev else 0.0
        )

        net_profit = income_statement.net_profit
        operating_cash_flow = net_profit - change_in_current_assets + change_in_current_liabilities
        investing_cash_flow = -change_in_non_current_assets
        financing_cash_flow = change_in_non_current_liabilities
        net_cash_flow = operating_cash_flow + investing_cash_flow + financing_cash_flow

        previous_cash = _cash(prev.asset_items) if prev else None
        beginning_cash_balance = previous_cash if previous_cash is not None else 0.0
        closing_cash = _cash(asset_items)
        ending_cash_balance = (
            closing_cash if closing_cash is not None else beginning_cash_balance + net_cash_flow
        )

        return CashFlowStatement(
            operating_cash_flow=operating_cash_flow,
            investing_cash_flow=investing_cash_flow,
            financing_cash_flow=financing_cash_flow,
            net_cash_flow=net_cash_flow,
            beginning_cash_balance=beginning_cash_balance,
            ending_cash_balance=ending_cash_balance,
            operating_activities=(
                CashFlowLine("Net Profit", net_profit, "Net profit from income statement"),
                CashFlowLine(
                    "Changes in Current Assets",
                    -change_in_current_assets,
                    "Changes in accounts receivable, inventory, etc.",
                ),
                CashFlowLine(
                    "Changes in Current Liabilities",
                    change_in_current_liabilities,
                    "Changes in accounts payable, accruals, etc.",
                ),
            ),
            investing_activities=(
                CashFlowLine(
                    "Purchase of Non-Current Assets",
                    -change_in_non_current_assets,
                    "Net investment in long-term assets",
                ),
            ),
            financing_activities=(
                CashFlowLine(
                    "Changes in Long-term Debt",
                    change_in_non_current_liabilities,
                    "Net changes in long-term loans and debt",
                ),
            ),
        )

    def calculate_balance_sheet(
        self,
        asset_items: Sequence[ItemLike],
        liability_items: Sequence[ItemLike],
        equity_items: Sequence[ItemLike],
        net_profit: float,
    ) -> BalanceSheet:
        """
        Calculate the closing balance sheet.

        Net profit is added to the Retained Earnings equity item (created if
        missing). When assets minus liabilities still differs from equity by
        more than the balancing threshold, a Balancing Adjustment equity item
        absorbs the difference. The input items are never modified.
        """
        asset_items = _items(asset_items)
        liability_items = _items(liability_items)

        current_asset_items = _of(asset_items, CURRENT_ASSET)
        non_current_asset_items = _of(asset_items, NON_CURRENT_ASSET)
        current_liability_items = _of(liability_items, CURRENT_LIABILITY)
        non_current_liability_items = _of(liability_items, NON_CURRENT_LIABILITY)

        current_assets = _total(current_asset_items)
        non_current_assets = _total(non_current_asset_items)
        current_liabilities = _total(current_liability_items)
        non_current_liabilities = _total(non_current_liability_items)
        total_assets = current_assets + non_current_assets
        total_liabilities = current_liabilities + non_current_liabilities

        equity_items = self._with_retained_earnings(_items(equity_items), net_profit)
        equity_total = _total(equity_items)

        adjustment = total_assets - total_liabilities - equity_total
        if abs(adjustment) > BALANCING_THRESHOLD:
            logger.warning("Balance sheet off by %.2f, adding balancing adjustment", adjustment)
            equity_items += (
                FinancialItem(
                    id="balancing-adjustment",
                    name="Balancing Adjustment",
                    category=EQUITY,
                    amount=adjustment,
                    description="Adjustment to ensure accounting equation balance",
                ),
            )
            equity_total = total_assets - total_liabilities

        return BalanceSheet(
            current_assets=current_assets,
            non_current_assets=non_current_assets,
            total_assets=total_assets,
            current_liabilities=current_liabilities,
            non_current_liabilities=non_current_liabilities,
            total_liabilities=total_liabilities,
            equity=equity_total,
            asset_items=current_asset_items + non_current_asset_items,
            liability_items=current_liability_items + non_current_liability_items,
            equity_items=equity_items,
        )

    def _with_retained_earnings(
        self, equity_items: Tuple[FinancialItem, ...], net_profit: float
    ) -> Tuple[FinancialItem, ...]:
        """Return equity items with net profit added to retained earnings."""
        updated: List[FinancialItem] = []
        found = False
        for item in equity_items:
            if not found and item.name == RETAINED_EARNINGS:
                item = FinancialItem(
                    item.id, item.name, item.category, item.amount + net_profit, item.description
                )
                found = True
            updated.append(item)

        if not found:
            updated.append(
                FinancialItem(
                    id="retained-earnings",
                    name=RETAINED_EARNINGS,
                    category=EQUITY,
                    amount=net_profit,
                    description="Accumulated profits from current and previous periods",
                )
            )
        return tuple(updated)


def create_statements_calculator(
    cache: Optional[MemoizationCache] = None,
) -> FinancialStatementsCalculator:
    """
    Create a financial statements calculator instance.

    Args:
        cache: Memoization cache (shared default if omitted)

    Returns:
        FinancialStatementsCalculator instance
    """
    return FinancialStatementsCalculator(cache)


def calculate_financial_statements(
    projection_id: str,
    tax_rate: float,
    revenue_items: Sequence[ItemLike],
    expense_items: Sequence[ItemLike],
    asset_items: Sequence[ItemLike],
    liability_items: Sequence[ItemLike],
    equity_items: Sequence[ItemLike],
    previous_balance_sheet: Optional[BalanceSheet] = None,
) -> FinancialStatements:
    """Calculate the three statements of a period (convenience function)."""
    return create_statements_calculator().calculate_financial_statements(
        projection_id,
        tax_rate,
        revenue_items,
        expense_items,
        asset_items,
        liability_items,
        equity_items,
        previous_balance_sheet,
    )


def calculate_income_statement(
    revenue_items: Sequence[ItemLike],
    expense_items: Sequence[ItemLike],
    tax_rate: float,
) -> IncomeStatement:
    """Calculate an income statement (convenience function)."""
    return create_statements_calculator().calculate_income_statement(
        revenue_items, expense_items, tax_rate
    )


def calculate_cash_flow_statement(
    income_statement: IncomeStatement,
    asset_items: Sequence[ItemLike],
    liability_items: Sequence[ItemLike],
    previous_balance_sheet: Optional[BalanceSheet] = None,
) -> CashFlowStatement:
    """Calculate a cash flow statement (convenience function)."""
    return create_statements_calculator().calculate_cash_flow_statement(
        income_statement, asset_items, liability_items, previous_balance_sheet
    )


def calculate_balance_sheet(
    asset_items: Sequence[ItemLike],
    liability_items: Sequence[ItemLike],
    equity_items: Sequence[ItemLike],
    net_profit: float,
) -> BalanceSheet:
    """Calculate a balance sheet (convenience function)."""
    return create_statements_calculator().calculate_balance_sheet(
        asset_items, liability_items, equity_items, net_profit
    )
