"""
Break-even models for single-product, sales-mix and subscription businesses.

This module implements the contribution margin method:
- Single product: units needed to cover fixed costs, and the month the
  projected unit sales reach them
- Multi product: sales-mix weighted contribution margin, split back per product
- Subscription: static subscriber count covering fixed costs, with LTV/CAC
"""

import logging
import math
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..memo_cache import MemoizationCache, default_cache, make_key
from ..models import (
    BreakEvenResult,
    MultiProductBreakEvenResult,
    Product,
    ProductBreakEven,
    SubscriptionBreakEvenResult,
)

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, pd.Timestamp]

# Allowed deviation of sales-mix percentages from 100
SALES_MIX_TOLERANCE = 0.1


class BreakEvenError(ValueError):
    """Raised when inputs make the break-even question ill-posed."""


def parse_date(value: DateLike) -> pd.Timestamp:
    """Convert an ISO-8601 string, date or datetime to a Timestamp."""
    return pd.Timestamp(value)


def add_months(start: DateLike, months: int) -> pd.Timestamp:
    """
    Shift a date by whole calendar months.

    Days past the end of the target month are clamped to its last day
    (Jan 31 + 1 month = Feb 28/29).
    """
    return parse_date(start) + pd.DateOffset(months=int(months))


class BreakEvenAnalyzer:
    """Calculator for break-even points and dates."""

    def __init__(self, cache: Optional[MemoizationCache] = None) -> None:
        """
        Initialize break-even analyzer.

        Args:
            cache: Memoization cache for single-product results (shared default if omitted)
        """
        self.cache = cache if cache is not None else default_cache

    def calculate_break_even(
        self,
        fixed_costs: float,
        revenue_per_unit: float,
        variable_costs_per_unit: float,
        projected_unit_sales: Sequence[float],
        start_date: DateLike,
    ) -> BreakEvenResult:
        """
        Calculate break-even point and date using the contribution margin method.

        Args:
            fixed_costs: Fixed costs to recover
            revenue_per_unit: Selling price per unit
            variable_costs_per_unit: Variable cost per unit
            projected_unit_sales: Projected unit sales per month, in order
            start_date: First month of the projection

        Returns:
            BreakEvenResult

        Raises:
            BreakEvenError: If the contribution margin is not positive, or the
                schedule never reaches break-even and has no positive average sales
        """
        start = parse_date(start_date)
        cache_key = make_key(
            "break_even",
            fixed_costs,
            revenue_per_unit,
            variable_costs_per_unit,
            projected_unit_sales,
            start.date(),
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        contribution_margin = revenue_per_unit - variable_costs_per_unit
        if contribution_margin <= 0:
            raise BreakEvenError(
                f"Contribution margin must be positive to calculate break-even point "
                f"(current: {contribution_margin})"
            )

        units_at_break_even = fixed_costs / contribution_margin
        break_even_point = units_at_break_even * revenue_per_unit

        # First month where cumulative unit sales cover the break-even units
        months_to_break_even = 0
        cumulative_units = 0.0
        for month_idx, units in enumerate(projected_unit_sales):
            cumulative_units += units
            if cumulative_units >= units_at_break_even:
                months_to_break_even = month_idx + 1
                break

        if months_to_break_even == 0 and len(projected_unit_sales) > 0:
            # Not reached in the schedule: extrapolate at the average monthly rate
            avg_monthly_sales = sum(projected_unit_sales) / len(projected_unit_sales)
            if avg_monthly_sales <= 0:
                raise BreakEvenError(
                    "Break-even is never reached: projected unit sales average "
                    f"{avg_monthly_sales} per month"
                )
            months_to_break_even = math.ceil(units_at_break_even / avg_monthly_sales)
            logger.warning(
                "Break-even not reached within %d projected months, estimated at month %d",
                len(projected_unit_sales),
                months_to_break_even,
            )

        break_even_date = add_months(start, months_to_break_even - 1)

        result = BreakEvenResult(
            break_even_point=break_even_point,
            break_even_date=break_even_date.date().isoformat(),
            months_to_break_even=months_to_break_even,
            fixed_costs=fixed_costs,
            variable_costs_per_unit=variable_costs_per_unit,
            revenue_per_unit=revenue_per_unit,
            units_at_break_even=units_at_break_even,
            assumptions=(
                f"Fixed costs: {fixed_costs}",
                f"Revenue per unit: {revenue_per_unit}",
                f"Variable costs per unit: {variable_costs_per_unit}",
                f"Contribution margin: {contribution_margin} per unit",
            ),
        )

        self.cache.set(cache_key, result)
        return result

    def calculate_multi_product_break_even(
        self,
        fixed_costs: float,
        products: Sequence[Union[Product, Mapping[str, Any]]],
    ) -> MultiProductBreakEvenResult:
        """
        Calculate break-even for a sales mix of several products.

        Args:
            fixed_costs: Fixed costs shared by all products
            products: Products with their sales mix percentages (must sum to 100)

        Returns:
            MultiProductBreakEvenResult

        Raises:
            BreakEvenError: If the sales mix does not sum to 100 (+/- 0.1), a
                product has no price, or the weighted contribution margin is not positive
        """
        items: List[Product] = [
            p if isinstance(p, Product) else Product.from_dict(p) for p in products
        ]

        total_sales_mix = sum(p.sales_mix for p in items)
        if abs(total_sales_mix - 100) > SALES_MIX_TOLERANCE:
            raise BreakEvenError(
                f"Sales mix percentages must sum to 100% (current: {total_sales_mix}%)"
            )

        weighted_margin = 0.0
        weighted_margin_ratio = 0.0
        for product in items:
            if product.revenue_per_unit <= 0:
                raise BreakEvenError(f"Product {product.name} must have a positive revenue per unit")
            margin = product.revenue_per_unit - product.variable_costs_per_unit
            share = product.sales_mix / 100
            weighted_margin += margin * share
            weighted_margin_ratio += (margin / product.revenue_per_unit) * share

        if weighted_margin <= 0 or weighted_margin_ratio <= 0:
            raise BreakEvenError(
                f"Weighted contribution margin must be positive (current: {weighted_margin})"
            )

        break_even_units = fixed_costs / weighted_margin
        break_even_revenue = fixed_costs / weighted_margin_ratio

        by_product = []
        for product in items:
            product_units = break_even_units * (product.sales_mix / 100)
            by_product.append(
                ProductBreakEven(
                    name=product.name,
                    break_even_units=product_units,
                    break_even_revenue=product_units * product.revenue_per_unit,
                )
            )

        return MultiProductBreakEvenResult(
            break_even_revenue=break_even_revenue,
            break_even_units=break_even_units,
            contribution_margin_ratio=weighted_margin_ratio,
            break_even_by_product=tuple(by_product),
        )

    def calculate_subscription_break_even(
        self,
        fixed_costs: float,
        monthly_subscription_revenue: float,
        variable_costs_per_subscriber: float,
        customer_acquisition_cost: float,
        churn_rate: float,
    ) -> SubscriptionBreakEvenResult:
        """
        Calculate break-even for a subscription business.

        Static model: subscribers needed to cover fixed costs each month, with
        no acquisition ramp-up or cohort decay.

        Args:
            fixed_costs: Monthly fixed costs
            monthly_subscription_revenue: Revenue per subscriber per month
            variable_costs_per_subscriber: Cost to serve a subscriber per month
            customer_acquisition_cost: Cost to acquire one subscriber
            churn_rate: Monthly churn rate as a percentage (e.g., 5 for 5%)

        Returns:
            SubscriptionBreakEvenResult

        Raises:
            BreakEvenError: If margin, churn rate or acquisition cost is not positive
        """
        margin_per_subscriber = monthly_subscription_revenue - variable_costs_per_subscriber
        if margin_per_subscriber <= 0:
            raise BreakEvenError(
                f"Contribution margin per subscriber must be positive (current: {margin_per_subscriber})"
            )
        if churn_rate <= 0:
            raise BreakEvenError(f"Churn rate must be positive (current: {churn_rate}%)")
        if customer_acquisition_cost <= 0:
            raise BreakEvenError(
                f"Customer acquisition cost must be positive (current: {customer_acquisition_cost})"
            )

        average_lifetime_months = 1 / (churn_rate / 100)
        ltv = margin_per_subscriber * average_lifetime_months
        ltv_cac_ratio = ltv / customer_acquisition_cost

        break_even_subscribers = fixed_costs / margin_per_subscriber
        break_even_revenue = break_even_subscribers * monthly_subscription_revenue

        # Assumes fixed_costs / CAC subscribers acquired per month
        if fixed_costs > 0:
            monthly_acquisitions = fixed_costs / customer_acquisition_cost
            break_even_months = math.ceil(break_even_subscribers / monthly_acquisitions)
        else:
            break_even_months = 0

        return SubscriptionBreakEvenResult(
            break_even_subscribers=break_even_subscribers,
            break_even_revenue=break_even_revenue,
            break_even_months=break_even_months,
            ltv=ltv,
            cac=customer_acquisition_cost,
            ltv_cac_ratio=ltv_cac_ratio,
        )


def create_break_even_analyzer(cache: Optional[MemoizationCache] = None) -> BreakEvenAnalyzer:
    """
    Create a break-even analyzer instance.

    Args:
        cache: Memoization cache (shared default if omitted)

    Returns:
        BreakEvenAnalyzer instance
    """
    return BreakEvenAnalyzer(cache)


def calculate_break_even(
    fixed_costs: float,
    revenue_per_unit: float,
    variable_costs_per_unit: float,
    projected_unit_sales: Sequence[float],
    start_date: DateLike,
) -> BreakEvenResult:
    """Calculate single-product break-even (convenience function)."""
    return create_break_even_analyzer().calculate_break_even(
        fixed_costs, revenue_per_unit, variable_costs_per_unit, projected_unit_sales, start_date
    )


def calculate_multi_product_break_even(
    fixed_costs: float,
    products: Sequence[Union[Product, Mapping[str, Any]]],
) -> MultiProductBreakEvenResult:
    """Calculate sales-mix break-even (convenience function)."""
    return create_break_even_analyzer().calculate_multi_product_break_even(fixed_costs, products)


def calculate_subscription_break_even(
    fixed_costs: float,
    monthly_subscription_revenue: float,
    variable_costs_per_subscriber: float,
    customer_acquisition_cost: float,
    churn_rate: float,
) -> SubscriptionBreakEvenResult:
    """Calculate subscription break-even (convenience function)."""
    return create_break_even_analyzer().calculate_subscription_break_even(
        fixed_costs,
        monthly_subscription_revenue,
        variable_costs_per_subscriber,
        customer_acquisition_cost,
        churn_rate,
    )
