"""
Revenue projection model.

This module projects future revenue from a base value and a growth
assumption, spreads an annual figure across months using seasonality
weights, and checks revenue projection records for consistency.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Type, TypeVar, Union

import numpy as np
import pandas as pd

from ..memo_cache import MemoizationCache, default_cache, make_key
from ..models import (
    CalculationMethod,
    ConfidenceLevel,
    Period,
    PeriodType,
    RevenueProjection,
    RevenueScenario,
    ValidationResult,
)
from .breakeven_model import BreakEvenError, DateLike, add_months

logger = logging.getLogger(__name__)

E = TypeVar("E", PeriodType, ConfidenceLevel, CalculationMethod)

# Multiplier applied to the growth effect for each confidence level
CONFIDENCE_FACTORS = {
    ConfidenceLevel.LOW: 0.8,
    ConfidenceLevel.MEDIUM: 1.0,
    ConfidenceLevel.HIGH: 1.2,
}

# Exponent applied to compound growth for each period type
PERIOD_FRACTIONS = {
    PeriodType.MONTHLY: 1 / 12,
    PeriodType.QUARTERLY: 1 / 4,
    PeriodType.ANNUAL: 1.0,
}

MONTHS_PER_YEAR = 12

# Allowed deviation of scenario probabilities from 100
PROBABILITY_TOLERANCE = 0.1

# Months assumed when cumulative profit never covers fixed costs
DEFAULT_MONTHS_TO_BREAK_EVEN = 24


def _coerce(enum_cls: Type[E], value: Union[E, str]) -> Optional[E]:
    """Return the enum member for value, or None if it is not a known member."""
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _projection_from_record(
    record: Mapping[str, Any]
) -> Tuple[RevenueProjection, List[str], Set[str]]:
    """
    Coerce a camelCase projection record field by field.

    Fields that cannot be read are left empty on the returned projection and
    reported instead of raised.

    Returns:
        Tuple of (projection, error messages, names of unreadable fields)
    """
    errors: List[str] = []
    unreadable: Set[str] = set()

    period = None
    raw_period = record.get("period")
    if raw_period:
        try:
            if not isinstance(raw_period, Mapping):
                raise TypeError(f"expected a record, got {type(raw_period).__name__}")
            period = Period.from_dict(raw_period)
        except (TypeError, ValueError) as exc:
            errors.append(f"Invalid period information: {exc}")
            unreadable.add("period")

    total_revenue = 0.0
    try:
        total_revenue = float(record.get("totalRevenue") or 0.0)
    except (TypeError, ValueError):
        errors.append(f"Invalid total revenue: {record.get('totalRevenue')!r}")
        unreadable.add("totalRevenue")

    scenarios: List[RevenueScenario] = []
    raw_scenarios = record.get("scenarios") or ()
    if not isinstance(raw_scenarios, (list, tuple)):
        errors.append(f"Invalid scenarios: expected a list, got {type(raw_scenarios).__name__}")
        unreadable.add("scenarios")
        raw_scenarios = ()

    for idx, raw in enumerate(raw_scenarios):
        label = (raw.get("id") or idx) if isinstance(raw, Mapping) else idx
        try:
            if not isinstance(raw, Mapping):
                raise TypeError(f"expected a record, got {type(raw).__name__}")
            scenarios.append(RevenueScenario.from_dict(raw))
        except (TypeError, ValueError) as exc:
            errors.append(f"Invalid values for scenario {label}: {exc}")
            unreadable.add("scenarios")

    projection = RevenueProjection(
        id=record.get("id"),
        plan_id=record.get("planId"),
        period=period,
        scenarios=tuple(scenarios),
        total_revenue=total_revenue,
    )
    return projection, errors, unreadable


class RevenueProjectionCalculator:
    """Calculator for revenue projections."""

    def __init__(self, cache: Optional[MemoizationCache] = None) -> None:
        """
        Initialize the revenue calculator.

        Args:
            cache: Memoization cache for projected revenue (shared default if omitted)
        """
        self.cache = cache if cache is not None else default_cache

    def calculate_projected_revenue(
        self,
        base_revenue: float,
        growth_rate: float,
        period_type: Union[PeriodType, str],
        confidence_level: Union[ConfidenceLevel, str],
        method: Union[CalculationMethod, str],
        historical_data: Optional[Sequence[float]] = None,
    ) -> float:
        """
        Project revenue for the next period.

        Methods:
        - linear: base * (1 + growth * confidence)
        - compound: base * (1 + growth * confidence) ^ period_fraction
        - historical: linear, using the index-weighted average of historical growth rates
        - custom: base * (1 + growth) * confidence (confidence scales the whole result)
        - anything else: base revenue unchanged

        Args:
            base_revenue: Revenue of the reference period
            growth_rate: Growth assumption in percent (e.g., 25 for 25%)
            period_type: monthly, quarterly or annual
            confidence_level: low, medium or high
            method: Calculation method
            historical_data: Past growth rates in percent, oldest first (historical method)

        Returns:
            Projected revenue
        """
        history = tuple(historical_data) if historical_data is not None else ()
        cache_key = make_key(
            "projected_revenue",
            base_revenue,
            growth_rate,
            period_type,
            confidence_level,
            method,
            history,
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        confidence = _coerce(ConfidenceLevel, confidence_level)
        if confidence is None:
            raise ValueError(f"Unknown confidence level: {confidence_level}")
        confidence_factor = CONFIDENCE_FACTORS[confidence]

        calc_method = _coerce(CalculationMethod, method)

        if calc_method == CalculationMethod.LINEAR:
            result = base_revenue * (1 + (growth_rate / 100) * confidence_factor)

        elif calc_method == CalculationMethod.COMPOUND:
            period = _coerce(PeriodType, period_type)
            if period is None:
                raise ValueError(f"Unknown period type: {period_type}")
            growth_factor = 1 + (growth_rate / 100) * confidence_factor
            if growth_factor < 0:
                raise ValueError(
                    f"Compound growth factor must not be negative "
                    f"(growth {growth_rate}% at {confidence.value} confidence gives {growth_factor})"
                )
            result = base_revenue * math.pow(growth_factor, PERIOD_FRACTIONS[period])

        elif calc_method == CalculationMethod.HISTORICAL:
            if history:
                # Later observations weigh more: weights 1, 2, ..., n
                weights = np.arange(1, len(history) + 1)
                weighted_growth = float(np.average(history, weights=weights))
            else:
                weighted_growth = growth_rate
            result = base_revenue * (1 + (weighted_growth / 100) * confidence_factor)

        elif calc_method == CalculationMethod.CUSTOM:
            result = base_revenue * (1 + growth_rate / 100) * confidence_factor

        else:
            logger.debug("Unknown calculation method %s, returning base revenue", method)
            result = base_revenue

        self.cache.set(cache_key, result)
        return result

    def generate_monthly_revenue(
        self,
        annual_revenue: float,
        seasonality_factors: Optional[Sequence[float]],
        start_date: Optional[DateLike] = None,
    ) -> List[float]:
        """
        Spread an annual revenue figure over 12 months.

        Args:
            annual_revenue: Revenue for the whole year
            seasonality_factors: 12 relative monthly weights; anything else means uniform
            start_date: First month of the breakdown (kept for callers; values do not depend on it)

        Returns:
            12 monthly revenue values summing to annual_revenue
        """
        factors = self._normalized_factors(seasonality_factors)
        return [float(v) for v in annual_revenue * factors / MONTHS_PER_YEAR]

    def _normalized_factors(self, seasonality_factors: Optional[Sequence[float]]) -> np.ndarray:
        """Rescale 12 factors so they sum to 12, or return uniform weights."""
        if seasonality_factors is not None and len(seasonality_factors) == MONTHS_PER_YEAR:
            factors = np.asarray(seasonality_factors, dtype=float)
        else:
            factors = np.ones(MONTHS_PER_YEAR)

        factor_sum = factors.sum()
        if factor_sum <= 0:
            logger.warning("Seasonality factors sum to %s, using uniform weights", factor_sum)
            return np.ones(MONTHS_PER_YEAR)

        return factors * MONTHS_PER_YEAR / factor_sum

    def monthly_revenue_frame(
        self,
        annual_revenue: float,
        seasonality_factors: Optional[Sequence[float]],
        start_date: DateLike,
    ) -> pd.DataFrame:
        """
        Build a dated monthly revenue breakdown.

        Args:
            annual_revenue: Revenue for the whole year
            seasonality_factors: 12 relative monthly weights
            start_date: First month of the breakdown

        Returns:
            DataFrame with month, factor, revenue and cumulative_revenue columns
        """
        factors = self._normalized_factors(seasonality_factors)
        revenue = self.generate_monthly_revenue(annual_revenue, seasonality_factors, start_date)

        df = pd.DataFrame(
            {
                "month": [add_months(start_date, i) for i in range(MONTHS_PER_YEAR)],
                "factor": factors,
                "revenue": revenue,
            }
        )
        df["cumulative_revenue"] = df["revenue"].cumsum()
        return df

    def validate_revenue_projection(
        self, projection: Union[RevenueProjection, Mapping[str, Any]]
    ) -> ValidationResult:
        """
        Check a revenue projection for consistency without raising.

        Args:
            projection: RevenueProjection or its camelCase record

        Returns:
            ValidationResult listing every problem found, including fields of a
            record that cannot be read
        """
        if isinstance(projection, RevenueProjection):
            errors: List[str] = []
            unreadable: Set[str] = set()
        elif isinstance(projection, Mapping):
            projection, errors, unreadable = _projection_from_record(projection)
        else:
            return ValidationResult(
                is_valid=False,
                errors=(f"Invalid projection record: got {type(projection).__name__}",),
            )

        if not projection.id:
            errors.append("Missing projection ID")
        if not projection.plan_id:
            errors.append("Missing plan ID")
        if not projection.period and "period" not in unreadable:
            errors.append("Missing period information")

        if projection.total_revenue < 0:
            errors.append("Total revenue cannot be negative")

        # Preferred and probability totals are undefined while a scenario is unreadable
        if "scenarios" not in unreadable:
            errors.extend(self._check_scenarios(projection.scenarios))

        return ValidationResult(is_valid=not errors, errors=tuple(errors))

    def _check_scenarios(self, scenarios: Sequence[RevenueScenario]) -> List[str]:
        """Check scenario count, the preferred flag and the probability total."""
        if not scenarios:
            return ["At least one scenario is required"]

        errors: List[str] = []
        preferred_count = sum(1 for s in scenarios if s.is_preferred)
        if preferred_count == 0:
            errors.append("One scenario must be marked as preferred")
        elif preferred_count > 1:
            errors.append(
                f"Only one scenario can be marked as preferred (current: {preferred_count})"
            )

        total_probability = sum(s.probability_percentage for s in scenarios)
        if abs(total_probability - 100) > PROBABILITY_TOLERANCE:
            errors.append(
                f"Scenario probabilities should sum to 100% (current: {total_probability}%)"
            )
        return errors

    def expected_revenue(self, scenarios: Sequence[RevenueScenario]) -> float:
        """Probability-weighted projected revenue across scenarios."""
        return sum(s.projected_revenue * s.probability_percentage / 100 for s in scenarios)

    def calculate_break_even_point(
        self,
        fixed_costs: float,
        revenue_per_unit: float,
        variable_cost_per_unit: float,
    ) -> float:
        """
        Calculate break-even revenue.

        Args:
            fixed_costs: Fixed costs to recover
            revenue_per_unit: Selling price per unit
            variable_cost_per_unit: Variable cost per unit

        Returns:
            Revenue at which fixed costs are covered
        """
        contribution_margin = revenue_per_unit - variable_cost_per_unit
        if contribution_margin <= 0:
            raise BreakEvenError(
                f"Contribution margin must be positive to calculate break-even point "
                f"(current: {contribution_margin})"
            )
        return fixed_costs / contribution_margin * revenue_per_unit

    def calculate_break_even_date(
        self,
        fixed_costs: float,
        monthly_revenue: Sequence[float],
        monthly_costs: Sequence[float],
        start_date: DateLike,
    ) -> Tuple[str, int]:
        """
        Estimate when cumulative monthly profit covers fixed costs.

        Args:
            fixed_costs: Up-front fixed costs
            monthly_revenue: Revenue per month
            monthly_costs: Costs per month, aligned with monthly_revenue
            start_date: First month of the schedule

        Returns:
            Tuple of (ISO break-even date, months to break-even). When the schedule
            never breaks even the date is one year after start and months is 24.
        """
        cumulative_profit = -fixed_costs
        months_to_break_even = 0

        for month_idx, (revenue, costs) in enumerate(zip(monthly_revenue, monthly_costs)):
            cumulative_profit += revenue - costs
            if cumulative_profit >= 0:
                months_to_break_even = month_idx + 1
                break

        if months_to_break_even > 0:
            break_even_date = add_months(start_date, months_to_break_even - 1)
        else:
            break_even_date = add_months(start_date, MONTHS_PER_YEAR)
            months_to_break_even = DEFAULT_MONTHS_TO_BREAK_EVEN

        return break_even_date.date().isoformat(), months_to_break_even


def create_revenue_calculator(cache: Optional[MemoizationCache] = None) -> RevenueProjectionCalculator:
    """
    Create a revenue projection calculator instance.

    Args:
        cache: Memoization cache (shared default if omitted)

    Returns:
        RevenueProjectionCalculator instance
    """
    return RevenueProjectionCalculator(cache)


def calculate_projected_revenue(
    base_revenue: float,
    growth_rate: float,
    period_type: Union[PeriodType, str],
    confidence_level: Union[ConfidenceLevel, str],
    method: Union[CalculationMethod, str],
    historical_data: Optional[Sequence[float]] = None,
) -> float:
    """Project revenue (convenience function)."""
    return create_revenue_calculator().calculate_projected_revenue(
        base_revenue, growth_rate, period_type, confidence_level, method, historical_data
    )


def generate_monthly_revenue(
    annual_revenue: float,
    seasonality_factors: Optional[Sequence[float]],
    start_date: Optional[DateLike] = None,
) -> List[float]:
    """Spread annual revenue over 12 months (convenience function)."""
    return create_revenue_calculator().generate_monthly_revenue(
        annual_revenue, seasonality_factors, start_date
    )


def validate_revenue_projection(
    projection: Union[RevenueProjection, Mapping[str, Any]]
) -> ValidationResult:
    """Validate a revenue projection (convenience function)."""
    return create_revenue_calculator().validate_revenue_projection(projection)


def summarize_scenarios(scenarios: Sequence[RevenueScenario]) -> Dict[str, Any]:
    """
    Generate summary statistics for a set of scenarios.

    Args:
        scenarios: Revenue scenarios of one projection

    Returns:
        Dictionary with expected, minimum and maximum projected revenue and the preferred scenario
    """
    if not scenarios:
        return {
            "expected_revenue": 0.0,
            "min_revenue": 0.0,
            "max_revenue": 0.0,
            "preferred_scenario": None,
        }

    preferred = next((s for s in scenarios if s.is_preferred), None)
    projected = [s.projected_revenue for s in scenarios]

    return {
        "expected_revenue": create_revenue_calculator().expected_revenue(scenarios),
        "min_revenue": min(projected),
        "max_revenue": max(projected),
        "preferred_scenario": preferred.id if preferred else None,
    }
