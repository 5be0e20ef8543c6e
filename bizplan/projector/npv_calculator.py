"""
Investment profitability calculator.

This module calculates ROI, Net Present Value, Internal Rate of Return,
payback period, profitability index and MIRR for an initial investment
followed by a schedule of per-period net cash flows.

Timing convention: the investment is paid at t=0 and cash flow i (0-based)
arrives at the end of period i+1. Rates are percentages (10 means 10%).
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import numpy_financial as npf
import pandas as pd

from ..config import IRRSettings, settings
from ..memo_cache import MemoizationCache, default_cache, make_key
from ..models import ProfitabilityResult

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


def period_rate(discount_rate: float, annualized_rate: bool = True) -> float:
    """
    Convert a percentage rate to a per-period fraction.

    Args:
        discount_rate: Rate in percent
        annualized_rate: If True the rate applies per period as-is, otherwise
            it is an annual rate spread over monthly periods

    Returns:
        Per-period rate as a decimal (e.g., 0.10)
    """
    if annualized_rate:
        return discount_rate / 100
    return discount_rate / (100 * MONTHS_PER_YEAR)


class ProfitabilityAnalyzer:
    """Calculator for investment profitability metrics."""

    def __init__(
        self,
        cache: Optional[MemoizationCache] = None,
        irr_settings: Optional[IRRSettings] = None,
    ) -> None:
        """
        Initialize profitability analyzer.

        Args:
            cache: Memoization cache for profitability results (shared default if omitted)
            irr_settings: IRR search bounds, iteration cap and tolerance (from settings if omitted)
        """
        self.cache = cache if cache is not None else default_cache
        self.irr_settings = irr_settings if irr_settings is not None else settings.irr

    def calculate_profitability(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        discount_rate: float,
        annualized_rate: bool = True,
    ) -> ProfitabilityResult:
        """
        Calculate ROI, NPV, IRR and payback period.

        Args:
            initial_investment: Up-front investment (positive number)
            cash_flows: Net cash flow per period, in order
            discount_rate: Discount rate in percent
            annualized_rate: Rate interpretation passed to calculate_npv

        Returns:
            ProfitabilityResult
        """
        if len(cash_flows) == 0:
            raise ValueError("At least one cash flow is required")
        if initial_investment <= 0:
            raise ValueError(f"Initial investment must be positive (current: {initial_investment})")

        cache_key = make_key(
            "profitability", initial_investment, cash_flows, discount_rate, annualized_rate
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        total_cash_flow = float(np.sum(cash_flows))
        roi = (total_cash_flow - initial_investment) / initial_investment * 100

        result = ProfitabilityResult(
            roi=roi,
            npv=self.calculate_npv(initial_investment, cash_flows, discount_rate, annualized_rate),
            irr=self.calculate_irr(initial_investment, cash_flows),
            payback_period=self.calculate_payback_period(initial_investment, cash_flows),
            discount_rate=discount_rate,
            initial_investment=initial_investment,
            cash_flows=tuple(float(cf) for cf in cash_flows),
        )

        self.cache.set(cache_key, result)
        return result

    def calculate_npv(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        discount_rate: float,
        annualized_rate: bool = True,
    ) -> float:
        """
        Calculate NPV of an investment.

        Args:
            initial_investment: Up-front investment (not discounted)
            cash_flows: Net cash flow per period; the first is discounted once
            discount_rate: Discount rate in percent
            annualized_rate: If False, discount_rate is annual and applied monthly (rate/1200)

        Returns:
            Net present value
        """
        rate = period_rate(discount_rate, annualized_rate)
        # npf.npv discounts values[t] by (1+r)^t, so the investment sits at t=0
        values = [-initial_investment] + [float(cf) for cf in cash_flows]
        return float(npf.npv(rate, values))

    def calculate_irr(self, initial_investment: float, cash_flows: Sequence[float]) -> float:
        """
        Calculate Internal Rate of Return by bisection.

        NPV is evaluated with monthly discounting (annualized_rate=False), so the
        result is a nominal annual percentage. Never raises: when NPV does not
        change sign over the search domain the boundary on the positive side is
        returned (upper bound if NPV stays positive, lower bound otherwise).

        Args:
            initial_investment: Up-front investment
            cash_flows: Net cash flow per period

        Returns:
            IRR in percent
        """
        cfg = self.irr_settings
        lower_rate = cfg.lower_rate
        upper_rate = cfg.upper_rate

        def npv_at_rate(rate: float) -> float:
            return self.calculate_npv(initial_investment, cash_flows, rate, annualized_rate=False)

        lower_npv = npv_at_rate(lower_rate)
        upper_npv = npv_at_rate(upper_rate)

        # A bound that already zeroes NPV is the root
        if abs(lower_npv) < cfg.tolerance:
            return lower_rate
        if abs(upper_npv) < cfg.tolerance:
            return upper_rate

        if lower_npv * upper_npv > 0:
            boundary = upper_rate if lower_npv > 0 else lower_rate
            logger.warning(
                "No IRR between %s%% and %s%% (NPV %.2f / %.2f), returning %s%%",
                lower_rate,
                upper_rate,
                lower_npv,
                upper_npv,
                boundary,
            )
            return boundary

        for _ in range(cfg.max_iterations):
            mid_rate = (lower_rate + upper_rate) / 2
            mid_npv = npv_at_rate(mid_rate)

            if abs(mid_npv) < cfg.tolerance:
                return mid_rate

            if mid_npv * lower_npv < 0:
                upper_rate = mid_rate
            else:
                lower_rate = mid_rate
                lower_npv = mid_npv

        return (lower_rate + upper_rate) / 2

    def calculate_payback_period(
        self, initial_investment: float, cash_flows: Sequence[float]
    ) -> float:
        """
        Calculate payback period (periods to recover initial investment).

        Args:
            initial_investment: Investment to recover
            cash_flows: Net cash flow per period

        Returns:
            Payback period in periods, interpolated within the recovery period,
            or -1 if the investment is never recovered
        """
        remaining = initial_investment
        periods_passed = 0

        for cash_flow in cash_flows:
            remaining -= cash_flow
            periods_passed += 1

            if remaining <= 0:
                if remaining == 0:
                    return float(periods_passed)

                # How much of this period's cash flow was needed?
                previous_remaining = remaining + cash_flow
                fraction = previous_remaining / cash_flow if cash_flow else 0.0
                return (periods_passed - 1) + fraction

        return -1.0

    def calculate_profitability_index(self, initial_investment: float, npv: float) -> float:
        """
        Calculate Profitability Index (PI = (NPV + investment) / investment).

        Args:
            initial_investment: Initial investment amount
            npv: Net present value of the investment

        Returns:
            Profitability Index
        """
        if initial_investment == 0:
            return float("inf")

        return (npv + initial_investment) / initial_investment

    def calculate_mirr(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        financing_rate: float,
        reinvestment_rate: float,
    ) -> float:
        """
        Calculate Modified Internal Rate of Return.

        Outflows (the investment followed by every negative cash flow) are
        discounted at the financing rate; inflows are compounded to the end of
        the schedule at the reinvestment rate.

        Args:
            initial_investment: Up-front investment
            cash_flows: Net cash flow per period
            financing_rate: Cost of financing outflows, in percent
            reinvestment_rate: Return earned on reinvested inflows, in percent

        Returns:
            MIRR in percent
        """
        n = len(cash_flows)
        if n == 0:
            raise ValueError("At least one cash flow is required")

        negative_flows = [-initial_investment] + [cf if cf < 0 else 0.0 for cf in cash_flows]
        positive_flows = [cf if cf > 0 else 0.0 for cf in cash_flows]

        present_value_negative = -self.calculate_npv(0, negative_flows, financing_rate)
        if present_value_negative <= 0:
            raise ValueError("MIRR requires at least one outflow")

        growth = 1 + reinvestment_rate / 100
        future_value_positive = sum(
            cf * growth ** (n - idx) for idx, cf in enumerate(positive_flows)
        )

        return ((future_value_positive / present_value_negative) ** (1 / n) - 1) * 100

    def discounted_cash_flows(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        discount_rate: float,
        annualized_rate: bool = True,
    ) -> pd.DataFrame:
        """
        Build the per-period discounted cash flow schedule.

        Args:
            initial_investment: Up-front investment (period 0)
            cash_flows: Net cash flow per period
            discount_rate: Discount rate in percent
            annualized_rate: Rate interpretation, as in calculate_npv

        Returns:
            DataFrame with period, cash_flow, discount_factor, discounted_cash_flow,
            cumulative and cumulative_discounted columns (period 0 is the investment)
        """
        rate = period_rate(discount_rate, annualized_rate)

        df = pd.DataFrame(
            {
                "period": range(len(cash_flows) + 1),
                "cash_flow": [-initial_investment] + [float(cf) for cf in cash_flows],
            }
        )
        df["discount_factor"] = 1 / ((1 + rate) ** df["period"])
        df["discounted_cash_flow"] = df["cash_flow"] * df["discount_factor"]
        df["cumulative"] = df["cash_flow"].cumsum()
        df["cumulative_discounted"] = df["discounted_cash_flow"].cumsum()

        return df

    def discounted_payback_period(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        discount_rate: float,
        annualized_rate: bool = True,
    ) -> float:
        """
        Calculate payback period on discounted cash flows.

        Returns:
            Discounted payback period in periods, or -1 if never recovered
        """
        df = self.discounted_cash_flows(initial_investment, cash_flows, discount_rate, annualized_rate)
        discounted: List[float] = df["discounted_cash_flow"].iloc[1:].tolist()
        return self.calculate_payback_period(initial_investment, discounted)

    def sensitivity_analysis(
        self,
        initial_investment: float,
        cash_flows: Sequence[float],
        discount_rates: Sequence[float],
        annualized_rate: bool = True,
    ) -> pd.DataFrame:
        """
        Perform sensitivity analysis across multiple discount rates.

        Args:
            initial_investment: Up-front investment
            cash_flows: Net cash flow per period
            discount_rates: Discount rates to test, in percent
            annualized_rate: Rate interpretation, as in calculate_npv

        Returns:
            DataFrame with discount_rate, npv and profitability_index per rate
        """
        results = []

        for rate in discount_rates:
            npv = self.calculate_npv(initial_investment, cash_flows, rate, annualized_rate)
            results.append(
                {
                    "discount_rate": rate,
                    "npv": npv,
                    "profitability_index": self.calculate_profitability_index(initial_investment, npv),
                }
            )

        return pd.DataFrame(results)


def create_profitability_analyzer(
    cache: Optional[MemoizationCache] = None,
    irr_settings: Optional[IRRSettings] = None,
) -> ProfitabilityAnalyzer:
    """
    Create a profitability analyzer instance.

    Args:
        cache: Memoization cache (shared default if omitted)
        irr_settings: IRR search settings (from settings if omitted)

    Returns:
        ProfitabilityAnalyzer instance
    """
    return ProfitabilityAnalyzer(cache, irr_settings)


def calculate_profitability(
    initial_investment: float,
    cash_flows: Sequence[float],
    discount_rate: float,
    annualized_rate: bool = True,
) -> ProfitabilityResult:
    """Calculate profitability metrics (convenience function)."""
    return create_profitability_analyzer().calculate_profitability(
        initial_investment, cash_flows, discount_rate, annualized_rate
    )


def calculate_npv(
    initial_investment: float,
    cash_flows: Sequence[float],
    discount_rate: float,
    annualized_rate: bool = True,
) -> float:
    """Calculate NPV (convenience function)."""
    return create_profitability_analyzer().calculate_npv(
        initial_investment, cash_flows, discount_rate, annualized_rate
    )


def calculate_irr(initial_investment: float, cash_flows: Sequence[float]) -> float:
    """Calculate IRR in percent (convenience function)."""
    return create_profitability_analyzer().calculate_irr(initial_investment, cash_flows)


def calculate_payback_period(initial_investment: float, cash_flows: Sequence[float]) -> float:
    """Calculate payback period (convenience function)."""
    return create_profitability_analyzer().calculate_payback_period(initial_investment, cash_flows)


def calculate_profitability_index(initial_investment: float, npv: float) -> float:
    """Calculate profitability index (convenience function)."""
    return create_profitability_analyzer().calculate_profitability_index(initial_investment, npv)


def calculate_mirr(
    initial_investment: float,
    cash_flows: Sequence[float],
    financing_rate: float,
    reinvestment_rate: float,
) -> float:
    """Calculate MIRR in percent (convenience function)."""
    return create_profitability_analyzer().calculate_mirr(
        initial_investment, cash_flows, financing_rate, reinvestment_rate
    )
