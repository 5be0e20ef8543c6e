import math
import unittest

from bizplan.config import IRRSettings
from bizplan.memo_cache import MemoizationCache
from bizplan.projector import npv_calculator
from bizplan.projector.npv_calculator import ProfitabilityAnalyzer, period_rate


class TestNPV(unittest.TestCase):
    def setUp(self):
        self.analyzer = ProfitabilityAnalyzer(MemoizationCache())

    def test_npv_positive(self):
        npv = self.analyzer.calculate_npv(10000, [4000, 4000, 4000, 4000], 10)
        expected = -10000 + sum(4000 / (1.1 ** t) for t in range(1, 5))
        self.assertAlmostEqual(npv, expected, places=6)
        self.assertAlmostEqual(npv, 2679.46, places=1)

    def test_npv_negative(self):
        npv = self.analyzer.calculate_npv(10000, [2000, 2000, 2000, 2000], 10)
        self.assertLess(npv, 0)

    def test_monthly_rate_interpretation(self):
        annual = self.analyzer.calculate_npv(10000, [4000] * 4, 10, True)
        monthly = self.analyzer.calculate_npv(10000, [4000] * 4, 10, False)
        expected = -10000 + sum(4000 / ((1 + 10 / 1200) ** t) for t in range(1, 5))
        self.assertAlmostEqual(monthly, expected, places=6)
        self.assertGreater(monthly, annual)

    def test_period_rate(self):
        self.assertAlmostEqual(period_rate(12, True), 0.12)
        self.assertAlmostEqual(period_rate(12, False), 0.01)


class TestIRR(unittest.TestCase):
    def setUp(self):
        self.analyzer = ProfitabilityAnalyzer(MemoizationCache(), IRRSettings())

    def test_irr_root_in_range(self):
        cash_flows = [21000] * 5
        irr = self.analyzer.calculate_irr(100000, cash_flows)
        self.assertTrue(15 < irr < 25)
        npv_at_irr = self.analyzer.calculate_npv(100000, cash_flows, irr, annualized_rate=False)
        self.assertLess(abs(npv_at_irr), 1.0)

    def test_all_negative_returns_lower_boundary(self):
        self.assertEqual(self.analyzer.calculate_irr(1000, [-100, -200, -300]), 0)

    def test_insufficient_returns_lower_boundary(self):
        self.assertEqual(self.analyzer.calculate_irr(100000, [10000] * 5), 0)

    def test_always_positive_returns_upper_boundary(self):
        self.assertEqual(self.analyzer.calculate_irr(10000, [20000, 30000, 40000]), 100)

    def test_iteration_cap(self):
        analyzer = ProfitabilityAnalyzer(MemoizationCache(), IRRSettings(max_iterations=0))
        self.assertEqual(analyzer.calculate_irr(100000, [21000] * 5), 50)

    def test_exact_break_even_returns_zero(self):
        self.assertEqual(self.analyzer.calculate_irr(100, [50, 50]), 0)
        self.assertEqual(self.analyzer.calculate_irr(12000, [4000, 4000, 4000]), 0)

    def test_root_at_upper_bound(self):
        analyzer = ProfitabilityAnalyzer(MemoizationCache(), IRRSettings(upper_rate=12.0))
        # 1% per month is exactly 12% nominal annual
        self.assertEqual(analyzer.calculate_irr(100, [101]), 12.0)

    def test_never_raises_on_empty_schedule(self):
        self.assertEqual(self.analyzer.calculate_irr(1000, []), 0)


class TestPayback(unittest.TestCase):
    def setUp(self):
        self.analyzer = ProfitabilityAnalyzer(MemoizationCache())

    def test_fractional_payback(self):
        payback = self.analyzer.calculate_payback_period(100000, [30000, 35000, 40000, 45000])
        self.assertTrue(2 < payback < 3)
        self.assertAlmostEqual(payback, 2.875)

    def test_mid_period_payback(self):
        self.assertAlmostEqual(self.analyzer.calculate_payback_period(10000, [4000, 4000, 4000]), 2.5)

    def test_exact_payback(self):
        self.assertEqual(self.analyzer.calculate_payback_period(12000, [4000, 4000, 4000]), 3)

    def test_never_recovered(self):
        self.assertEqual(self.analyzer.calculate_payback_period(20000, [4000, 4000, 4000]), -1)

    def test_discounted_payback_is_longer(self):
        simple = self.analyzer.calculate_payback_period(10000, [4000] * 5)
        discounted = self.analyzer.discounted_payback_period(10000, [4000] * 5, 10)
        self.assertGreater(discounted, simple)
        self.assertEqual(self.analyzer.discounted_payback_period(10000, [2000] * 5, 10), -1)


class TestProfitability(unittest.TestCase):
    def setUp(self):
        self.cache = MemoizationCache()
        self.analyzer = ProfitabilityAnalyzer(self.cache)

    def test_metrics(self):
        result = self.analyzer.calculate_profitability(100000, [20000, 25000, 30000, 35000, 40000], 10)
        self.assertAlmostEqual(result.roi, 50)
        self.assertGreater(result.npv, 0)
        self.assertTrue(0 < result.irr <= 100)
        self.assertTrue(3 < result.payback_period < 4)
        self.assertEqual(result.discount_rate, 10)
        self.assertEqual(result.initial_investment, 100000)
        self.assertEqual(result.cash_flows, (20000.0, 25000.0, 30000.0, 35000.0, 40000.0))

    def test_negative_case(self):
        result = self.analyzer.calculate_profitability(100000, [10000] * 5, 10)
        self.assertAlmostEqual(result.roi, -50)
        self.assertLess(result.npv, 0)
        self.assertEqual(result.irr, 0)
        self.assertEqual(result.payback_period, -1)

    def test_memoized(self):
        first = self.analyzer.calculate_profitability(100000, [20000, 25000, 30000], 8)
        second = self.analyzer.calculate_profitability(100000, [20000, 25000, 30000], 8)
        self.assertIs(first, second)
        self.assertEqual(len(self.cache), 1)
        other = self.analyzer.calculate_profitability(100000, [20000, 25000, 30000], 8, False)
        self.assertIsNot(first, other)

    def test_invalid_inputs(self):
        with self.assertRaises(ValueError):
            self.analyzer.calculate_profitability(100000, [], 10)
        with self.assertRaises(ValueError):
            self.analyzer.calculate_profitability(0, [1000], 10)

    def test_to_dict(self):
        data = self.analyzer.calculate_profitability(1000, [600, 600], 10).to_dict()
        self.assertEqual(data["cashFlows"], [600.0, 600.0])
        self.assertIn("paybackPeriod", data)


class TestIndexAndMIRR(unittest.TestCase):
    def setUp(self):
        self.analyzer = ProfitabilityAnalyzer(MemoizationCache())

    def test_profitability_index(self):
        self.assertEqual(self.analyzer.calculate_profitability_index(10000, 5000), 1.5)
        self.assertTrue(math.isinf(self.analyzer.calculate_profitability_index(0, 5000)))

    def test_mirr(self):
        mirr = self.analyzer.calculate_mirr(1000, [500, 600], 10, 10)
        expected = ((500 * 1.1 ** 2 + 600 * 1.1) / (1000 / 1.1)) ** 0.5 - 1
        self.assertAlmostEqual(mirr, expected * 100, places=6)

    def test_mirr_with_interim_outflow(self):
        without = self.analyzer.calculate_mirr(1000, [500, 600, 700], 10, 12)
        with_outflow = self.analyzer.calculate_mirr(1000, [500, -200, 700], 10, 12)
        self.assertLess(with_outflow, without)

    def test_mirr_invalid(self):
        with self.assertRaises(ValueError):
            self.analyzer.calculate_mirr(1000, [], 10, 10)
        with self.assertRaises(ValueError):
            self.analyzer.calculate_mirr(0, [100, 200], 10, 10)


class TestSchedules(unittest.TestCase):
    def setUp(self):
        self.analyzer = ProfitabilityAnalyzer(MemoizationCache())

    def test_discounted_cash_flows(self):
        df = self.analyzer.discounted_cash_flows(10000, [4000] * 4, 10)
        self.assertEqual(len(df), 5)
        self.assertEqual(df["cash_flow"].iloc[0], -10000)
        self.assertAlmostEqual(df["discount_factor"].iloc[0], 1.0)
        npv = self.analyzer.calculate_npv(10000, [4000] * 4, 10)
        self.assertAlmostEqual(df["cumulative_discounted"].iloc[-1], npv, places=6)
        self.assertAlmostEqual(df["cumulative"].iloc[-1], 6000)

    def test_sensitivity_analysis(self):
        df = self.analyzer.sensitivity_analysis(10000, [4000] * 4, [0, 5, 10, 20])
        self.assertEqual(list(df.columns), ["discount_rate", "npv", "profitability_index"])
        self.assertAlmostEqual(df["npv"].iloc[0], 6000)
        self.assertTrue(df["npv"].is_monotonic_decreasing)


class TestConvenienceFunctions(unittest.TestCase):
    def test_module_functions(self):
        self.assertAlmostEqual(npv_calculator.calculate_payback_period(100000, [30000, 35000, 40000, 45000]), 2.875)
        self.assertEqual(npv_calculator.calculate_irr(1000, [-1, -2]), 0)
        first = npv_calculator.calculate_profitability(50000, [20000, 20000, 20000], 5)
        second = npv_calculator.calculate_profitability(50000, [20000, 20000, 20000], 5)
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
