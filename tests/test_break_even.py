import unittest

from bizplan.memo_cache import MemoizationCache
from bizplan.models import Product
from bizplan.projector import breakeven_model
from bizplan.projector.breakeven_model import BreakEvenAnalyzer, BreakEvenError, add_months


class TestBreakEven(unittest.TestCase):
    def setUp(self):
        self.cache = MemoizationCache()
        self.analyzer = BreakEvenAnalyzer(self.cache)

    def test_contribution_margin_method(self):
        result = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01")
        self.assertAlmostEqual(result.units_at_break_even, 1200)
        self.assertAlmostEqual(result.break_even_point, 120000)
        self.assertEqual(result.months_to_break_even, 6)
        self.assertEqual(result.break_even_date, "2024-06-01")
        self.assertEqual(result.contribution_margin, 50)
        self.assertEqual(len(result.assumptions), 4)

    def test_estimated_beyond_schedule(self):
        result = self.analyzer.calculate_break_even(60000, 100, 50, [100] * 6, "2024-01-01")
        self.assertEqual(result.months_to_break_even, 12)
        self.assertEqual(result.break_even_date, "2024-12-01")

    def test_estimate_rounds_up(self):
        result = self.analyzer.calculate_break_even(1000, 20, 10, [30, 30, 30], "2024-03-15")
        # 100 units at 30 per month
        self.assertEqual(result.months_to_break_even, 4)
        self.assertEqual(result.break_even_date, "2024-06-15")

    def test_negative_margin_raises(self):
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_break_even(60000, 50, 60, [100] * 12, "2024-01-01")

    def test_zero_margin_raises(self):
        with self.assertRaises(ValueError):
            self.analyzer.calculate_break_even(60000, 50, 50, [100] * 12, "2024-01-01")

    def test_no_sales_raises(self):
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_break_even(60000, 100, 50, [0, 0, 0], "2024-01-01")

    def test_empty_schedule(self):
        result = self.analyzer.calculate_break_even(60000, 100, 50, [], "2024-01-01")
        self.assertEqual(result.months_to_break_even, 0)
        self.assertEqual(result.break_even_date, "2023-12-01")

    def test_zero_fixed_costs(self):
        result = self.analyzer.calculate_break_even(0, 100, 50, [10, 10], "2024-01-01")
        self.assertEqual(result.units_at_break_even, 0)
        self.assertEqual(result.months_to_break_even, 1)
        self.assertEqual(result.break_even_date, "2024-01-01")

    def test_break_even_point_identity(self):
        for fixed, price, cost in [(0, 10, 0), (5000, 10, 2.5), (123456.78, 99.99, 12.34), (1, 1e6, 1)]:
            result = self.analyzer.calculate_break_even(fixed, price, cost, [1] * 3, "2024-01-01")
            self.assertAlmostEqual(result.units_at_break_even * price, result.break_even_point)

    def test_memoized(self):
        first = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01")
        second = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01")
        self.assertIs(first, second)

    def test_start_date_is_part_of_cache_key(self):
        first = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01")
        second = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2025-01-01")
        self.assertEqual(first.break_even_date, "2024-06-01")
        self.assertEqual(second.break_even_date, "2025-06-01")
        self.assertEqual(len(self.cache), 2)

    def test_accepts_datetime_strings(self):
        result = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01T00:00:00.000Z")
        self.assertEqual(result.break_even_date, "2024-06-01")

    def test_to_dict(self):
        data = self.analyzer.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01").to_dict()
        self.assertEqual(data["unitsAtBreakEven"], 1200)
        self.assertEqual(data["breakEvenDate"], "2024-06-01")


class TestAddMonths(unittest.TestCase):
    def test_clamps_to_month_end(self):
        self.assertEqual(add_months("2024-01-31", 1).date().isoformat(), "2024-02-29")
        self.assertEqual(add_months("2024-03-10", -1).date().isoformat(), "2024-02-10")


class TestMultiProductBreakEven(unittest.TestCase):
    def setUp(self):
        self.analyzer = BreakEvenAnalyzer(MemoizationCache())
        self.products = [
            Product("Standard", revenue_per_unit=100, variable_costs_per_unit=60, sales_mix=60),
            Product("Premium", revenue_per_unit=50, variable_costs_per_unit=20, sales_mix=40),
        ]

    def test_weighted_margin(self):
        result = self.analyzer.calculate_multi_product_break_even(36000, self.products)
        self.assertAlmostEqual(result.break_even_units, 1000)
        self.assertAlmostEqual(result.contribution_margin_ratio, 0.48)
        self.assertAlmostEqual(result.break_even_revenue, 75000)
        standard, premium = result.break_even_by_product
        self.assertEqual(standard.name, "Standard")
        self.assertAlmostEqual(standard.break_even_units, 600)
        self.assertAlmostEqual(standard.break_even_revenue, 60000)
        self.assertAlmostEqual(premium.break_even_units, 400)
        self.assertAlmostEqual(premium.break_even_revenue, 20000)

    def test_sales_mix_must_sum_to_100(self):
        products = [
            Product("A", 100, 60, 59),
            Product("B", 50, 20, 40),
        ]
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_multi_product_break_even(36000, products)

    def test_sales_mix_tolerance(self):
        products = [
            Product("A", 100, 60, 60.05),
            Product("B", 50, 20, 40),
        ]
        result = self.analyzer.calculate_multi_product_break_even(36000, products)
        self.assertGreater(result.break_even_units, 0)

    def test_accepts_records(self):
        products = [
            {"name": "A", "revenuePerUnit": 100, "variableCostsPerUnit": 60, "salesMix": 60},
            {"name": "B", "revenuePerUnit": 50, "variableCostsPerUnit": 20, "salesMix": 40},
        ]
        result = self.analyzer.calculate_multi_product_break_even(36000, products)
        self.assertAlmostEqual(result.break_even_units, 1000)
        self.assertEqual(result.to_dict()["breakEvenByProduct"][0]["name"], "A")

    def test_non_positive_weighted_margin_raises(self):
        products = [Product("A", 10, 15, 100)]
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_multi_product_break_even(1000, products)

    def test_empty_products_raises(self):
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_multi_product_break_even(1000, [])


class TestSubscriptionBreakEven(unittest.TestCase):
    def setUp(self):
        self.analyzer = BreakEvenAnalyzer(MemoizationCache())

    def test_subscription_metrics(self):
        result = self.analyzer.calculate_subscription_break_even(10000, 50, 10, 200, 5)
        self.assertAlmostEqual(result.ltv, 800)
        self.assertEqual(result.cac, 200)
        self.assertAlmostEqual(result.ltv_cac_ratio, 4)
        self.assertAlmostEqual(result.break_even_subscribers, 250)
        self.assertAlmostEqual(result.break_even_revenue, 12500)
        self.assertEqual(result.break_even_months, 5)

    def test_zero_fixed_costs(self):
        result = self.analyzer.calculate_subscription_break_even(0, 50, 10, 200, 5)
        self.assertEqual(result.break_even_subscribers, 0)
        self.assertEqual(result.break_even_months, 0)

    def test_invalid_inputs(self):
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_subscription_break_even(10000, 10, 10, 200, 5)
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_subscription_break_even(10000, 50, 10, 200, 0)
        with self.assertRaises(BreakEvenError):
            self.analyzer.calculate_subscription_break_even(10000, 50, 10, 0, 5)


class TestConvenienceFunctions(unittest.TestCase):
    def test_module_functions(self):
        result = breakeven_model.calculate_break_even(60000, 100, 50, [200] * 12, "2024-01-01")
        self.assertAlmostEqual(result.break_even_point, 120000)
        with self.assertRaises(BreakEvenError):
            breakeven_model.calculate_break_even(60000, 50, 60, [200] * 12, "2024-01-01")
        subscription = breakeven_model.calculate_subscription_break_even(10000, 50, 10, 200, 5)
        self.assertEqual(subscription.break_even_months, 5)


if __name__ == "__main__":
    unittest.main()
