"""
Unit tests for the safety stock calculator.
"""
import unittest
from unittest.mock import MagicMock
from datetime import date

from reorder_suggestions.core.records import ProductSnapshot
from reorder_suggestions.core.safety_stock import SafetyStockCalculator
from reorder_suggestions.utils.date_utils import add_days


class TestSafetyStockCalculator(unittest.TestCase):
    """Test cases for SafetyStockCalculator."""

    def setUp(self):
        """Set up test fixtures."""
        self.today = date(2025, 5, 1)
        self.ledger = MagicMock()
        self.ledger.first_sale_date.return_value = add_days(self.today, -4)
        self.ledger.daily_quantity_series.return_value = [0.0, 2.0, 0.0, 2.0, 0.0, 2.0, 0.0, 2.0]
        self.calculator = SafetyStockCalculator(self.ledger)
        self.product = ProductSnapshot.build(7, 'Bolt')

    def test_z_score(self):
        self.assertEqual(SafetyStockCalculator.z_score(90), 1.28)
        self.assertEqual(SafetyStockCalculator.z_score(95), 1.65)
        self.assertEqual(SafetyStockCalculator.z_score('99'), 2.33)

    def test_z_score_defaults_to_95(self):
        for level in (80, 97, None, 'abc'):
            self.assertEqual(SafetyStockCalculator.z_score(level), 1.65)

    def test_history_window(self):
        self.ledger.first_sale_date.return_value = None
        self.assertEqual(self.calculator.history_window(self.product, today=self.today), 90)

        self.ledger.first_sale_date.return_value = add_days(self.today, -30)
        self.assertEqual(self.calculator.history_window(self.product, today=self.today), 30)

        self.ledger.first_sale_date.return_value = add_days(self.today, -3)
        self.assertEqual(self.calculator.history_window(self.product, today=self.today), 7)

        self.ledger.first_sale_date.assert_called_with(7, add_days(self.today, -90))

    def test_demand_std_dev(self):
        std_dev = self.calculator.demand_std_dev(self.product, today=self.today)

        self.assertAlmostEqual(std_dev, 1.0)
        self.ledger.daily_quantity_series.assert_called_with(7, add_days(self.today, -7), self.today)

    def test_demand_std_dev_without_sales(self):
        self.ledger.daily_quantity_series.return_value = [0.0] * 90

        self.assertEqual(self.calculator.demand_std_dev(self.product, today=self.today), 0.0)

    def test_safety_stock(self):
        # ceil(1.65 * 1.0 * sqrt(16))
        self.assertEqual(self.calculator.safety_stock(self.product, 16, 95, self.today), 7)

    def test_safety_stock_minimum_lead_time(self):
        self.assertEqual(self.calculator.safety_stock(self.product, 0, 95, self.today), 2)

    def test_safety_stock_without_variability(self):
        self.ledger.daily_quantity_series.return_value = [3.0] * 7

        self.assertEqual(self.calculator.safety_stock(self.product, 30, 99, self.today), 0)

    def test_monotonic_in_lead_time(self):
        previous = 0
        for lead_time in range(1, 61):
            safety_stock = self.calculator.safety_stock(self.product, lead_time, 95, self.today)
            self.assertGreaterEqual(safety_stock, previous)
            previous = safety_stock

    def test_monotonic_in_service_level(self):
        levels = [self.calculator.safety_stock(self.product, 14, level, self.today) for level in (90, 95, 99)]

        self.assertEqual(levels, sorted(levels))


if __name__ == '__main__':
    unittest.main()
