"""
Unit tests for the demand forecast engine.
"""
import unittest
from unittest.mock import MagicMock
from datetime import date

from reorder_suggestions.core.demand_forecast import (
    DemandForecastEngine, seasonal_factor, trend_adjustment
)
from reorder_suggestions.core.records import ProductSnapshot
from reorder_suggestions.utils.date_utils import add_days

FIRST_HALF_PATTERN = {month: 10.0 for month in range(1, 7)}


def monthly_sales(years, pattern):
    return {
        (year, month): quantity
        for year in years
        for month, quantity in pattern.items()
    }


class TestTrendAdjustment(unittest.TestCase):
    """Test cases for the trend blend."""

    def test_short_history_unchanged(self):
        self.assertEqual(trend_adjustment(2.0, 10.0, 20), 2.0)

    def test_blend(self):
        self.assertAlmostEqual(trend_adjustment(2.0, 4.0, 100), 3.4)

    def test_clamped_to_double(self):
        self.assertAlmostEqual(trend_adjustment(1.0, 10.0, 365), 2.0)

    def test_clamped_to_half(self):
        self.assertAlmostEqual(trend_adjustment(2.0, 0.1, 365), 1.0)

    def test_no_recent_sales(self):
        self.assertEqual(trend_adjustment(2.0, 0.0, 365), 2.0)
        self.assertEqual(trend_adjustment(0.0, 3.0, 365), 0.0)


class TestSeasonalFactor(unittest.TestCase):
    """Test cases for the coverage window seasonal factor."""

    def test_even_distribution(self):
        factor = seasonal_factor([1.0 / 12.0] * 12, 14, 92, date(2025, 3, 10))

        self.assertAlmostEqual(factor, 1.0)

    def test_clamped_high(self):
        shares = [0.0] * 11 + [1.0]

        # Window covers 1-31 December only
        factor = seasonal_factor(shares, 11, 31, date(2025, 11, 20))

        self.assertEqual(factor, 4.0)

    def test_clamped_low(self):
        shares = [1.0 / 6.0] * 6 + [0.0] * 6

        factor = seasonal_factor(shares, 14, 91, date(2025, 7, 1))

        self.assertEqual(factor, 0.5)

    def test_weighted_by_days(self):
        shares = [0.0] * 12
        shares[0] = 0.2  # January
        shares[1] = 0.1  # February

        # 10 days in January, 10 in February
        factor = seasonal_factor(shares, 0, 20, date(2025, 1, 22))

        self.assertAlmostEqual(factor, 0.15 * 12)


class TestDemandForecastEngine(unittest.TestCase):
    """Test cases for DemandForecastEngine."""

    def setUp(self):
        """Set up test fixtures."""
        self.today = date(2025, 7, 1)
        self.ledger = MagicMock()
        self.ledger.total_quantity_sold.return_value = 0.0
        self.ledger.monthly_quantity_sold.return_value = {}
        self.engine = DemandForecastEngine(self.ledger)
        self.product = ProductSnapshot.build(1, 'Widget', created_on=date(2020, 1, 1))

    def sold_since(self, year_total, recent_total):
        year_start = add_days(self.today, -365)

        def total_quantity_sold(product_id, since_date):
            return year_total if since_date == year_start else recent_total

        return total_quantity_sold

    def test_days_of_history(self):
        young = ProductSnapshot.build(2, 'New', created_on=add_days(self.today, -100))
        unknown = ProductSnapshot.build(3, 'Unknown')
        brand_new = ProductSnapshot.build(4, 'Today', created_on=self.today)

        self.assertEqual(self.engine.days_of_history(young, self.today), 100)
        self.assertEqual(self.engine.days_of_history(self.product, self.today), 365)
        self.assertEqual(self.engine.days_of_history(unknown, self.today), 365)
        self.assertEqual(self.engine.days_of_history(brand_new, self.today), 1)

    def test_base_average(self):
        self.ledger.total_quantity_sold.return_value = 730.0

        self.assertAlmostEqual(self.engine.base_average(self.product, today=self.today), 2.0)
        self.ledger.total_quantity_sold.assert_called_with(1, add_days(self.today, -365))

    def test_base_average_young_product(self):
        young = ProductSnapshot.build(2, 'New', created_on=add_days(self.today, -50))
        self.ledger.total_quantity_sold.return_value = 100.0

        self.assertAlmostEqual(self.engine.base_average(young, today=self.today), 2.0)

    def test_recent_average(self):
        self.ledger.total_quantity_sold.return_value = 60.0

        self.assertAlmostEqual(self.engine.recent_average(self.product, self.today), 2.0)
        self.ledger.total_quantity_sold.assert_called_with(1, add_days(self.today, -30))

    def test_monthly_distribution_ignores_current_year(self):
        self.ledger.monthly_quantity_sold.return_value = {
            (2024, 3): 5.0,
            (2024, 4): 7.0,
            (2025, 1): 9.0,
        }

        distribution = self.engine.monthly_distribution(self.product, self.today)

        self.assertEqual(list(distribution), [2024])
        self.assertEqual(distribution[2024][2], 5.0)
        self.assertEqual(distribution[2024][3], 7.0)

    def test_seasonal_validation_repeating_pattern(self):
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2023, 2024, 2025), FIRST_HALF_PATTERN)

        validation = self.engine.seasonal_validation(self.product, self.today)

        self.assertTrue(validation.is_valid)
        self.assertAlmostEqual(validation.correlation, 1.0)
        self.assertEqual(validation.years_compared, 2)

    def test_seasonal_validation_trend_rejected(self):
        sales = {(2023, month): float(month) for month in range(1, 13)}
        sales.update({(2024, month): float(13 - month) for month in range(1, 13)})
        self.ledger.monthly_quantity_sold.return_value = sales

        validation = self.engine.seasonal_validation(self.product, self.today)

        self.assertFalse(validation.is_valid)
        self.assertLess(validation.correlation, 0.6)

    def test_seasonal_validation_needs_two_years(self):
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2024,), FIRST_HALF_PATTERN)

        validation = self.engine.seasonal_validation(self.product, self.today)

        self.assertFalse(validation.is_valid)
        self.assertEqual(validation.years_compared, 1)

    def test_seasonal_validation_sparse_year(self):
        sparse = {month: 10.0 for month in range(1, 6)}
        sales = monthly_sales((2023,), FIRST_HALF_PATTERN)
        sales.update(monthly_sales((2024,), sparse))
        self.ledger.monthly_quantity_sold.return_value = sales

        self.assertFalse(self.engine.seasonal_validation(self.product, self.today).is_valid)

    def test_monthly_shares(self):
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2023, 2024), FIRST_HALF_PATTERN)

        shares = self.engine.monthly_shares(self.product, self.today)

        self.assertAlmostEqual(sum(shares), 1.0)
        self.assertAlmostEqual(shares[0], 1.0 / 6.0)
        self.assertEqual(shares[11], 0.0)

    def test_forecast_combined_cap(self):
        """Trend and seasonal floors stack to 0.25 x base; the final value is held at 0.4 x base."""
        self.ledger.total_quantity_sold.side_effect = self.sold_since(365.0, 3.0)
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2023, 2024), FIRST_HALF_PATTERN)

        forecast = self.engine.forecast(self.product, 14, 91, use_seasonal=True, today=self.today)

        self.assertAlmostEqual(forecast.base_average, 1.0)
        self.assertAlmostEqual(forecast.recent_average, 0.1)
        self.assertAlmostEqual(forecast.trended_average, 0.5)
        self.assertEqual(forecast.seasonal_factor, 0.5)
        self.assertAlmostEqual(forecast.average_daily_sales, 0.4)
        self.assertEqual([step.stage for step in forecast.trace], ['base', 'trend', 'seasonal', 'cap'])

    def test_forecast_without_seasonal_analysis(self):
        self.ledger.total_quantity_sold.side_effect = self.sold_since(365.0, 3.0)
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2023, 2024), FIRST_HALF_PATTERN)

        forecast = self.engine.forecast(self.product, 14, 91, use_seasonal=False, today=self.today)

        self.assertEqual(forecast.seasonal_factor, 1.0)
        self.assertIsNone(forecast.seasonal_validation)
        self.assertAlmostEqual(forecast.average_daily_sales, 0.5)

    def test_forecast_young_product_skips_seasonal(self):
        young = ProductSnapshot.build(2, 'New', created_on=add_days(self.today, -100))
        self.ledger.total_quantity_sold.return_value = 100.0

        forecast = self.engine.forecast(young, 14, 91, use_seasonal=True, today=self.today)

        self.ledger.monthly_quantity_sold.assert_not_called()
        self.assertNotIn('seasonal', [step.stage for step in forecast.trace])

    def test_forecast_without_sales(self):
        forecast = self.engine.forecast(self.product, 14, 91, today=self.today)

        self.assertEqual(forecast.average_daily_sales, 0.0)

    def test_seasonal_adjustment_skipped_when_invalid(self):
        self.ledger.monthly_quantity_sold.return_value = {}

        average, factor, validation = self.engine.seasonal_adjustment(self.product, 2.0, 14, 91, self.today)

        self.assertEqual(average, 2.0)
        self.assertEqual(factor, 1.0)
        self.assertFalse(validation.is_valid)

    def test_seasonal_adjustment_young_product(self):
        young = ProductSnapshot.build(2, 'New', created_on=add_days(self.today, -100))

        self.assertEqual(self.engine.seasonal_adjustment(young, 2.0, 14, 91, self.today), (2.0, 1.0, None))

    def test_forecast_uses_seasonal_adjustment(self):
        self.ledger.total_quantity_sold.side_effect = self.sold_since(730.0, 60.0)
        self.ledger.monthly_quantity_sold.return_value = monthly_sales((2023, 2024), FIRST_HALF_PATTERN)

        average, factor, validation = self.engine.seasonal_adjustment(self.product, 2.0, 14, 91, self.today)
        forecast = self.engine.forecast(self.product, 14, 91, use_seasonal=True, today=self.today)

        self.assertEqual(forecast.seasonal_factor, factor)
        self.assertEqual(forecast.seasonal_validation, validation)
        self.assertAlmostEqual(forecast.trace[2].values['average'], average)

    def test_sales_summary(self):
        self.ledger.total_quantity_sold.return_value = 400.0

        summary = self.engine.sales_summary(self.product, 4, self.today)

        self.assertEqual(summary, {'year': 400.0, 'period': 100})


if __name__ == '__main__':
    unittest.main()
