"""
Unit tests for supplier closed periods.
"""
import unittest
from datetime import date

from reorder_suggestions.core.closed_periods import (
    ClosedPeriodCalendar, denormalize_day_month, normalize_day_month,
    TRIGGER_DURING_CLOSURE, TRIGGER_TOO_LATE
)
from reorder_suggestions.core.records import ClosedPeriod, SupplierProfile


def make_supplier(*periods, preset_ids=(), lead_time=14):
    return SupplierProfile(
        supplier_id=1,
        name='Nordic Supplies',
        lead_time=lead_time,
        preset_ids=tuple(preset_ids),
        custom_periods=tuple(periods),
    )


class TestDayMonthKeys(unittest.TestCase):
    """Test cases for DD-MM conversion."""

    def test_round_trip(self):
        """Every valid day-month survives normalize and denormalize."""
        for month in range(1, 13):
            for day in range(1, 29):
                original = f"{day:02d}-{month:02d}"
                self.assertEqual(denormalize_day_month(normalize_day_month(original)), original)

    def test_normalize_orders_by_month(self):
        self.assertEqual(normalize_day_month('24-12'), '12-24')
        self.assertLess(normalize_day_month('31-01'), normalize_day_month('01-02'))

    def test_invalid_values(self):
        for value in ('32-01', '00-05', '15-13', '15-00', '1-5', 'abc', '', None):
            self.assertIsNone(normalize_day_month(value), value)


class TestClosedPeriodCalendar(unittest.TestCase):
    """Test cases for the closed period calendar."""

    def setUp(self):
        """Set up test fixtures."""
        self.christmas = ClosedPeriod('custom-1', '20-12', '05-01', name='Christmas')
        self.summer = ClosedPeriod('custom-2', '01-07', '31-07', name='Summer')
        self.calendar = ClosedPeriodCalendar()

    def test_periods_emitted_for_two_years(self):
        periods = self.calendar.get_periods(make_supplier(self.christmas), today=date(2025, 12, 1))

        self.assertEqual(len(periods), 2)
        self.assertTrue(all(p.crosses_year for p in periods))
        self.assertEqual(periods[0].closure_start, date(2025, 12, 20))
        self.assertEqual(periods[0].closure_end, date(2026, 1, 5))
        self.assertEqual(periods[1].closure_start, date(2026, 12, 20))
        self.assertEqual(periods[1].closure_end, date(2027, 1, 5))

    def test_invalid_periods_dropped(self):
        supplier = make_supplier(
            ClosedPeriod('custom-3', '35-01', '10-02'),
            ClosedPeriod('custom-4', '01-02', None),
            self.summer
        )

        periods = self.calendar.get_periods(supplier, today=date(2025, 1, 1))

        self.assertEqual({p.period_id for p in periods}, {'custom-2'})

    def test_day_clamped_to_month_length(self):
        supplier = make_supplier(ClosedPeriod('custom-5', '25-02', '31-02'))

        periods = self.calendar.get_periods(supplier, today=date(2025, 1, 1))

        self.assertEqual(periods[0].closure_end, date(2025, 2, 28))

    def test_presets_before_custom_periods(self):
        calendar = ClosedPeriodCalendar([
            ClosedPeriod('easter', '14-04', '21-04', name='Easter', is_preset=True),
            ClosedPeriod('summer', '01-07', '31-07', name='Summer', is_preset=True),
        ])
        supplier = make_supplier(self.christmas, preset_ids=('summer', 'unknown', 'easter'))

        periods = calendar.get_periods(supplier, today=date(2025, 1, 1))

        self.assertEqual(
            [p.period_id for p in periods],
            ['summer', 'summer', 'easter', 'easter', 'custom-1', 'custom-1']
        )

    def test_is_closed_inclusive_bounds(self):
        supplier = make_supplier(self.christmas)
        today = date(2025, 12, 1)

        self.assertIsNotNone(self.calendar.is_closed(supplier, date(2025, 12, 20), today))
        self.assertIsNotNone(self.calendar.is_closed(supplier, date(2026, 1, 5), today))
        self.assertIsNone(self.calendar.is_closed(supplier, date(2025, 12, 19), today))
        self.assertIsNone(self.calendar.is_closed(supplier, date(2026, 1, 6), today))

    def test_next_open_date(self):
        supplier = make_supplier(self.christmas)
        today = date(2025, 12, 1)

        self.assertEqual(self.calendar.next_open_date(supplier, date(2025, 12, 24), today), date(2026, 1, 6))
        self.assertEqual(self.calendar.next_open_date(supplier, date(2025, 12, 10), today), date(2025, 12, 10))

    def test_next_open_date_across_adjacent_periods(self):
        supplier = make_supplier(
            ClosedPeriod('a', '20-12', '24-12'),
            ClosedPeriod('b', '25-12', '31-12')
        )

        result = self.calendar.find_next_open_date(supplier, date(2025, 12, 21), date(2025, 12, 1))

        self.assertEqual(result.open_date, date(2026, 1, 1))
        self.assertEqual(result.iterations, 2)
        self.assertFalse(result.exhausted)

    def test_lead_time_unchanged_when_delivery_open(self):
        """Delivery on 15 December is before the Christmas closure."""
        adjustment = self.calendar.adjusted_lead_time(
            make_supplier(self.christmas), 14, today=date(2025, 12, 1)
        )

        self.assertEqual(adjustment.lead_time, 14)
        self.assertFalse(adjustment.adjusted)
        self.assertEqual(adjustment.reason, '')

    def test_lead_time_extended_to_reopening(self):
        """Delivery on 24 December moves to 6 January."""
        adjustment = self.calendar.adjusted_lead_time(
            make_supplier(self.christmas), 14, today=date(2025, 12, 10)
        )

        self.assertEqual(adjustment.lead_time, 27)
        self.assertTrue(adjustment.adjusted)
        self.assertEqual(adjustment.reason, 'Delivery would fall during Christmas (20-12 to 05-01)')
        self.assertFalse(adjustment.anomaly)

    def test_adjusted_lead_time_never_below_base(self):
        supplier = make_supplier(self.christmas, self.summer)

        for today in (date(2025, 6, 20), date(2025, 12, 10), date(2025, 12, 31)):
            for base in range(1, 61):
                adjustment = self.calendar.adjusted_lead_time(supplier, base, today=today)
                self.assertGreaterEqual(adjustment.lead_time, base)

    def test_invalid_base_lead_time_defaults(self):
        supplier = make_supplier()

        for base in (0, -5, 'abc'):
            adjustment = self.calendar.adjusted_lead_time(supplier, base, today=date(2025, 3, 1))
            self.assertEqual(adjustment.lead_time, 14)

    def test_supplier_lead_time_used_when_base_missing(self):
        adjustment = self.calendar.adjusted_lead_time(make_supplier(lead_time=21), today=date(2025, 3, 1))

        self.assertEqual(adjustment.lead_time, 21)

    def test_exhausted_search_flags_anomaly(self):
        supplier = make_supplier(
            ClosedPeriod('a', '20-12', '24-12'),
            ClosedPeriod('b', '25-12', '31-12')
        )
        calendar = ClosedPeriodCalendar(max_iterations=1)

        with self.assertLogs('reorder_suggestions.core.closed_periods', level='WARNING'):
            adjustment = calendar.adjusted_lead_time(supplier, 20, today=date(2025, 12, 1))

        self.assertTrue(adjustment.anomaly)
        self.assertEqual(adjustment.lead_time, 20)

        with self.assertLogs('reorder_suggestions.core.closed_periods', level='WARNING'):
            result = calendar.find_next_open_date(supplier, date(2025, 12, 21), date(2025, 12, 1))
        self.assertTrue(result.exhausted)
        self.assertEqual(result.open_date, date(2025, 12, 21))

    def test_depletion_too_late_to_order(self):
        """Stock runs out after the order deadline but before the closure ends."""
        risk = self.calendar.closure_depletion_risk(
            make_supplier(self.summer), 20, 1.0, 14, today=date(2025, 6, 1)
        )

        self.assertIsNotNone(risk)
        self.assertTrue(risk.needs_order)
        self.assertEqual(risk.trigger, TRIGGER_TOO_LATE)
        self.assertEqual(risk.period.name, 'Summer')
        # Closure ends 60 days out, plus the lead time after reopening
        self.assertEqual(risk.extra_days, 74)

    def test_depletion_on_last_closure_day(self):
        risk = self.calendar.closure_depletion_risk(
            make_supplier(self.summer), 60, 1.0, 14, today=date(2025, 6, 1)
        )

        self.assertEqual(risk.trigger, TRIGGER_DURING_CLOSURE)

    def test_no_risk_when_stockout_before_deadline(self):
        risk = self.calendar.closure_depletion_risk(
            make_supplier(self.summer), 10, 1.0, 14, today=date(2025, 6, 1)
        )

        self.assertIsNone(risk)

    def test_no_risk_when_stock_outlasts_closure(self):
        risk = self.calendar.closure_depletion_risk(
            make_supplier(self.summer), 100, 1.0, 14, today=date(2025, 6, 1)
        )

        self.assertIsNone(risk)

    def test_no_risk_without_sales(self):
        risk = self.calendar.closure_depletion_risk(
            make_supplier(self.summer), 20, 0.0, 14, today=date(2025, 6, 1)
        )

        self.assertIsNone(risk)

    def test_closed_days_between(self):
        supplier = make_supplier(self.christmas)
        today = date(2025, 12, 1)

        self.assertEqual(
            self.calendar.closed_days_between(supplier, date(2025, 12, 15), date(2025, 12, 25), today), 6
        )
        self.assertEqual(
            self.calendar.closed_days_between(supplier, date(2025, 12, 1), date(2025, 12, 10), today), 0
        )
        self.assertEqual(
            self.calendar.closed_days_between(supplier, date(2025, 12, 25), date(2025, 12, 15), today), 0
        )


if __name__ == '__main__':
    unittest.main()
