# reorder_suggestions/core/closed_periods.py
"""Supplier closed periods (holidays, vacations, factory maintenance).

Two kinds of closure handling are provided:

* Type A: the expected delivery date falls inside a closure, so the lead
  time is extended to the first day after reopening.
* Type B: stock is predicted to run out during, or too close to, an upcoming
  closure, so an order must be placed now.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

from reorder_suggestions.core.records import (
    ClosedPeriod, ClosureRisk, LeadTimeAdjustment, NormalizedClosedPeriod,
    OpenDateResult, SupplierProfile, DEFAULT_LEAD_TIME
)
from reorder_suggestions.utils.date_utils import (
    add_days, days_between, parse_day_month, safe_date
)

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_NAME = 'Closed Period'
MAX_REOPEN_ITERATIONS = 365

TRIGGER_TOO_LATE = 'too_late_to_order'
TRIGGER_DURING_CLOSURE = 'depletes_during_closure'


def normalize_day_month(dd_mm: Optional[str]) -> Optional[str]:
    """Convert DD-MM to a sortable MM-DD key.

    Args:
        dd_mm: Date in DD-MM format (e.g. "01-07" for 1st July)

    Returns:
        Date in MM-DD format (e.g. "07-01") or None when invalid
    """
    parsed = parse_day_month(dd_mm)
    if parsed is None:
        return None

    day, month = parsed
    return f"{month:02d}-{day:02d}"

def denormalize_day_month(mm_dd: str) -> str:
    """Convert an MM-DD key back to DD-MM."""
    month, day = mm_dd.split('-')
    return f"{day}-{month}"


class ClosedPeriodCalendar:
    """Answers closure queries for suppliers.

    The calendar only knows the global presets; supplier specific data
    (selected preset ids and custom periods) comes in with each call.
    """

    def __init__(
        self,
        global_presets: Iterable[ClosedPeriod] = (),
        max_iterations: int = MAX_REOPEN_ITERATIONS
    ):
        """Initialize the calendar.

        Args:
            global_presets: Reusable closed periods suppliers can select
            max_iterations: Upper bound for the reopen search
        """
        self.global_presets = list(global_presets)
        self.max_iterations = max_iterations

    def _selected_periods(self, supplier: SupplierProfile) -> List[ClosedPeriod]:
        presets_by_id = {preset.period_id: preset for preset in self.global_presets}
        periods = []

        for preset_id in supplier.preset_ids:
            preset = presets_by_id.get(preset_id)
            if preset is not None:
                periods.append(preset)

        for custom in supplier.custom_periods:
            if custom.start_date and custom.end_date:
                periods.append(custom)

        return periods

    def get_periods(
        self,
        supplier: SupplierProfile,
        today: Optional[date] = None
    ) -> List[NormalizedClosedPeriod]:
        """Get all closed periods for a supplier as absolute date ranges.

        Every valid period is emitted twice: once anchored in the current
        year and once in the next year, so that upcoming closures are
        visible across the year boundary.

        Args:
            supplier: Supplier profile
            today: Reference date (defaults to today)

        Returns:
            List of normalized periods
        """
        today = today or date.today()
        normalized = []

        for period in self._selected_periods(supplier):
            start_key = normalize_day_month(period.start_date)
            end_key = normalize_day_month(period.end_date)

            if not start_key or not end_key:
                logger.debug(
                    f"Dropping closed period {period.period_id!r} with invalid dates "
                    f"{period.start_date!r} - {period.end_date!r}"
                )
                continue

            crosses_year = start_key > end_key
            start_month, start_day = (int(part) for part in start_key.split('-'))
            end_month, end_day = (int(part) for part in end_key.split('-'))

            for year in (today.year, today.year + 1):
                end_year = year + 1 if crosses_year else year
                normalized.append(NormalizedClosedPeriod(
                    period_id=period.period_id,
                    name=period.name or DEFAULT_PERIOD_NAME,
                    start_date=period.start_date,
                    end_date=period.end_date,
                    closure_start=safe_date(year, start_month, start_day),
                    closure_end=safe_date(end_year, end_month, end_day),
                    crosses_year=crosses_year,
                ))

        return normalized

    @staticmethod
    def _find_period(
        periods: Sequence[NormalizedClosedPeriod],
        day: date
    ) -> Optional[NormalizedClosedPeriod]:
        for period in periods:
            if period.contains(day):
                return period
        return None

    def is_closed(
        self,
        supplier: SupplierProfile,
        day: date,
        today: Optional[date] = None
    ) -> Optional[NormalizedClosedPeriod]:
        """Return the first closed period containing the day, if any."""
        return self._find_period(self.get_periods(supplier, today), day)

    def _search_open_date(
        self,
        periods: Sequence[NormalizedClosedPeriod],
        day: date,
        supplier_name: str = ''
    ) -> OpenDateResult:
        check_date = day
        iterations = 0

        while iterations < self.max_iterations:
            period = self._find_period(periods, check_date)
            if period is None:
                return OpenDateResult(open_date=check_date, iterations=iterations)

            check_date = add_days(period.closure_end, 1)
            iterations += 1

        logger.warning(
            f"Reopen search for supplier {supplier_name!r} exhausted after {iterations} "
            f"iterations starting {day.isoformat()}; closed periods look misconfigured"
        )
        return OpenDateResult(open_date=day, iterations=iterations, exhausted=True)

    def find_next_open_date(
        self,
        supplier: SupplierProfile,
        day: date,
        today: Optional[date] = None
    ) -> OpenDateResult:
        """Find the first open day on or after the given day.

        Args:
            supplier: Supplier profile
            day: Day to start from
            today: Reference date for period normalization

        Returns:
            OpenDateResult; when the search bound is hit the original day is
            returned with exhausted=True
        """
        return self._search_open_date(self.get_periods(supplier, today), day, supplier.name)

    def next_open_date(
        self,
        supplier: SupplierProfile,
        day: date,
        today: Optional[date] = None
    ) -> date:
        """Get the next open date (the day itself when it is not closed)."""
        return self.find_next_open_date(supplier, day, today).open_date

    def adjusted_lead_time(
        self,
        supplier: SupplierProfile,
        base_lead_time: Optional[int] = None,
        today: Optional[date] = None
    ) -> LeadTimeAdjustment:
        """TYPE A: extend the lead time when delivery would fall in a closure.

        Args:
            supplier: Supplier profile
            base_lead_time: Lead time in days (supplier lead time when None)
            today: Reference date (defaults to today)

        Returns:
            LeadTimeAdjustment whose lead_time is never below the base
        """
        today = today or date.today()

        if base_lead_time is None:
            base_lead_time = supplier.effective_lead_time
        try:
            base_lead_time = int(base_lead_time)
        except (TypeError, ValueError):
            base_lead_time = DEFAULT_LEAD_TIME
        if base_lead_time < 1:
            base_lead_time = DEFAULT_LEAD_TIME

        periods = self.get_periods(supplier, today)
        expected_delivery = add_days(today, base_lead_time)
        period = self._find_period(periods, expected_delivery)

        if period is None:
            return LeadTimeAdjustment(base_lead_time=base_lead_time, lead_time=base_lead_time)

        search = self._search_open_date(periods, expected_delivery, supplier.name)
        adjusted_days = days_between(today, search.open_date)

        reason = (
            f"Delivery would fall during {period.name} "
            f"({period.start_date} to {period.end_date})"
        )

        return LeadTimeAdjustment(
            base_lead_time=base_lead_time,
            lead_time=max(base_lead_time, adjusted_days),
            reason=reason,
            period=period,
            anomaly=search.exhausted,
        )

    def closure_depletion_risk(
        self,
        supplier: SupplierProfile,
        effective_stock: float,
        avg_daily_sales: float,
        lead_time: int,
        today: Optional[date] = None
    ) -> Optional[ClosureRisk]:
        """TYPE B: check whether stock runs out during an upcoming closure.

        For each upcoming closure the order deadline is closure_start minus
        the lead time. An order is needed now when the predicted stockout
        lies after that deadline but before the closure ends, or inside the
        closure itself. The extra days cover the closure plus the lead time
        after reopening.

        Args:
            supplier: Supplier profile
            effective_stock: Stock on hand plus inbound
            avg_daily_sales: Forecast daily sales
            lead_time: Lead time in days
            today: Reference date (defaults to today)

        Returns:
            ClosureRisk for the first triggering period, or None
        """
        if avg_daily_sales <= 0:
            return None

        today = today or date.today()

        upcoming = sorted(
            (p for p in self.get_periods(supplier, today) if p.closure_start > today),
            key=lambda p: p.closure_start
        )

        # Fractional days from today; compared unrounded against day offsets
        stockout_offset = effective_stock / avg_daily_sales

        for period in upcoming:
            start_offset = days_between(today, period.closure_start)
            end_offset = days_between(today, period.closure_end)
            deadline_offset = start_offset - lead_time

            trigger = None
            if deadline_offset < stockout_offset < end_offset:
                trigger = TRIGGER_TOO_LATE
            elif start_offset <= stockout_offset <= end_offset:
                trigger = TRIGGER_DURING_CLOSURE

            if trigger:
                return ClosureRisk(
                    needs_order=True,
                    period=period,
                    extra_days=end_offset + lead_time,
                    trigger=trigger,
                )

        return None

    def closed_days_between(
        self,
        supplier: SupplierProfile,
        start: date,
        end: date,
        today: Optional[date] = None
    ) -> int:
        """Count closed calendar days in the inclusive range [start, end]."""
        if end < start:
            return 0

        periods = self.get_periods(supplier, today)
        if not periods:
            return 0

        closed = 0
        for offset in range(days_between(start, end) + 1):
            if self._find_period(periods, add_days(start, offset)) is not None:
                closed += 1

        return closed
