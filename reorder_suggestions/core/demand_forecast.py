# reorder_suggestions/core/demand_forecast.py
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from reorder_suggestions.core.interfaces import SalesLedger
from reorder_suggestions.core.records import (
    DemandForecast, ProductSnapshot, SeasonalValidation, TraceStep
)
from reorder_suggestions.utils.date_utils import add_days, days_between, days_per_month
from reorder_suggestions.utils.math_utils import (
    clamp, pearson_correlation, percentage_distribution
)

logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 365
RECENT_WINDOW_DAYS = 30
MIN_TREND_HISTORY_DAYS = 30

TREND_BASE_WEIGHT = 0.3
TREND_RECENT_WEIGHT = 0.7
TREND_MIN_FACTOR = 0.5
TREND_MAX_FACTOR = 2.0

SEASONAL_MIN_MONTHS = 6
SEASONAL_MIN_UNITS = 12
SEASONAL_MIN_YEARS = 2
SEASONAL_MIN_CORRELATION = 0.6
SEASONAL_MIN_FACTOR = 0.5
SEASONAL_MAX_FACTOR = 4.0

COMBINED_MIN_FACTOR = 0.4
COMBINED_MAX_FACTOR = 10.0


def trend_adjustment(base_average: float, recent_average: float, days_of_history: int) -> float:
    """Blend the long-run average with the last 30 days.

    Args:
        base_average: Average daily sales over the history window
        recent_average: Average daily sales over the last 30 days
        days_of_history: Days of sales history available

    Returns:
        Trend-adjusted average daily sales
    """
    if days_of_history < MIN_TREND_HISTORY_DAYS:
        return base_average

    if recent_average <= 0 or base_average <= 0:
        return base_average

    weighted = base_average * TREND_BASE_WEIGHT + recent_average * TREND_RECENT_WEIGHT

    return clamp(weighted, base_average * TREND_MIN_FACTOR, base_average * TREND_MAX_FACTOR)

def seasonal_factor(
    monthly_shares: Sequence[float],
    lead_time: int,
    days_of_stock_target: int,
    today: date
) -> float:
    """Seasonal factor for the window the next order has to cover.

    The coverage window starts when the order arrives (today + lead time)
    and lasts days_of_stock_target days. Each month's share of yearly sales
    is weighted by the number of window days falling in that month.

    Args:
        monthly_shares: Twelve fractions of yearly sales, January first
        lead_time: Lead time in days
        days_of_stock_target: Length of the coverage window in days
        today: Reference date

    Returns:
        Factor relative to an even 1/12 share, clamped to [0.5, 4.0]
    """
    window = days_per_month(add_days(today, lead_time), days_of_stock_target)
    total_days = sum(window.values())

    if total_days <= 0:
        return 1.0

    blended_share = sum(
        days * monthly_shares[month - 1] for month, days in window.items()
    ) / total_days

    return clamp(blended_share / (1.0 / 12.0), SEASONAL_MIN_FACTOR, SEASONAL_MAX_FACTOR)


class DemandForecastEngine:
    """Produces the average daily sales figure used for reorder decisions."""

    def __init__(self, sales_ledger: SalesLedger):
        """Initialize the forecast engine.

        Args:
            sales_ledger: Source of historical sales
        """
        self.sales_ledger = sales_ledger

    @staticmethod
    def product_age(product: ProductSnapshot, today: date) -> Optional[int]:
        if product.created_on is None:
            return None
        return days_between(product.created_on, today)

    def days_of_history(self, product: ProductSnapshot, today: Optional[date] = None) -> int:
        """Denominator for the base average: product age bounded to [1, 365]."""
        today = today or date.today()
        age = self.product_age(product, today)
        if age is None:
            return MAX_HISTORY_DAYS
        return min(MAX_HISTORY_DAYS, max(1, age))

    def base_average(
        self,
        product: ProductSnapshot,
        window_days: int = MAX_HISTORY_DAYS,
        today: Optional[date] = None
    ) -> float:
        """Units sold in the window divided by the product's days of history."""
        today = today or date.today()
        total = float(self.sales_ledger.total_quantity_sold(
            product.product_id, add_days(today, -window_days)
        ) or 0.0)

        return total / self.days_of_history(product, today)

    def recent_average(self, product: ProductSnapshot, today: Optional[date] = None) -> float:
        """Average daily sales over the last 30 days."""
        today = today or date.today()
        recent = float(self.sales_ledger.total_quantity_sold(
            product.product_id, add_days(today, -RECENT_WINDOW_DAYS)
        ) or 0.0)

        return recent / RECENT_WINDOW_DAYS

    def monthly_distribution(
        self,
        product: ProductSnapshot,
        today: Optional[date] = None
    ) -> Dict[int, List[float]]:
        """Units sold per month for every complete calendar year.

        Returns:
            Mapping of year to a twelve element list (January first)
        """
        today = today or date.today()
        distribution: Dict[int, List[float]] = {}

        monthly = self.sales_ledger.monthly_quantity_sold(product.product_id) or {}
        for (year, month), quantity in monthly.items():
            if year >= today.year or not 1 <= month <= 12:
                continue
            distribution.setdefault(year, [0.0] * 12)[month - 1] += float(quantity or 0.0)

        return distribution

    @staticmethod
    def qualifying_years(distribution: Dict[int, List[float]]) -> List[Tuple[int, List[float]]]:
        """Years with at least six months of sales and twelve units, oldest first."""
        qualified = []
        for year in sorted(distribution):
            months = distribution[year]
            months_with_sales = sum(1 for quantity in months if quantity > 0)
            if months_with_sales >= SEASONAL_MIN_MONTHS and sum(months) >= SEASONAL_MIN_UNITS:
                qualified.append((year, months))
        return qualified

    def seasonal_validation(
        self,
        product: ProductSnapshot,
        today: Optional[date] = None
    ) -> SeasonalValidation:
        """Check whether year-over-year sales show a repeating seasonal shape.

        Each qualifying year is turned into a percentage-of-year vector and
        consecutive years are compared with the Pearson correlation. Steady
        growth or decline correlates poorly, so only a repeating pattern
        with an average correlation of at least 0.6 is accepted.
        """
        qualified = self.qualifying_years(self.monthly_distribution(product, today))

        if len(qualified) < SEASONAL_MIN_YEARS:
            return SeasonalValidation(is_valid=False, correlation=0.0, years_compared=len(qualified))

        vectors = [percentage_distribution(months) for _, months in qualified]
        correlations = [
            pearson_correlation(vectors[i], vectors[i + 1])
            for i in range(len(vectors) - 1)
        ]
        average = sum(correlations) / len(correlations)

        return SeasonalValidation(
            is_valid=average >= SEASONAL_MIN_CORRELATION,
            correlation=average,
            years_compared=len(qualified),
        )

    def monthly_shares(self, product: ProductSnapshot, today: Optional[date] = None) -> List[float]:
        """Share of yearly sales per month pooled over qualifying years."""
        qualified = self.qualifying_years(self.monthly_distribution(product, today))

        pooled = [0.0] * 12
        for _, months in qualified:
            for index, quantity in enumerate(months):
                pooled[index] += quantity

        total = sum(pooled)
        if total <= 0:
            return [1.0 / 12.0] * 12

        return [quantity / total for quantity in pooled]

    def _seasonal_eligible(self, product: ProductSnapshot, today: date) -> bool:
        age = self.product_age(product, today)
        return age is None or age >= MAX_HISTORY_DAYS

    def seasonal_adjustment(
        self,
        product: ProductSnapshot,
        trended_average: float,
        lead_time: int,
        days_of_stock_target: int,
        today: Optional[date] = None
    ) -> Tuple[float, float, Optional[SeasonalValidation]]:
        """Apply the seasonal factor when a year of history and a validated pattern exist.

        Returns:
            Tuple of (adjusted average, factor, validation). The validation is
            None when the product is too young to be checked.
        """
        today = today or date.today()

        if not self._seasonal_eligible(product, today):
            return trended_average, 1.0, None

        validation = self.seasonal_validation(product, today)
        if not validation.is_valid:
            return trended_average, 1.0, validation

        factor = seasonal_factor(self.monthly_shares(product, today), lead_time, days_of_stock_target, today)
        return trended_average * factor, factor, validation

    def forecast(
        self,
        product: ProductSnapshot,
        lead_time: int,
        days_of_stock_target: int,
        use_seasonal: bool = True,
        today: Optional[date] = None
    ) -> DemandForecast:
        """Compute trend and seasonally adjusted average daily sales.

        Args:
            product: Product snapshot
            lead_time: Lead time in days (start of the coverage window)
            days_of_stock_target: Days one order should cover
            use_seasonal: Whether seasonal analysis is enabled
            today: Reference date (defaults to today)

        Returns:
            DemandForecast with a trace of every stage
        """
        today = today or date.today()
        trace = []

        history_days = self.days_of_history(product, today)
        base = self.base_average(product, today=today)
        trace.append(TraceStep('base', {'average': base, 'days_of_history': history_days}))

        recent = self.recent_average(product, today)
        trended = trend_adjustment(base, recent, history_days)
        trace.append(TraceStep('trend', {'recent_average': recent, 'average': trended}))

        factor = 1.0
        validation = None
        adjusted = trended
        if use_seasonal:
            adjusted, factor, validation = self.seasonal_adjustment(
                product, trended, lead_time, days_of_stock_target, today
            )
        if validation is not None:
            trace.append(TraceStep('seasonal', {
                'is_valid': validation.is_valid,
                'correlation': validation.correlation,
                'years_compared': validation.years_compared,
                'factor': factor,
                'average': adjusted,
            }))

        if base > 0:
            adjusted = clamp(adjusted, base * COMBINED_MIN_FACTOR, base * COMBINED_MAX_FACTOR)
        adjusted = max(0.0, adjusted)
        trace.append(TraceStep('cap', {'average': adjusted}))

        logger.debug(
            f"Forecast for product {product.product_id}: base={base:.4f} "
            f"trend={trended:.4f} seasonal_factor={factor:.3f} final={adjusted:.4f}"
        )

        return DemandForecast(
            base_average=base,
            recent_average=recent,
            trended_average=trended,
            seasonal_factor=factor,
            seasonal_validation=validation,
            average_daily_sales=adjusted,
            days_of_history=history_days,
            trace=tuple(trace),
        )

    def sales_summary(
        self,
        product: ProductSnapshot,
        orders_per_year: int,
        today: Optional[date] = None
    ) -> Dict[str, float]:
        """Units sold in the last year and the share one order period represents."""
        today = today or date.today()
        year_sales = float(self.sales_ledger.total_quantity_sold(
            product.product_id, add_days(today, -MAX_HISTORY_DAYS)
        ) or 0.0)
        orders_per_year = orders_per_year if orders_per_year and orders_per_year > 0 else 1

        return {
            'year': year_sales,
            'period': round(year_sales / orders_per_year),
        }
