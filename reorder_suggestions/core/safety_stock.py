# reorder_suggestions/core/safety_stock.py
"""
Safety stock calculation for the reorder suggestion engine.

Safety stock protects against demand variability while an order is in
transit. It is derived from the daily sales standard deviation, the
service level z-score and the square root of the lead time.
"""
import logging
import math
from datetime import date
from typing import Optional, Union

from reorder_suggestions.core.interfaces import SalesLedger
from reorder_suggestions.core.records import ProductSnapshot
from reorder_suggestions.utils.date_utils import add_days, days_between
from reorder_suggestions.utils.math_utils import population_std_dev

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_LEVEL = 95
DEFAULT_WINDOW_DAYS = 90
MIN_WINDOW_DAYS = 7


class SafetyStockCalculator:
    """Computes safety stock from the variability of daily sales."""

    Z_SCORES = {
        90: 1.28,
        95: 1.65,
        99: 2.33,
    }

    def __init__(self, sales_ledger: SalesLedger):
        self.sales_ledger = sales_ledger

    @classmethod
    def z_score(cls, service_level: Union[int, float, str, None]) -> float:
        """Get the z-score for a service level.

        Args:
            service_level: 90, 95 or 99 (numeric strings accepted)

        Returns:
            Z-score, using 95% for unrecognized levels
        """
        try:
            level = int(float(service_level))
        except (TypeError, ValueError):
            level = DEFAULT_SERVICE_LEVEL

        return cls.Z_SCORES.get(level, cls.Z_SCORES[DEFAULT_SERVICE_LEVEL])

    def history_window(
        self,
        product: ProductSnapshot,
        window_days: int = DEFAULT_WINDOW_DAYS,
        today: Optional[date] = None
    ) -> int:
        """Number of days of sales history to measure variability over.

        The window starts at the first sale inside the last window_days days
        and is bounded to [7, 90] days. Products without any sale in the
        window use the full window.
        """
        today = today or date.today()
        first_sale = self.sales_ledger.first_sale_date(
            product.product_id, add_days(today, -window_days)
        )

        if first_sale is None:
            return window_days

        return max(MIN_WINDOW_DAYS, min(DEFAULT_WINDOW_DAYS, days_between(first_sale, today)))

    def demand_std_dev(
        self,
        product: ProductSnapshot,
        window_days: int = DEFAULT_WINDOW_DAYS,
        today: Optional[date] = None
    ) -> float:
        """Population standard deviation of daily sales, zero-filling days without sales.

        Args:
            product: Product snapshot
            window_days: Maximum look-back in days
            today: Reference date (defaults to today)

        Returns:
            Standard deviation in units per day
        """
        today = today or date.today()
        days = self.history_window(product, window_days, today)

        series = self.sales_ledger.daily_quantity_series(
            product.product_id, add_days(today, -days), today
        ) or []

        if not any(series):
            return 0.0

        return population_std_dev(series)

    def safety_stock(
        self,
        product: ProductSnapshot,
        lead_time: int,
        service_level: Union[int, str] = DEFAULT_SERVICE_LEVEL,
        today: Optional[date] = None
    ) -> int:
        """Calculate safety stock in units.

        Args:
            product: Product snapshot
            lead_time: Lead time in days
            service_level: Target service level percentage
            today: Reference date (defaults to today)

        Returns:
            Non-negative integer safety stock
        """
        z = self.z_score(service_level)
        std_dev = self.demand_std_dev(product, today=today)
        lead_time = max(1, int(lead_time or 1))

        safety_stock = int(math.ceil(z * std_dev * math.sqrt(lead_time)))

        logger.debug(
            f"Safety stock for product {product.product_id}: z={z} "
            f"std_dev={std_dev:.4f} lead_time={lead_time} -> {safety_stock}"
        )

        return max(0, safety_stock)
