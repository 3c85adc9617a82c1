# reorder_suggestions/services/sales_ledger.py
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy import and_, extract, func
from sqlalchemy.orm import Session

from reorder_suggestions.models import SalesOrder, SalesOrderLine, COUNTED_SALES_STATUSES
from reorder_suggestions.utils.date_utils import convert_to_date, days_between

logger = logging.getLogger(__name__)


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min)


class SqlSalesLedger:
    """Sales history read from sales order lines.

    Only orders in a counted state (completed, processing) contribute.
    """

    def __init__(self, session: Session):
        """Initialize the sales ledger.

        Args:
            session: Database session
        """
        self.session = session

    def _counted_lines(self, *columns):
        return (
            self.session.query(*columns)
            .select_from(SalesOrderLine)
            .join(SalesOrder, SalesOrder.id == SalesOrderLine.order_id)
            .filter(SalesOrder.status.in_(COUNTED_SALES_STATUSES))
        )

    def total_quantity_sold(self, product_id: int, since_date: date) -> float:
        """Get units sold since a date.

        Args:
            product_id: Product ID
            since_date: First day included

        Returns:
            Total quantity sold
        """
        total = self._counted_lines(func.coalesce(func.sum(SalesOrderLine.quantity), 0.0)).filter(
            and_(
                SalesOrderLine.product_id == product_id,
                SalesOrder.order_date >= _start_of(since_date)
            )
        ).scalar()

        return float(total or 0.0)

    def monthly_quantity_sold(self, product_id: int) -> Dict[Tuple[int, int], float]:
        """Get units sold per calendar month.

        Returns:
            Dictionary keyed by (year, month)
        """
        year = extract('year', SalesOrder.order_date)
        month = extract('month', SalesOrder.order_date)

        rows = self._counted_lines(year, month, func.sum(SalesOrderLine.quantity)).filter(
            SalesOrderLine.product_id == product_id
        ).group_by(year, month).all()

        return {
            (int(row_year), int(row_month)): float(quantity or 0.0)
            for row_year, row_month, quantity in rows
        }

    def daily_quantity_series(self, product_id: int, since_date: date, until_date: date) -> List[float]:
        """Get units sold per day, zero-filled.

        Args:
            product_id: Product ID
            since_date: First day of the series
            until_date: Day after the last day of the series

        Returns:
            One value per day in [since_date, until_date)
        """
        length = days_between(since_date, until_date)
        if length <= 0:
            return []

        series = [0.0] * length

        rows = self._counted_lines(SalesOrder.order_date, SalesOrderLine.quantity).filter(
            and_(
                SalesOrderLine.product_id == product_id,
                SalesOrder.order_date >= _start_of(since_date),
                SalesOrder.order_date < _start_of(until_date)
            )
        ).all()

        for order_date, quantity in rows:
            index = days_between(since_date, convert_to_date(order_date))
            if 0 <= index < length:
                series[index] += float(quantity or 0.0)

        return series

    def first_sale_date(self, product_id: int, since_date: date) -> Optional[date]:
        """Get the date of the first counted sale on or after a date."""
        first = self._counted_lines(func.min(SalesOrder.order_date)).filter(
            and_(
                SalesOrderLine.product_id == product_id,
                SalesOrder.order_date >= _start_of(since_date)
            )
        ).scalar()

        return convert_to_date(first)
