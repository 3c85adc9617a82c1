# reorder_suggestions/core/interfaces.py
"""Collaborators the engine reads from but does not own."""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from reorder_suggestions.core.records import (
    ClosedPeriod, ProductSnapshot, ReorderAnalysis, SupplierProfile
)


class SalesLedger(Protocol):
    """Read access to sales of completed/processing orders."""

    def total_quantity_sold(self, product_id: int, since_date: date) -> float:
        ...

    def monthly_quantity_sold(self, product_id: int) -> Dict[Tuple[int, int], float]:
        """Units sold keyed by (year, month)."""
        ...

    def daily_quantity_series(self, product_id: int, since_date: date, until_date: date) -> List[float]:
        """One zero-filled value per day from since_date up to, excluding, until_date."""
        ...

    def first_sale_date(self, product_id: int, since_date: date) -> Optional[date]:
        ...


class InventoryDirectory(Protocol):
    """Supplier and product lookups plus restock status bookkeeping."""

    def get_suppliers(self) -> Sequence[SupplierProfile]:
        ...

    def get_supplier_products(self, supplier_id: int) -> Sequence[ProductSnapshot]:
        ...

    def get_global_presets(self) -> Sequence[ClosedPeriod]:
        ...

    def last_purchase_order_date(self, supplier_id: int) -> Optional[date]:
        ...

    def open_order_product_ids(self, supplier_id: int) -> Set[int]:
        ...

    def open_purchase_orders(self, supplier_id: int) -> List[Dict[str, Any]]:
        """Open purchase orders of the supplier, newest first."""
        ...

    def products_without_supplier(self) -> List[Dict[str, Any]]:
        ...

    def record_restock_status(self, analyses: Iterable[ReorderAnalysis], today: date) -> None:
        ...

    def reset_restock_status(self) -> None:
        ...


class OrderWriter(Protocol):
    """Creates draft purchase orders from reorder suggestions."""

    def create_draft_order(
        self,
        supplier: SupplierProfile,
        analyses: Sequence[ReorderAnalysis],
        today: date,
        cooldown_days: int
    ) -> Any:
        ...

    def add_to_order(self, order_id: Any, analyses: Sequence[ReorderAnalysis]) -> Any:
        ...
