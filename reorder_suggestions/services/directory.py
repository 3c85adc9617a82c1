# reorder_suggestions/services/directory.py
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set
import logging

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reorder_suggestions.core.records import (
    ClosedPeriod, ProductSnapshot, ReorderAnalysis, SupplierProfile
)
from reorder_suggestions.exceptions import CooldownActiveError, DatabaseError, OrderError
from reorder_suggestions.models import (
    ClosedPeriodPreset, Product, PurchaseOrder, PurchaseOrderLine, Supplier,
    OPEN_PURCHASE_ORDER_STATUSES
)
from reorder_suggestions.utils.date_utils import add_days, is_within_days

logger = logging.getLogger(__name__)

ACTIVE_STATUS = 'publish'
DELETED_ORDER_STATUS = 'trash'
DRAFT_ORDER_STATUS = 'pending'


def _to_supplier_profile(supplier: Supplier, last_order_date: Optional[date]) -> SupplierProfile:
    custom_periods = tuple(
        ClosedPeriod(
            period_id=f"custom-{period.id}",
            start_date=period.start_date,
            end_date=period.end_date,
            name=period.name,
        )
        for period in supplier.custom_closed_periods
    )

    return SupplierProfile(
        supplier_id=supplier.id,
        name=supplier.name,
        lead_time=supplier.lead_time,
        orders_per_year=supplier.orders_per_year,
        preset_ids=tuple(link.preset_id for link in supplier.preset_links),
        custom_periods=custom_periods,
        last_order_date=last_order_date,
    )

def _to_product_snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot.build(
        product_id=product.id,
        name=product.name,
        sku=product.sku,
        current_stock=product.stock_quantity,
        inbound_stock=product.inbound_stock,
        minimum_order_quantity=product.minimum_order_quantity,
        purchase_price=product.purchase_price,
        regular_price=product.regular_price,
        created_on=product.created_on,
        manages_stock=product.manages_stock,
        supplier_id=product.supplier_id,
    )


class SqlInventoryDirectory:
    """Supplier, product and closed period lookups backed by the database."""

    def __init__(self, session: Session):
        """Initialize the directory.

        Args:
            session: Database session
        """
        self.session = session

    def get_suppliers(self) -> List[SupplierProfile]:
        """Get all active suppliers.

        Returns:
            List of supplier profiles ordered by ID
        """
        suppliers = self.session.query(Supplier).filter(
            Supplier.status == ACTIVE_STATUS
        ).order_by(Supplier.id).all()

        return [
            _to_supplier_profile(supplier, self.last_purchase_order_date(supplier.id))
            for supplier in suppliers
        ]

    def get_supplier(self, supplier_id: int) -> Optional[SupplierProfile]:
        supplier = self.session.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            return None
        return _to_supplier_profile(supplier, self.last_purchase_order_date(supplier.id))

    def get_supplier_products(self, supplier_id: int) -> List[ProductSnapshot]:
        """Get all active products of a supplier.

        Args:
            supplier_id: Supplier ID

        Returns:
            List of product snapshots ordered by ID
        """
        products = self.session.query(Product).filter(
            and_(
                Product.supplier_id == supplier_id,
                Product.status == ACTIVE_STATUS
            )
        ).order_by(Product.id).all()

        return [_to_product_snapshot(product) for product in products]

    def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        product = self.session.query(Product).filter(Product.id == product_id).first()
        if not product:
            return None
        return _to_product_snapshot(product)

    def get_global_presets(self) -> List[ClosedPeriod]:
        """Get all closed period presets."""
        presets = self.session.query(ClosedPeriodPreset).order_by(ClosedPeriodPreset.id).all()

        return [
            ClosedPeriod(
                period_id=preset.id,
                start_date=preset.start_date,
                end_date=preset.end_date,
                name=preset.name,
                is_preset=True,
            )
            for preset in presets
        ]

    def last_purchase_order_date(self, supplier_id: int) -> Optional[date]:
        """Get the creation date of the supplier's most recent purchase order."""
        return self.session.query(func.max(PurchaseOrder.created_on)).filter(
            and_(
                PurchaseOrder.supplier_id == supplier_id,
                PurchaseOrder.status != DELETED_ORDER_STATUS
            )
        ).scalar()

    def open_order_product_ids(self, supplier_id: int) -> Set[int]:
        """Get IDs of products already on an open purchase order of the supplier."""
        rows = self.session.query(PurchaseOrderLine.product_id).join(
            PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id
        ).filter(
            and_(
                PurchaseOrder.supplier_id == supplier_id,
                PurchaseOrder.status.in_(OPEN_PURCHASE_ORDER_STATUSES)
            )
        ).distinct().all()

        return {row[0] for row in rows}

    def open_purchase_orders(self, supplier_id: int) -> List[Dict[str, Any]]:
        """Get the supplier's open purchase orders.

        Args:
            supplier_id: Supplier ID

        Returns:
            List of dictionaries with id, created_on, status and product_count,
            newest first
        """
        orders = self.session.query(PurchaseOrder).filter(
            and_(
                PurchaseOrder.supplier_id == supplier_id,
                PurchaseOrder.status.in_(OPEN_PURCHASE_ORDER_STATUSES)
            )
        ).order_by(PurchaseOrder.created_on.desc(), PurchaseOrder.id.desc()).all()

        return [
            {
                'id': order.id,
                'created_on': order.created_on.isoformat(),
                'status': order.status,
                'product_count': len(order.lines),
            }
            for order in orders
        ]

    def products_without_supplier(self) -> List[Dict[str, Any]]:
        """Get stock-managed products that have no supplier assigned.

        Returns:
            List of dictionaries with product id, name and SKU
        """
        products = self.session.query(Product).filter(
            and_(
                Product.supplier_id.is_(None),
                Product.status == ACTIVE_STATUS,
                Product.manages_stock.is_(True)
            )
        ).order_by(Product.id).all()

        return [
            {'id': product.id, 'name': product.name, 'sku': product.sku}
            for product in products
        ]

    def record_restock_status(self, analyses: Iterable[ReorderAnalysis], today: date) -> None:
        """Flag products as needing reorder with their suggested quantity.

        Args:
            analyses: Analyses of products needing reorder
            today: Run date
        """
        updated_at = datetime.combine(today, time.min)

        try:
            for analysis in analyses:
                product = self.session.query(Product).filter(Product.id == analysis.product_id).first()
                if not product:
                    logger.warning(f"Product {analysis.product_id} not found when recording restock status")
                    continue

                product.needs_reorder = analysis.needs_reorder
                product.suggested_qty = analysis.suggested_qty
                product.restock_updated = updated_at

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to record restock status: {str(e)}")

    def reset_restock_status(self) -> None:
        """Clear the restock flag on every product."""
        try:
            self.session.query(Product).update(
                {Product.needs_reorder: False, Product.suggested_qty: 0},
                synchronize_session=False
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to reset restock status: {str(e)}")


class SqlOrderWriter:
    """Creates draft purchase orders from reorder suggestions."""

    def __init__(self, session: Session):
        """Initialize the order writer.

        Args:
            session: Database session
        """
        self.session = session

    def create_draft_order(
        self,
        supplier: SupplierProfile,
        analyses: Sequence[ReorderAnalysis],
        today: date,
        cooldown_days: int
    ) -> int:
        """Create one draft purchase order for a supplier.

        The supplier row is locked and the cooldown checked again in the
        same transaction that inserts the order.

        Args:
            supplier: Supplier profile
            analyses: Analyses of products to order
            today: Order date
            cooldown_days: Minimum days between orders for the supplier

        Returns:
            ID of the created purchase order
        """
        if not analyses:
            raise OrderError(f"No products to order for supplier {supplier.name}")

        try:
            supplier_row = self.session.query(Supplier).filter(
                Supplier.id == supplier.supplier_id
            ).with_for_update().first()
            if not supplier_row:
                raise OrderError(f"Supplier with ID {supplier.supplier_id} not found")

            last_order = self.session.query(func.max(PurchaseOrder.created_on)).filter(
                and_(
                    PurchaseOrder.supplier_id == supplier.supplier_id,
                    PurchaseOrder.status != DELETED_ORDER_STATUS
                )
            ).scalar()

            if is_within_days(last_order, today, cooldown_days):
                raise CooldownActiveError(
                    f"Supplier {supplier.name} already has an order from {last_order.isoformat()}",
                    details={'supplier_id': supplier.supplier_id, 'last_order_date': last_order.isoformat()}
                )

            lead_time = max(analysis.lead_time for analysis in analyses)
            description = f"Reorder suggestion for {len(analyses)} products"
            if supplier_row.po_note:
                description = f"{description}\n{supplier_row.po_note}"

            order = PurchaseOrder(
                supplier_id=supplier.supplier_id,
                status=DRAFT_ORDER_STATUS,
                created_on=today,
                expected_on=add_days(today, lead_time),
                description=description
            )

            for analysis in analyses:
                order.lines.append(PurchaseOrderLine(
                    product_id=analysis.product_id,
                    quantity=analysis.suggested_qty,
                    unit_price=analysis.purchase_price,
                    reason=analysis.reason.value
                ))

            self.session.add(order)
            self.session.commit()

            logger.info(
                f"Created purchase order {order.id} for supplier {supplier.name} "
                f"with {len(analyses)} lines"
            )
            return order.id

        except OrderError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise OrderError(f"Failed to create order for supplier {supplier.name}: {str(e)}")

    def add_to_order(self, order_id: int, analyses: Sequence[ReorderAnalysis]) -> int:
        """Append reorder suggestions to an open purchase order.

        Args:
            order_id: Purchase order ID
            analyses: Analyses of products to add

        Returns:
            ID of the updated purchase order
        """
        if not analyses:
            raise OrderError(f"No products to add to purchase order {order_id}")

        try:
            order = self.session.query(PurchaseOrder).filter(
                PurchaseOrder.id == order_id
            ).with_for_update().first()
            if not order:
                raise OrderError(f"Purchase order with ID {order_id} not found")

            if order.status not in OPEN_PURCHASE_ORDER_STATUSES:
                raise OrderError(
                    f"Purchase order {order_id} is {order.status} and cannot be changed",
                    details={'order_id': order_id, 'status': order.status}
                )

            for analysis in analyses:
                order.lines.append(PurchaseOrderLine(
                    product_id=analysis.product_id,
                    quantity=analysis.suggested_qty,
                    unit_price=analysis.purchase_price,
                    reason=analysis.reason.value
                ))

            note = f"Added {len(analyses)} products from reorder suggestions"
            order.description = f"{order.description}\n{note}" if order.description else note

            self.session.commit()

            logger.info(f"Added {len(analyses)} lines to purchase order {order.id}")
            return order.id

        except OrderError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise OrderError(f"Failed to add products to purchase order {order_id}: {str(e)}")
