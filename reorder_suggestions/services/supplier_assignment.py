# reorder_suggestions/services/supplier_assignment.py
from typing import Dict, Iterable, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reorder_suggestions.exceptions import DatabaseError, ProductError, SupplierError, ValidationError
from reorder_suggestions.models import Product, Supplier

logger = logging.getLogger(__name__)


class SupplierAssignmentService:
    """Assigns suppliers to products, one at a time or in bulk.

    Both entry points go through apply_supplier_assignment so a bulk
    assignment has exactly the same side effects as individual ones.
    """

    def __init__(self, session: Session):
        """Initialize the supplier assignment service.

        Args:
            session: Database session
        """
        self.session = session

    def _resolve_supplier_id(self, supplier_id: Optional[int]) -> Optional[int]:
        # 0 or None clears the assignment
        if not supplier_id:
            return None

        supplier = self.session.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            raise SupplierError(f"Supplier with ID {supplier_id} not found")

        return supplier.id

    def apply_supplier_assignment(self, product: Product, supplier_id: Optional[int]) -> Product:
        """Set the supplier of a product.

        Args:
            product: Product model
            supplier_id: Supplier ID, None to clear

        Returns:
            The updated product
        """
        product.supplier_id = supplier_id
        self.session.add(product)

        logger.debug(f"Product {product.id} assigned to supplier {supplier_id}")
        return product

    def assign_supplier(self, product_id: int, supplier_id: Optional[int]) -> Product:
        """Assign a supplier to a single product.

        Args:
            product_id: Product ID
            supplier_id: Supplier ID, 0 or None to clear

        Returns:
            The updated product
        """
        product = self.session.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise ProductError(f"Product with ID {product_id} not found")

        resolved_id = self._resolve_supplier_id(supplier_id)

        try:
            self.apply_supplier_assignment(product, resolved_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to assign supplier to product {product_id}: {str(e)}")

        return product

    def bulk_assign_supplier(self, product_ids: Iterable[int], supplier_id: Optional[int]) -> Dict:
        """Assign a supplier to many products.

        Variations of a parent product receive the same supplier. Missing
        products are reported and skipped.

        Args:
            product_ids: Product IDs
            supplier_id: Supplier ID, 0 or None to clear

        Returns:
            Dictionary with success_count and a list of error messages
        """
        product_ids = list(product_ids or [])
        if not product_ids:
            raise ValidationError("No products selected")

        resolved_id = self._resolve_supplier_id(supplier_id)

        success_count = 0
        errors = []

        for product_id in product_ids:
            product = self.session.query(Product).filter(Product.id == product_id).first()
            if not product:
                errors.append(f"Product {product_id} not found")
                continue

            try:
                self.apply_supplier_assignment(product, resolved_id)
                for variation in product.variations:
                    self.apply_supplier_assignment(variation, resolved_id)
                self.session.commit()
                success_count += 1
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"Error assigning supplier to product {product_id}: {str(e)}")
                errors.append(f"Product {product_id}: {str(e)}")

        logger.info(
            f"Bulk supplier assignment: {success_count} of {len(product_ids)} products "
            f"assigned to supplier {resolved_id}"
        )

        return {
            'success': success_count > 0,
            'success_count': success_count,
            'errors': errors
        }
