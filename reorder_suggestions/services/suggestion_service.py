# reorder_suggestions/services/suggestion_service.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, scoped_session

from reorder_suggestions.core.closed_periods import ClosedPeriodCalendar
from reorder_suggestions.core.demand_forecast import DemandForecastEngine
from reorder_suggestions.core.interfaces import InventoryDirectory, OrderWriter
from reorder_suggestions.core.records import (
    LeadTimeAdjustment, ProductSnapshot, ReorderAnalysis, SuggestionBatch,
    SupplierProfile, SupplierResult, SupplierStatus
)
from reorder_suggestions.core.reorder_decision import ReorderDecisionEngine, SuggestionSettings
from reorder_suggestions.core.safety_stock import SafetyStockCalculator
from reorder_suggestions.exceptions import BatchProcessError, CooldownActiveError, OrderError
from reorder_suggestions.logging_setup import logger as log_manager
from reorder_suggestions.services.directory import SqlInventoryDirectory, SqlOrderWriter
from reorder_suggestions.services.sales_ledger import SqlSalesLedger
from reorder_suggestions.utils.date_utils import is_within_days

logger = logging.getLogger(__name__)

PROCESS_NAME = 'reorder_suggestions'


class SupplierEvaluation(NamedTuple):
    lead_time: LeadTimeAdjustment
    products: List[ProductSnapshot]
    reorders: Tuple[ReorderAnalysis, ...]


class SuggestionOrchestrator:
    """Runs the reorder decision engine for every supplier and collects the results."""

    def __init__(
        self,
        engine: ReorderDecisionEngine,
        directory: InventoryDirectory,
        settings: Optional[SuggestionSettings] = None,
        order_writer: Optional[OrderWriter] = None,
        release_session: Optional[Callable[[], None]] = None
    ):
        """Initialize the orchestrator.

        Args:
            engine: Reorder decision engine
            directory: Supplier and product directory
            settings: Suggestion settings (engine settings when None)
            order_writer: Creates draft orders; without one every run is a dry run
            release_session: Called in a worker thread after each supplier it
                             processed, to discard the thread's session
        """
        self.engine = engine
        self.directory = directory
        self.settings = settings or engine.settings
        self.order_writer = order_writer
        self.release_session = release_session

        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def dry_run(self) -> bool:
        return self.settings.dry_run or self.order_writer is None

    def _supplier_lock(self, supplier_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(supplier_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[supplier_id] = lock
            return lock

    def in_cooldown(self, supplier: SupplierProfile, today: date) -> bool:
        """Check whether the supplier received a purchase order within the cooldown window."""
        last_order = self.directory.last_purchase_order_date(supplier.supplier_id)
        if last_order is None:
            last_order = supplier.last_order_date

        return is_within_days(last_order, today, self.settings.cooldown_days)

    def evaluate_supplier(self, supplier: SupplierProfile, today: date) -> SupplierEvaluation:
        """Evaluate every stock-managed product of a supplier.

        The closed period lead time adjustment is computed once and shared
        by all products.
        """
        adjustment = self.engine.calendar.adjusted_lead_time(
            supplier, self.engine.base_lead_time(supplier), today
        )
        if adjustment.adjusted:
            logger.info(
                f"Supplier {supplier.supplier_id} lead time {adjustment.base_lead_time} -> "
                f"{adjustment.lead_time} days: {adjustment.reason}"
            )

        products = [
            product for product in self.directory.get_supplier_products(supplier.supplier_id)
            if product.manages_stock
        ]

        analyses = [
            self.engine.evaluate_product(product, supplier, today, lead_time_adjustment=adjustment)
            for product in products
        ]

        return SupplierEvaluation(
            lead_time=adjustment,
            products=products,
            reorders=tuple(analysis for analysis in analyses if analysis.needs_reorder),
        )

    def _not_yet_ordered(
        self,
        supplier: SupplierProfile,
        reorders: Sequence[ReorderAnalysis]
    ) -> Tuple[ReorderAnalysis, ...]:
        already_ordered = self.directory.open_order_product_ids(supplier.supplier_id)
        return tuple(a for a in reorders if a.product_id not in already_ordered)

    @staticmethod
    def _result(
        supplier: SupplierProfile,
        status: SupplierStatus,
        evaluation: SupplierEvaluation,
        selected: Sequence[ReorderAnalysis] = (),
        reference=None,
        existing_orders: Sequence[Dict] = ()
    ) -> SupplierResult:
        return SupplierResult(
            supplier_id=supplier.supplier_id,
            supplier_name=supplier.name,
            status=status,
            analyses=tuple(selected),
            products_evaluated=len(evaluation.products),
            products_below_reorder=len(evaluation.reorders),
            lead_time=evaluation.lead_time,
            order_reference=reference,
            existing_orders=tuple(existing_orders),
        )

    def process_supplier(
        self,
        supplier: SupplierProfile,
        today: Optional[date] = None,
        create_orders: bool = True
    ) -> SupplierResult:
        """Evaluate one supplier and create its draft order.

        The supplier lock is held from the cooldown check through order
        creation. Failures are returned as an error result.

        Args:
            supplier: Supplier profile
            today: Run date (defaults to today)
            create_orders: False to only update the restock status

        Returns:
            SupplierResult
        """
        today = today or date.today()

        with self._supplier_lock(supplier.supplier_id):
            try:
                return self._process_supplier(supplier, today, create_orders)
            except Exception as e:
                logger.error(f"Error processing supplier {supplier.supplier_id} ({supplier.name}): {str(e)}")
                return SupplierResult(
                    supplier_id=supplier.supplier_id,
                    supplier_name=supplier.name,
                    status=SupplierStatus.ERROR,
                    error=str(e),
                )

    def _process_supplier(
        self,
        supplier: SupplierProfile,
        today: date,
        create_orders: bool
    ) -> SupplierResult:
        # Cooldown applies to order creation only
        if create_orders and self.in_cooldown(supplier, today):
            logger.info(f"Supplier {supplier.supplier_id} ({supplier.name}) ordered recently, skipping")
            return SupplierResult(
                supplier_id=supplier.supplier_id,
                supplier_name=supplier.name,
                status=SupplierStatus.SKIPPED_COOLDOWN,
            )

        evaluation = self.evaluate_supplier(supplier, today)
        reorders = evaluation.reorders

        if not reorders:
            logger.info(f"Supplier {supplier.supplier_id} ({supplier.name}): no products need reorder")
            return self._result(supplier, SupplierStatus.NO_ACTION, evaluation)

        if self.settings.predictive_requires_urgent and not any(a.reason.is_urgent for a in reorders):
            logger.info(f"Supplier {supplier.supplier_id} ({supplier.name}): no urgent products, skipping")
            return self._result(supplier, SupplierStatus.NO_URGENT, evaluation)

        self.directory.record_restock_status(reorders, today)

        to_order = self._not_yet_ordered(supplier, reorders)

        if not to_order:
            logger.info(
                f"Supplier {supplier.supplier_id} ({supplier.name}): all {len(reorders)} products "
                f"already on open purchase orders"
            )
            return self._result(supplier, SupplierStatus.ALREADY_ORDERED, evaluation)

        if not create_orders:
            return self._result(supplier, SupplierStatus.RESTOCK_UPDATED, evaluation, to_order)

        existing_orders = self.directory.open_purchase_orders(supplier.supplier_id)
        if existing_orders:
            logger.info(
                f"Supplier {supplier.supplier_id} ({supplier.name}) has {len(existing_orders)} open "
                f"purchase orders, waiting for a choice"
            )
            return self._result(
                supplier, SupplierStatus.NEEDS_CHOICE, evaluation, to_order, existing_orders=existing_orders
            )

        if self.dry_run:
            logger.info(
                f"DRY RUN: would create purchase order for supplier {supplier.supplier_id} "
                f"({supplier.name}) with {len(to_order)} products"
            )
            return self._result(supplier, SupplierStatus.CREATED, evaluation, to_order)

        try:
            reference = self.order_writer.create_draft_order(
                supplier, to_order, today, self.settings.cooldown_days
            )
        except CooldownActiveError as e:
            logger.info(f"Supplier {supplier.supplier_id} ({supplier.name}): {e.message}")
            return self._result(supplier, SupplierStatus.SKIPPED_COOLDOWN, evaluation)

        return self._result(supplier, SupplierStatus.CREATED, evaluation, to_order, reference)

    def execute_choice(
        self,
        supplier: SupplierProfile,
        order_id=None,
        today: Optional[date] = None
    ) -> SupplierResult:
        """Order a supplier's pending suggestions after a needs-choice result.

        The supplier is evaluated again and its products not yet on an open
        order are added to the chosen order, or to a new draft order when no
        order is given.

        Args:
            supplier: Supplier profile
            order_id: Open purchase order to extend, None for a new order
            today: Run date (defaults to today)

        Returns:
            SupplierResult with status created, or already_ordered when
            nothing is left to order
        """
        if self.dry_run:
            raise OrderError("Purchase order choices cannot be executed in dry run mode")

        today = today or date.today()

        with self._supplier_lock(supplier.supplier_id):
            evaluation = self.evaluate_supplier(supplier, today)
            to_order = self._not_yet_ordered(supplier, evaluation.reorders)

            if not to_order:
                return self._result(supplier, SupplierStatus.ALREADY_ORDERED, evaluation)

            if order_id is not None:
                reference = self.order_writer.add_to_order(order_id, to_order)
            else:
                reference = self.order_writer.create_draft_order(
                    supplier, to_order, today, self.settings.cooldown_days
                )

            logger.info(
                f"Supplier {supplier.supplier_id} ({supplier.name}): {len(to_order)} products "
                f"ordered on purchase order {reference}"
            )
            return self._result(supplier, SupplierStatus.CREATED, evaluation, to_order, reference)

    def _process_in_worker(self, supplier: SupplierProfile, today: date, create_orders: bool) -> SupplierResult:
        try:
            return self.process_supplier(supplier, today, create_orders)
        finally:
            if self.release_session is not None:
                self.release_session()

    def run_batch(self, today: Optional[date] = None, create_orders: bool = True) -> SuggestionBatch:
        """Generate reorder suggestions for all suppliers.

        Args:
            today: Run date (defaults to today)
            create_orders: False to only refresh the restock status of products

        Returns:
            SuggestionBatch
        """
        today = today or date.today()
        log_info = log_manager.batch_start_log(PROCESS_NAME, {
            'run_date': today.isoformat(),
            'dry_run': self.dry_run,
            'create_orders': create_orders,
        })

        try:
            if not create_orders:
                self.directory.reset_restock_status()

            suppliers = list(self.directory.get_suppliers())
            logger.info(f"Processing {len(suppliers)} suppliers")

            workers = min(self.settings.max_workers, max(1, len(suppliers)))
            if workers > 1:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    results = list(executor.map(
                        lambda supplier: self._process_in_worker(supplier, today, create_orders),
                        suppliers
                    ))
            else:
                results = [self.process_supplier(supplier, today, create_orders) for supplier in suppliers]

            without_supplier = tuple(self.directory.products_without_supplier())

        except Exception as e:
            log_manager.batch_end_log(log_info, success=False, result_info={'error': str(e)})
            raise BatchProcessError(f"Reorder suggestion run failed: {str(e)}")

        anomalies: List[str] = []
        for supplier_result in results:
            adjustment = supplier_result.lead_time
            if adjustment is not None and adjustment.anomaly:
                anomalies.append(
                    f"Supplier {supplier_result.supplier_id} ({supplier_result.supplier_name}): "
                    f"no open date found after closed periods ({adjustment.reason})"
                )

        batch = SuggestionBatch(
            run_date=today,
            dry_run=self.dry_run,
            suppliers=tuple(results),
            products_without_supplier=without_supplier,
            anomalies=tuple(anomalies),
        )

        log_manager.batch_end_log(log_info, success=True, result_info=batch.message)
        return batch


def build_orchestrator(session: Session, config) -> SuggestionOrchestrator:
    """Wire the orchestrator with database backed collaborators.

    Args:
        session: Database session (a scoped session when max_workers > 1)
        config: Config instance

    Returns:
        SuggestionOrchestrator
    """
    settings = SuggestionSettings.from_config(config)
    directory = SqlInventoryDirectory(session)
    sales_ledger = SqlSalesLedger(session)

    engine = ReorderDecisionEngine(
        ClosedPeriodCalendar(directory.get_global_presets()),
        DemandForecastEngine(sales_ledger),
        SafetyStockCalculator(sales_ledger),
        settings
    )

    release_session = session.remove if isinstance(session, scoped_session) else None

    return SuggestionOrchestrator(
        engine, directory, settings, SqlOrderWriter(session), release_session=release_session
    )
