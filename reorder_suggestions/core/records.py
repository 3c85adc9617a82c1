# reorder_suggestions/core/records.py
"""Immutable records passed between the reorder engine components."""
import enum
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_LEAD_TIME = 14
DEFAULT_ORDERS_PER_YEAR = 4
NO_SALES_DAYS_REMAINING = 999


class ReorderReason(enum.Enum):
    """Why a product was flagged, in order of precedence."""
    AT_ROP = 'at_rop'
    CLOSURE_PERIOD = 'closure_period'
    SAFETY_MARGIN = 'safety_margin'
    PREDICTIVE = 'predictive'
    UNKNOWN = 'unknown'
    NONE = 'none'

    def __str__(self):
        return self.value

    @property
    def is_urgent(self) -> bool:
        """Reactive reasons that justify an order without prediction."""
        return self in (ReorderReason.AT_ROP, ReorderReason.CLOSURE_PERIOD)


@dataclass(frozen=True)
class TraceStep:
    stage: str
    values: Mapping[str, Any]


@dataclass(frozen=True)
class ClosedPeriod:
    """A recurring closure expressed as DD-MM strings without a year."""
    period_id: str
    start_date: Optional[str]
    end_date: Optional[str]
    name: Optional[str] = None
    is_preset: bool = False


@dataclass(frozen=True)
class NormalizedClosedPeriod:
    period_id: str
    name: str
    start_date: str
    end_date: str
    closure_start: date
    closure_end: date
    crosses_year: bool

    def contains(self, day: date) -> bool:
        return self.closure_start <= day <= self.closure_end


@dataclass(frozen=True)
class SupplierProfile:
    supplier_id: int
    name: str
    lead_time: Optional[int] = None
    orders_per_year: Optional[int] = None
    preset_ids: Tuple[str, ...] = ()
    custom_periods: Tuple[ClosedPeriod, ...] = ()
    last_order_date: Optional[date] = None

    @property
    def effective_lead_time(self) -> int:
        """Lead time in days, falling back to 14 when unset or invalid."""
        try:
            lead_time = int(self.lead_time)
        except (TypeError, ValueError):
            return DEFAULT_LEAD_TIME
        return lead_time if lead_time >= 1 else DEFAULT_LEAD_TIME

    def effective_orders_per_year(self, default: int = DEFAULT_ORDERS_PER_YEAR) -> int:
        if self.orders_per_year is not None and 1 <= self.orders_per_year <= 12:
            return int(self.orders_per_year)
        if default is not None and 1 <= default <= 12:
            return int(default)
        return DEFAULT_ORDERS_PER_YEAR

    def days_of_stock_target(self, default_orders_per_year: int = DEFAULT_ORDERS_PER_YEAR) -> int:
        """Days of stock one order should cover: ceil(365 / orders per year)."""
        return int(math.ceil(365 / self.effective_orders_per_year(default_orders_per_year)))


@dataclass(frozen=True)
class ProductSnapshot:
    product_id: int
    name: str
    sku: Optional[str] = None
    current_stock: int = 0
    inbound_stock: int = 0
    minimum_order_quantity: int = 1
    purchase_price: Optional[float] = None
    regular_price: Optional[float] = None
    created_on: Optional[date] = None
    manages_stock: bool = True
    supplier_id: Optional[int] = None

    @classmethod
    def build(cls, product_id, name, sku=None, current_stock=0, inbound_stock=0,
              minimum_order_quantity=1, purchase_price=None, regular_price=None,
              created_on=None, manages_stock=True, supplier_id=None) -> 'ProductSnapshot':
        """Create a snapshot, replacing missing or invalid values with defaults."""
        moq = int(minimum_order_quantity or 1)
        return cls(
            product_id=product_id,
            name=name or '',
            sku=sku,
            current_stock=max(0, int(current_stock or 0)),
            inbound_stock=max(0, int(inbound_stock or 0)),
            minimum_order_quantity=moq if moq >= 1 else 1,
            purchase_price=purchase_price,
            regular_price=regular_price,
            created_on=created_on,
            manages_stock=bool(manages_stock),
            supplier_id=supplier_id,
        )

    @property
    def effective_stock(self) -> int:
        return self.current_stock + self.inbound_stock

    @property
    def effective_purchase_price(self) -> float:
        """Purchase price, else 66% of the regular price, else 0."""
        if self.purchase_price:
            return max(0.0, float(self.purchase_price))
        if self.regular_price:
            return max(0.0, float(self.regular_price) * 0.66)
        return 0.0


@dataclass(frozen=True)
class OpenDateResult:
    open_date: date
    iterations: int
    exhausted: bool = False


@dataclass(frozen=True)
class LeadTimeAdjustment:
    base_lead_time: int
    lead_time: int
    reason: str = ''
    period: Optional[NormalizedClosedPeriod] = None
    anomaly: bool = False

    @property
    def adjusted(self) -> bool:
        return self.lead_time != self.base_lead_time


@dataclass(frozen=True)
class ClosureRisk:
    needs_order: bool
    period: NormalizedClosedPeriod
    extra_days: int
    trigger: str


@dataclass(frozen=True)
class SeasonalValidation:
    is_valid: bool
    correlation: float
    years_compared: int


@dataclass(frozen=True)
class DemandForecast:
    base_average: float
    recent_average: float
    trended_average: float
    seasonal_factor: float
    seasonal_validation: Optional[SeasonalValidation]
    average_daily_sales: float
    days_of_history: int
    trace: Tuple[TraceStep, ...] = ()


@dataclass(frozen=True)
class ReorderAnalysis:
    product_id: int
    product_name: str
    sku: Optional[str]
    current_stock: int
    inbound_stock: int
    effective_stock: int
    avg_daily_sales: float
    safety_stock: int
    reorder_point: int
    optimal_stock: int
    days_remaining: int
    suggested_qty: int
    needs_reorder: bool
    reason: ReorderReason
    closure_driven: bool = False
    closure_extra_days: int = 0
    closure_period_name: Optional[str] = None
    base_lead_time: int = DEFAULT_LEAD_TIME
    lead_time: int = DEFAULT_LEAD_TIME
    purchase_price: float = 0.0
    trace: Tuple[TraceStep, ...] = ()

    @property
    def line_total(self) -> float:
        return self.suggested_qty * self.purchase_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'sku': self.sku,
            'current_stock': self.current_stock,
            'inbound_stock': self.inbound_stock,
            'effective_stock': self.effective_stock,
            'avg_daily_sales': round(self.avg_daily_sales, 2),
            'safety_stock': self.safety_stock,
            'reorder_point': self.reorder_point,
            'optimal_stock': self.optimal_stock,
            'days_remaining': self.days_remaining,
            'suggested_qty': self.suggested_qty,
            'needs_reorder': self.needs_reorder,
            'reorder_reason': self.reason.value,
            'closure_driven': self.closure_driven,
            'closure_extra_days': self.closure_extra_days,
            'closure_period_name': self.closure_period_name,
            'base_lead_time': self.base_lead_time,
            'lead_time': self.lead_time,
            'purchase_price': self.purchase_price,
            'line_total': self.line_total,
        }


class SupplierStatus(enum.Enum):
    CREATED = 'created'
    SKIPPED_COOLDOWN = 'skipped_cooldown'
    NO_ACTION = 'no_action'
    NO_URGENT = 'no_urgent'
    ALREADY_ORDERED = 'already_ordered'
    NEEDS_CHOICE = 'needs_choice'
    RESTOCK_UPDATED = 'restock_updated'
    ERROR = 'error'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class SupplierResult:
    supplier_id: int
    supplier_name: str
    status: SupplierStatus
    analyses: Tuple[ReorderAnalysis, ...] = ()
    products_evaluated: int = 0
    products_below_reorder: int = 0
    lead_time: Optional[LeadTimeAdjustment] = None
    order_reference: Optional[Any] = None
    existing_orders: Tuple[Dict[str, Any], ...] = ()
    error: Optional[str] = None

    @property
    def total(self) -> float:
        return sum(analysis.line_total for analysis in self.analyses)


@dataclass(frozen=True)
class SuggestionBatch:
    run_date: date
    dry_run: bool
    suppliers: Tuple[SupplierResult, ...] = ()
    products_without_supplier: Tuple[Dict[str, Any], ...] = ()
    anomalies: Tuple[str, ...] = field(default_factory=tuple)

    def _with_status(self, status: SupplierStatus) -> List[SupplierResult]:
        return [result for result in self.suppliers if result.status == status]

    @property
    def created(self) -> List[SupplierResult]:
        return self._with_status(SupplierStatus.CREATED)

    @property
    def skipped(self) -> List[SupplierResult]:
        return self._with_status(SupplierStatus.SKIPPED_COOLDOWN)

    @property
    def errors(self) -> List[SupplierResult]:
        return self._with_status(SupplierStatus.ERROR)

    @property
    def choices_needed(self) -> List[SupplierResult]:
        """Suppliers with open purchase orders, waiting for a new-or-existing order choice."""
        return self._with_status(SupplierStatus.NEEDS_CHOICE)

    @property
    def total_products(self) -> int:
        return sum(result.products_evaluated for result in self.suppliers)

    @property
    def products_below_reorder(self) -> int:
        return sum(result.products_below_reorder for result in self.suppliers)

    def suggestions_for(self, supplier_id) -> Tuple[ReorderAnalysis, ...]:
        for result in self.suppliers:
            if result.supplier_id == supplier_id:
                return result.analyses
        return ()

    @property
    def message(self) -> str:
        verb = 'would be created' if self.dry_run else 'created'
        return (
            f"{len(self.created)} PO suggestions {verb}, "
            f"{len(self.skipped)} suppliers skipped, {len(self.choices_needed)} need a choice, "
            f"{len(self.errors)} errors."
        )

    def summary(self) -> Dict[str, Any]:
        return {
            'run_date': self.run_date.isoformat(),
            'dry_run': self.dry_run,
            'total_suppliers': len(self.suppliers),
            'created': len(self.created),
            'skipped': len(self.skipped),
            'choices_needed': [
                {
                    'supplier_id': r.supplier_id,
                    'supplier_name': r.supplier_name,
                    'product_count': len(r.analyses),
                    'existing_orders': list(r.existing_orders),
                }
                for r in self.choices_needed
            ],
            'errors': [
                {'supplier_id': r.supplier_id, 'supplier_name': r.supplier_name, 'error': r.error}
                for r in self.errors
            ],
            'total_products': self.total_products,
            'products_below_reorder': self.products_below_reorder,
            'products_without_supplier': len(self.products_without_supplier),
            'anomalies': list(self.anomalies),
            'message': self.message,
        }
