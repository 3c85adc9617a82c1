# reorder_suggestions/core/reorder_decision.py
"""
Reorder decision for a single product.

Combines the demand forecast, safety stock, effective stock, lead times
and the supplier's closed periods into a reorder verdict and a suggested
order quantity.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence

from reorder_suggestions.core.closed_periods import ClosedPeriodCalendar
from reorder_suggestions.core.demand_forecast import DemandForecastEngine
from reorder_suggestions.core.records import (
    ClosureRisk, LeadTimeAdjustment, ProductSnapshot, ReorderAnalysis,
    ReorderReason, SupplierProfile, TraceStep,
    DEFAULT_LEAD_TIME, DEFAULT_ORDERS_PER_YEAR, NO_SALES_DAYS_REMAINING
)
from reorder_suggestions.core.safety_stock import SafetyStockCalculator
from reorder_suggestions.utils.date_utils import add_days
from reorder_suggestions.utils.math_utils import clamp

logger = logging.getLogger(__name__)

VALID_SERVICE_LEVELS = (90, 95, 99)


def _to_int(value, default):
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default

def _to_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class SuggestionSettings:
    """Global defaults for reorder suggestions."""
    default_orders_per_year: int = DEFAULT_ORDERS_PER_YEAR
    service_level: int = 95
    include_seasonal_analysis: bool = True
    cooldown_days: int = 30
    enable_predictive_ordering: bool = True
    safety_margin_percent: float = 15.0
    use_time_based_prediction: bool = True
    predictive_requires_urgent: bool = False
    dry_run: bool = False
    default_lead_time: int = DEFAULT_LEAD_TIME
    max_workers: int = 1

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'SuggestionSettings':
        """Build settings from a dictionary, clamping values to their valid ranges.

        Keys follow the SUGGESTIONS configuration section.
        """
        service_level = _to_int(values.get('service_level'), 95)
        if service_level not in VALID_SERVICE_LEVELS:
            logger.warning(f"Unsupported service level {values.get('service_level')!r}, using 95")
            service_level = 95

        default_lead_time = _to_int(values.get('default_lead_time'), DEFAULT_LEAD_TIME)
        if default_lead_time < 1:
            default_lead_time = DEFAULT_LEAD_TIME

        return cls(
            default_orders_per_year=int(clamp(
                _to_int(values.get('default_orders_per_year'), DEFAULT_ORDERS_PER_YEAR), 1, 12
            )),
            service_level=service_level,
            include_seasonal_analysis=bool(values.get('include_seasonal_analysis', True)),
            cooldown_days=max(0, _to_int(values.get('min_days_before_reorder'), 30)),
            enable_predictive_ordering=bool(values.get('enable_predictive_ordering', True)),
            safety_margin_percent=clamp(_to_float(values.get('stock_threshold_percent'), 15.0), 0.0, 100.0),
            use_time_based_prediction=bool(values.get('use_time_based_prediction', True)),
            predictive_requires_urgent=bool(values.get('predictive_requires_urgent', False)),
            dry_run=bool(values.get('enable_dry_run', False)),
            default_lead_time=default_lead_time,
            max_workers=max(1, _to_int(values.get('max_workers'), 1)),
        )

    @classmethod
    def from_config(cls, config) -> 'SuggestionSettings':
        return cls.from_dict(config.suggestion_settings)


class ReorderDecisionEngine:
    """Decides per product whether to reorder and how much."""

    def __init__(
        self,
        calendar: ClosedPeriodCalendar,
        forecaster: DemandForecastEngine,
        safety_calculator: SafetyStockCalculator,
        settings: Optional[SuggestionSettings] = None
    ):
        """Initialize the decision engine.

        Args:
            calendar: Closed period calendar
            forecaster: Demand forecast engine
            safety_calculator: Safety stock calculator
            settings: Suggestion settings (defaults when None)
        """
        self.calendar = calendar
        self.forecaster = forecaster
        self.safety_calculator = safety_calculator
        self.settings = settings or SuggestionSettings()

    def base_lead_time(self, supplier: SupplierProfile) -> int:
        """Supplier lead time, or the configured default when unset or invalid."""
        lead_time = _to_int(supplier.lead_time, 0)
        return lead_time if lead_time >= 1 else self.settings.default_lead_time

    def sales_summary(
        self,
        product: ProductSnapshot,
        supplier: SupplierProfile,
        today: Optional[date] = None
    ) -> Dict[str, float]:
        """Units sold in the last year and per order period of the supplier."""
        orders_per_year = supplier.effective_orders_per_year(self.settings.default_orders_per_year)
        return self.forecaster.sales_summary(product, orders_per_year, today or date.today())

    def evaluate_product(
        self,
        product: ProductSnapshot,
        supplier: SupplierProfile,
        today: Optional[date] = None,
        lead_time_adjustment: Optional[LeadTimeAdjustment] = None,
        predictive: Optional[bool] = None
    ) -> ReorderAnalysis:
        """Evaluate one product of a supplier.

        Args:
            product: Product snapshot
            supplier: Supplier profile
            today: Reference date (defaults to today)
            lead_time_adjustment: Precomputed closure adjustment for the supplier
            predictive: Override for predictive ordering (settings when None)

        Returns:
            ReorderAnalysis
        """
        today = today or date.today()
        base_lead_time = self.base_lead_time(supplier)

        if lead_time_adjustment is None:
            lead_time_adjustment = self.calendar.adjusted_lead_time(supplier, base_lead_time, today)
        lead_time = max(base_lead_time, lead_time_adjustment.lead_time)

        days_of_stock_target = supplier.days_of_stock_target(self.settings.default_orders_per_year)

        forecast = self.forecaster.forecast(
            product,
            lead_time,
            days_of_stock_target,
            use_seasonal=self.settings.include_seasonal_analysis,
            today=today,
        )
        safety_stock = self.safety_calculator.safety_stock(
            product, lead_time, self.settings.service_level, today
        )

        if predictive is None:
            predictive = self.settings.enable_predictive_ordering

        trace = list(forecast.trace)
        trace.append(TraceStep('lead_time', {
            'base_lead_time': base_lead_time,
            'lead_time': lead_time,
            'reason': lead_time_adjustment.reason,
            'days_of_stock_target': days_of_stock_target,
        }))
        trace.append(TraceStep('safety_stock', {
            'service_level': self.settings.service_level,
            'safety_stock': safety_stock,
        }))

        return self.decide(
            product,
            supplier,
            forecast=forecast.average_daily_sales,
            safety_stock=safety_stock,
            base_lead_time=base_lead_time,
            lead_time=lead_time,
            days_of_stock_target=days_of_stock_target,
            today=today,
            predictive=predictive,
            trace=trace,
        )

    def decide(
        self,
        product: ProductSnapshot,
        supplier: SupplierProfile,
        forecast: float,
        safety_stock: int,
        base_lead_time: int,
        lead_time: int,
        days_of_stock_target: int,
        today: Optional[date] = None,
        predictive: bool = True,
        trace: Sequence[TraceStep] = ()
    ) -> ReorderAnalysis:
        """Turn forecast, safety stock and lead times into a verdict.

        Args:
            product: Product snapshot
            supplier: Supplier profile (closed periods)
            forecast: Average daily sales
            safety_stock: Safety stock in units
            base_lead_time: Supplier lead time before closure adjustment
            lead_time: Closure-adjusted lead time
            days_of_stock_target: Days one order should cover
            today: Reference date (defaults to today)
            predictive: Whether the safety margin and time-based checks apply
            trace: Steps recorded so far

        Returns:
            ReorderAnalysis with every intermediate value
        """
        today = today or date.today()
        forecast = max(0.0, float(forecast or 0.0))
        safety_stock = max(0, int(safety_stock or 0))
        base_lead_time = base_lead_time if base_lead_time and base_lead_time >= 1 else self.settings.default_lead_time
        lead_time = max(base_lead_time, int(lead_time or base_lead_time))

        effective_stock = product.effective_stock
        reorder_point = int(math.ceil(forecast * lead_time + safety_stock))
        optimal_stock = int(math.ceil(forecast * days_of_stock_target)) + safety_stock
        at_or_below_rop = effective_stock <= reorder_point

        risk: Optional[ClosureRisk] = self.calendar.closure_depletion_risk(
            supplier, effective_stock, forecast, lead_time, today
        )
        needs_closure_order = risk is not None and risk.needs_order

        within_safety_margin = False
        will_reach_rop_soon = False
        predictive_values: Dict[str, Any] = {}
        if predictive:
            threshold = reorder_point * (1 + self.settings.safety_margin_percent / 100.0)
            within_safety_margin = effective_stock <= threshold
            predictive_values['safety_margin_threshold'] = threshold

            if self.settings.use_time_based_prediction and forecast > 0:
                days_until_rop = (effective_stock - reorder_point) / forecast
                # Base lead time so a closure already in the adjusted lead time is not counted twice
                horizon = 2 * base_lead_time
                closed_days = self.calendar.closed_days_between(
                    supplier, add_days(today, 1), add_days(today, horizon), today
                )
                predictive_window = horizon + closed_days
                will_reach_rop_soon = days_until_rop <= predictive_window
                predictive_values.update({
                    'days_until_rop': days_until_rop,
                    'closed_days': closed_days,
                    'predictive_window': predictive_window,
                })

        needs_reorder = forecast > 0 and (
            at_or_below_rop or within_safety_margin or will_reach_rop_soon or needs_closure_order
        )

        if not needs_reorder:
            reason = ReorderReason.NONE
        elif at_or_below_rop:
            reason = ReorderReason.AT_ROP
        elif needs_closure_order:
            reason = ReorderReason.CLOSURE_PERIOD
        elif within_safety_margin:
            reason = ReorderReason.SAFETY_MARGIN
        elif will_reach_rop_soon:
            reason = ReorderReason.PREDICTIVE
        else:
            reason = ReorderReason.UNKNOWN

        suggested_qty = 0
        closure_extra_days = risk.extra_days if needs_closure_order else 0
        if needs_reorder:
            stock_at_arrival = effective_stock - forecast * lead_time
            suggested_qty = max(1, int(math.ceil(optimal_stock - stock_at_arrival)))

            if needs_closure_order:
                suggested_qty += int(math.ceil(forecast * closure_extra_days))

            moq = product.minimum_order_quantity
            if moq > 1 and moq > suggested_qty:
                suggested_qty = moq

        if forecast > 0:
            days_remaining = int(math.floor(effective_stock / forecast))
        else:
            days_remaining = NO_SALES_DAYS_REMAINING

        steps = list(trace)
        steps.append(TraceStep('decision', dict(
            effective_stock=effective_stock,
            reorder_point=reorder_point,
            optimal_stock=optimal_stock,
            at_or_below_rop=at_or_below_rop,
            needs_closure_order=needs_closure_order,
            within_safety_margin=within_safety_margin,
            will_reach_rop_soon=will_reach_rop_soon,
            reason=reason.value,
            suggested_qty=suggested_qty,
            **predictive_values
        )))

        return ReorderAnalysis(
            product_id=product.product_id,
            product_name=product.name,
            sku=product.sku,
            current_stock=product.current_stock,
            inbound_stock=product.inbound_stock,
            effective_stock=effective_stock,
            avg_daily_sales=forecast,
            safety_stock=safety_stock,
            reorder_point=reorder_point,
            optimal_stock=optimal_stock,
            days_remaining=days_remaining,
            suggested_qty=suggested_qty,
            needs_reorder=needs_reorder,
            reason=reason,
            closure_driven=needs_closure_order,
            closure_extra_days=closure_extra_days,
            closure_period_name=risk.period.name if needs_closure_order else None,
            base_lead_time=base_lead_time,
            lead_time=lead_time,
            purchase_price=product.effective_purchase_price,
            trace=tuple(steps),
        )
