from .records import (
    ClosedPeriod, ClosureRisk, DemandForecast, LeadTimeAdjustment,
    NormalizedClosedPeriod, OpenDateResult, ProductSnapshot, ReorderAnalysis,
    ReorderReason, SeasonalValidation, SuggestionBatch, SupplierProfile,
    SupplierResult, SupplierStatus, TraceStep
)
from .closed_periods import ClosedPeriodCalendar, normalize_day_month, denormalize_day_month
from .demand_forecast import DemandForecastEngine
from .safety_stock import SafetyStockCalculator
from .reorder_decision import ReorderDecisionEngine, SuggestionSettings

__all__ = [
    'ClosedPeriod',
    'ClosureRisk',
    'DemandForecast',
    'LeadTimeAdjustment',
    'NormalizedClosedPeriod',
    'OpenDateResult',
    'ProductSnapshot',
    'ReorderAnalysis',
    'ReorderReason',
    'SeasonalValidation',
    'SuggestionBatch',
    'SupplierProfile',
    'SupplierResult',
    'SupplierStatus',
    'TraceStep',
    'ClosedPeriodCalendar',
    'normalize_day_month',
    'denormalize_day_month',
    'DemandForecastEngine',
    'SafetyStockCalculator',
    'ReorderDecisionEngine',
    'SuggestionSettings'
]
