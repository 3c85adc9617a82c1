from .sales_ledger import SqlSalesLedger
from .directory import SqlInventoryDirectory, SqlOrderWriter
from .supplier_assignment import SupplierAssignmentService
from .suggestion_service import SuggestionOrchestrator, build_orchestrator

__all__ = [
    'SqlSalesLedger',
    'SqlInventoryDirectory',
    'SqlOrderWriter',
    'SupplierAssignmentService',
    'SuggestionOrchestrator',
    'build_orchestrator'
]
