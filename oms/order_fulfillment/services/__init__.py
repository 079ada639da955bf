"""
Order Fulfillment Workflow Services
"""

from .workflow import (
    validate_order_workflow, validate_assignment_workflow,
    validate_dispatch_workflow, validate_ticket_workflow
)
from .audit import AuditLedger, DatabaseAuditLedger, InMemoryAuditLedger
from .order_service import OrderService
from .assignment_service import AssignmentService, AssignmentUpdateResult
from .dispatch_service import DispatchService
from .receipt_service import GoodsReceiptService, GoodsReceiptResult

__all__ = [
    # Workflow validators
    'validate_order_workflow', 'validate_assignment_workflow',
    'validate_dispatch_workflow', 'validate_ticket_workflow',

    # Audit ledger
    'AuditLedger', 'DatabaseAuditLedger', 'InMemoryAuditLedger',

    # Services
    'OrderService', 'AssignmentService', 'AssignmentUpdateResult',
    'DispatchService', 'GoodsReceiptService', 'GoodsReceiptResult',
]
