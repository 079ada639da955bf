"""
Order Fulfillment Workflow Views
"""

from .order_views import OrderViewSet
from .assignment_views import VendorAssignmentViewSet
from .dispatch_views import DispatchViewSet
from .receipt_views import GoodsReceiptViewSet, TicketViewSet
from .audit_views import AuditLogViewSet, NotificationViewSet

__all__ = [
    'OrderViewSet',
    'VendorAssignmentViewSet',
    'DispatchViewSet',
    'GoodsReceiptViewSet',
    'TicketViewSet',
    'AuditLogViewSet',
    'NotificationViewSet',
]
