"""
Order Fulfillment Models
"""

from .order import Order, OrderStatus, OrderSource
from .order_item import OrderItem, line_total
from .assignment import Assignment, AssignmentStatus, CONFIRMED_STATUSES
from .dispatch import (
    Dispatch, DispatchStatus, DispatchItem, Attachment,
    DEFAULT_AWB_NUMBER, DEFAULT_LOGISTICS_PARTNER
)
from .receipt import (
    GoodsReceiptNote, GRNStatus, GoodsReceiptItem, GRNItemStatus,
    Ticket, TicketStatus, TicketPriority
)
from .audit import AuditLog, AuditAction, ImmutableAuditLogError
from .notification import Notification, NotificationPriority

__all__ = [
    # Order models
    'Order', 'OrderStatus', 'OrderSource',
    'OrderItem', 'line_total',

    # Assignment models
    'Assignment', 'AssignmentStatus', 'CONFIRMED_STATUSES',

    # Dispatch models
    'Dispatch', 'DispatchStatus', 'DispatchItem', 'Attachment',
    'DEFAULT_AWB_NUMBER', 'DEFAULT_LOGISTICS_PARTNER',

    # Goods receipt models
    'GoodsReceiptNote', 'GRNStatus', 'GoodsReceiptItem', 'GRNItemStatus',
    'Ticket', 'TicketStatus', 'TicketPriority',

    # Audit
    'AuditLog', 'AuditAction', 'ImmutableAuditLogError',

    # Notifications
    'Notification', 'NotificationPriority',
]
