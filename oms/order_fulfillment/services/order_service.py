"""
Order Service for the order fulfillment workflow.

Handles the order aggregate: creation with priced line items, edits and
deletion before any vendor has acted, vendor (re)assignment and cancellation.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Any, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Q

from ..adapters.notifications import NotificationPayload
from ..adapters.vendor_directory import VendorDirectoryInterface, VendorRecord
from ..conf import oms_settings
from ..context import ActorContext
from ..db import serializable_atomic, translate_concurrency_errors
from ..exceptions import (
    ValidationException, NotFoundOrForbiddenException, OrderLockedException,
    DuplicateOrderNumberException, VendorNotEligibleException, ConflictException
)
from ..models import (
    Order, OrderItem, OrderStatus, OrderSource, Assignment, AssignmentStatus,
    AuditAction, DispatchItem, DispatchStatus, NotificationPriority
)
from .base import WorkflowService
from .queries import paginate, filter_date_range, get_or_none
from .workflow import validate_order_workflow

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _positive_int(value) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError("not an integer")
    if isinstance(value, (float, Decimal)) and value != int(value):
        raise ValueError("not an integer")
    number = int(value)
    if number <= 0:
        raise ValueError("not positive")
    return number


def _positive_price(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError("not a number")
    try:
        price = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("not a number")
    if not price.is_finite() or price <= 0:
        raise ValueError("not positive")
    return price


def clean_order_items(items) -> List[Dict[str, Any]]:
    """
    Validate raw line items and normalize them.

    Every item needs a product name or SKU, an integer quantity above zero
    and a price above zero.

    Raises:
        ValidationException: Listing every invalid field
    """
    if not items:
        raise ValidationException("Order must contain at least one item", {"items": "This list may not be empty."})

    cleaned = []
    errors = {}
    for index, item in enumerate(items):
        sku = (item.get('sku') or '').strip()
        product_name = (item.get('product_name') or '').strip() or sku
        if not product_name:
            errors[f'items[{index}].product_name'] = "Product name or SKU is required."

        try:
            quantity = _positive_int(item.get('quantity'))
        except (TypeError, ValueError, OverflowError):
            errors[f'items[{index}].quantity'] = "Quantity must be a whole number greater than 0."
            quantity = None

        try:
            price = _positive_price(item.get('price_per_unit'))
        except (TypeError, ValueError):
            errors[f'items[{index}].price_per_unit'] = "Price per unit must be greater than 0."
            price = None

        cleaned.append({
            'product_name': product_name,
            'sku': sku,
            'quantity': quantity,
            'price_per_unit': price,
        })

    if errors:
        raise ValidationException("Invalid order items", errors)

    return cleaned


class OrderService(WorkflowService):
    """Service class for order aggregate operations."""

    def __init__(self, vendor_directory: VendorDirectoryInterface = None, audit=None, notifier=None):
        super().__init__(audit=audit, notifier=notifier)
        self.vendor_directory = vendor_directory or oms_settings.build('VENDOR_DIRECTORY')

    def create_order(self, actor: ActorContext, order_number: str, items: List[Dict[str, Any]],
                     vendor_id=None, source: str = OrderSource.MANUAL_ENTRY) -> Order:
        """
        Create a new order with items, seeding assignments when a vendor is given.

        Args:
            actor: Caller context
            order_number: Unique business key
            items: Dicts with product_name, sku, quantity and price_per_unit
            vendor_id: Optional vendor to assign every item to
            source: How the order entered the system

        Returns:
            Created Order instance

        Raises:
            ValidationException: If order data is invalid
            DuplicateOrderNumberException: If the order number is taken
            VendorNotEligibleException: If the vendor is missing, inactive or unverified
        """
        order_number = (order_number or '').strip()
        if not order_number:
            raise ValidationException("Order number is required", {"order_number": "This field is required."})

        cleaned_items = clean_order_items(items)
        vendor = self.require_eligible_vendor(vendor_id) if vendor_id is not None else None

        try:
            with translate_concurrency_errors('create_order'), transaction.atomic():
                if Order.objects.filter(order_number=order_number).exists():
                    raise DuplicateOrderNumberException(order_number)

                order = Order.objects.create(
                    order_number=order_number,
                    status=OrderStatus.RECEIVED,
                    source=source,
                    primary_vendor_id=vendor.id if vendor else None,
                    created_by=actor.user,
                )
                self._create_items(order, cleaned_items, vendor, actor)

                self.audit.record(
                    AuditAction.ORDER_CREATE, 'Order', order.id, actor,
                    metadata={
                        'order_number': order.order_number,
                        'primary_vendor_id': vendor.id if vendor else None,
                        'item_count': len(cleaned_items),
                        'total_value': order.total_value,
                        'source': order.source,
                    }
                )
        except IntegrityError as exc:
            if Order.objects.filter(order_number=order_number).exists():
                raise DuplicateOrderNumberException(order_number) from exc
            raise

        logger.info(f"Order {order.order_number} created with {len(cleaned_items)} items by {actor.user_id}")

        if vendor:
            self._notify_assignment(order, vendor, actor)
        return order

    def update_order(self, actor: ActorContext, order_id, items: List[Dict[str, Any]], vendor_id=None) -> Order:
        """
        Replace the items (and their assignments) of an order nobody has acted on.

        Args:
            actor: Caller context
            order_id: Order UUID
            items: New line items, validated as in create_order
            vendor_id: Vendor for the new assignments; None keeps the current one

        Returns:
            Updated Order instance

        Raises:
            OrderLockedException: If the order left RECEIVED or a vendor confirmed
        """
        cleaned_items = clean_order_items(items)

        with translate_concurrency_errors('update_order'), transaction.atomic():
            order = self._lock_order(order_id)
            self._ensure_unlocked(order, self._lock_assignments(order))

            if vendor_id is None:
                vendor_id = order.primary_vendor_id
            vendor = self.require_eligible_vendor(vendor_id) if vendor_id is not None else None

            previous = {
                'item_count': order.items.count(),
                'total_value': order.total_value,
                'primary_vendor_id': order.primary_vendor_id,
            }

            # Items cascade to their assignments
            OrderItem.objects.filter(order=order).delete()
            order.primary_vendor_id = vendor.id if vendor else None
            self._create_items(order, cleaned_items, vendor, actor)

            self.audit.record(
                AuditAction.ORDER_UPDATE, 'Order', order.id, actor,
                metadata={
                    'order_number': order.order_number,
                    'previous': previous,
                    'current': {
                        'item_count': len(cleaned_items),
                        'total_value': order.total_value,
                        'primary_vendor_id': order.primary_vendor_id,
                    },
                }
            )

        logger.info(f"Order {order.order_number} updated by {actor.user_id}")
        return order

    def delete_order(self, actor: ActorContext, order_id) -> Dict[str, Any]:
        """
        Delete an order nobody has acted on.

        Runs at the strictest isolation level with the order and its
        assignments locked, so a vendor confirmation racing the delete either
        lands first (and the delete fails) or finds the assignment gone.

        Raises:
            NotFoundOrForbiddenException: If the order does not exist
            OrderLockedException: If the order left RECEIVED or a vendor confirmed
        """
        with serializable_atomic('delete_order'):
            order = self._lock_order(order_id)
            assignments = self._lock_assignments(order)
            self._ensure_unlocked(order, assignments)

            snapshot = {
                'order_number': order.order_number,
                'status': order.status,
                'total_value': order.total_value,
                'item_count': order.items.count(),
                'assignment_count': len(assignments),
                'primary_vendor_id': order.primary_vendor_id,
            }
            self.audit.record(AuditAction.ORDER_DELETE, 'Order', order.id, actor, metadata=snapshot)
            order.delete()

        logger.info(f"Order {snapshot['order_number']} deleted by {actor.user_id}")
        return snapshot

    def assign_vendor(self, actor: ActorContext, order_id, vendor_id) -> Order:
        """
        Assign every item of an order to a vendor, replacing existing assignments.

        Previous assignment rows are discarded; only the audit trail keeps them.

        Raises:
            VendorNotEligibleException: If the vendor cannot receive work
            OrderLockedException: If a vendor already confirmed part of the order
            InvalidTransitionException: If the order is past assignment
        """
        vendor = self.require_eligible_vendor(vendor_id)

        with translate_concurrency_errors('assign_vendor'), transaction.atomic():
            order = self._lock_order(order_id)
            assignments = self._lock_assignments(order)

            if order.status not in [OrderStatus.RECEIVED, OrderStatus.ASSIGNED]:
                raise OrderLockedException(order.order_number, f"order is {order.status}")
            if any(a.confirmed_quantity is not None for a in assignments):
                raise OrderLockedException(order.order_number, "a vendor has already confirmed items")

            validate_order_workflow(order, OrderStatus.ASSIGNED)

            previous_status = order.status
            previous_vendor_ids = sorted({a.vendor_id for a in assignments})

            Assignment.objects.filter(pk__in=[a.pk for a in assignments]).delete()
            items = list(order.items.all())
            for item in items:
                Assignment.objects.create(
                    order_item=item,
                    vendor_id=vendor.id,
                    assigned_quantity=item.quantity,
                    assigned_by=actor.user,
                )

            order.primary_vendor_id = vendor.id
            order.status = OrderStatus.ASSIGNED
            order.save(update_fields=['primary_vendor', 'status', 'updated_at'])

            self.audit.record(
                AuditAction.ORDER_VENDOR_ASSIGN, 'Order', order.id, actor,
                metadata={
                    'order_number': order.order_number,
                    'previous_status': previous_status,
                    'previous_vendor_ids': previous_vendor_ids,
                    'vendor_id': vendor.id,
                    'assignment_count': len(items),
                }
            )

        logger.info(f"Order {order.order_number} assigned to vendor {vendor.id} by {actor.user_id}")
        self._notify_assignment(order, vendor, actor)
        return order

    def cancel_order(self, actor: ActorContext, order_id, reason: str = "") -> Order:
        """
        Cancel an order that has nothing on the road.

        Raises:
            InvalidTransitionException: If the order can no longer be cancelled
            ConflictException: If an active dispatch carries items of the order
        """
        with translate_concurrency_errors('cancel_order'), transaction.atomic():
            order = self._lock_order(order_id)
            validate_order_workflow(order, OrderStatus.CANCELLED)

            dispatched = DispatchItem.objects.filter(
                assignment__order_item__order=order
            ).exclude(dispatch__status=DispatchStatus.FAILED).exists()
            if dispatched:
                raise ConflictException(
                    f"Order {order.order_number} has dispatched items and cannot be cancelled",
                    "ORDER_HAS_DISPATCHES",
                    {"order_number": order.order_number}
                )

            old_status = order.status
            order.status = OrderStatus.CANCELLED
            order.save(update_fields=['status', 'updated_at'])

            self.audit.record(
                AuditAction.ORDER_CANCEL, 'Order', order.id, actor,
                metadata={
                    'order_number': order.order_number,
                    'previous_status': old_status,
                    'reason': reason,
                }
            )

        logger.info(f"Order {order.order_number} cancelled by {actor.user_id}")
        return order

    def get_order(self, order_id) -> Order:
        order = get_or_none(
            Order.objects.select_related('primary_vendor', 'created_by')
            .prefetch_related('items__assignments__vendor'),
            pk=order_id
        )
        if order is None:
            raise NotFoundOrForbiddenException('Order', order_id)
        return order

    def list_orders(self, filters: Dict[str, Any] = None, page=1, limit=None) -> Dict[str, Any]:
        """
        List orders, newest first.

        Args:
            filters: Optional status, vendor_id, search, start_date and end_date
            page: 1-based page number
            limit: Page size

        Returns:
            Page dict (see queries.paginate)
        """
        filters = filters or {}
        queryset = Order.objects.select_related('primary_vendor', 'created_by').prefetch_related('items')

        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('vendor_id'):
            vendor_id = filters['vendor_id']
            queryset = queryset.filter(
                Q(primary_vendor_id=vendor_id) | Q(items__assignments__vendor_id=vendor_id)
            ).distinct()
        if filters.get('search'):
            search = filters['search']
            queryset = queryset.filter(
                Q(order_number__icontains=search) | Q(primary_vendor__company_name__icontains=search)
            )
        queryset = filter_date_range(queryset, 'created_at', filters.get('start_date'), filters.get('end_date'))

        return paginate(queryset.order_by('-created_at'), page, limit)

    def get_order_summary(self, order_id) -> Dict[str, Any]:
        """
        Get order progress across its assignments and dispatches.

        Args:
            order_id: Order UUID

        Returns:
            Order summary with per-item assignment and dispatch quantities
        """
        order = self.get_order(order_id)

        items_summary = []
        status_counts = {status: 0 for status in AssignmentStatus.values}
        for item in order.items.all():
            assignments = list(item.assignments.all())
            for assignment in assignments:
                status_counts[assignment.status] += 1

            dispatched = sum(
                di.dispatched_quantity
                for di in DispatchItem.objects.filter(assignment__order_item=item)
                .exclude(dispatch__status=DispatchStatus.FAILED)
            )
            items_summary.append({
                'id': item.id,
                'sku': item.sku,
                'product_name': item.product_name,
                'quantity': item.quantity,
                'total_price': item.total_price,
                'quantity_confirmed': sum(a.confirmed_quantity or 0 for a in assignments),
                'quantity_dispatched': dispatched,
                'assignment_statuses': [a.status for a in assignments],
            })

        return {
            'order': {
                'id': order.id,
                'order_number': order.order_number,
                'status': order.status,
                'total_value': order.total_value,
                'primary_vendor': order.primary_vendor.company_name if order.primary_vendor else None,
                'created_at': order.created_at,
            },
            'items': items_summary,
            'assignment_status_counts': {k: v for k, v in status_counts.items() if v},
        }

    def require_eligible_vendor(self, vendor_id) -> VendorRecord:
        """
        Resolve a vendor that may receive assignments.

        Raises:
            VendorNotEligibleException: If the vendor is missing, inactive or unverified
        """
        vendor = self.vendor_directory.find_vendor(vendor_id)
        if vendor is None:
            raise VendorNotEligibleException(vendor_id, "vendor not found")
        if not vendor.is_eligible:
            reason = "vendor is not active" if not vendor.active else "vendor is not verified"
            raise VendorNotEligibleException(vendor_id, reason)
        return vendor

    def _create_items(self, order: Order, cleaned_items, vendor: Optional[VendorRecord], actor: ActorContext):
        total_value = Decimal('0.00')
        for item_data in cleaned_items:
            item = OrderItem.objects.create(order=order, **item_data)
            total_value += item.total_price

            if vendor:
                Assignment.objects.create(
                    order_item=item,
                    vendor_id=vendor.id,
                    assigned_quantity=item.quantity,
                    assigned_by=actor.user,
                )

        order.total_value = total_value
        order.save(update_fields=['total_value', 'primary_vendor', 'updated_at'])

    def _lock_order(self, order_id) -> Order:
        order = get_or_none(Order.objects.select_for_update(), pk=order_id)
        if order is None:
            raise NotFoundOrForbiddenException('Order', order_id)
        return order

    def _lock_assignments(self, order: Order) -> List[Assignment]:
        return list(
            Assignment.objects.select_for_update(of=('self',)).filter(order_item__order=order)
        )

    def _ensure_unlocked(self, order: Order, assignments: List[Assignment]) -> None:
        if not order.is_editable:
            logger.warning(f"Rejected change to order {order.order_number} in status {order.status}")
            raise OrderLockedException(order.order_number, f"order is {order.status}")
        if any(a.confirmed_quantity is not None for a in assignments):
            logger.warning(f"Rejected change to order {order.order_number}: vendor already confirmed")
            raise OrderLockedException(order.order_number, "a vendor has already confirmed items")

    def _notify_assignment(self, order: Order, vendor: VendorRecord, actor: ActorContext) -> None:
        data = {'order_id': str(order.id), 'order_number': order.order_number}
        self.notifications.to_users_on_commit([vendor.user_id], NotificationPayload(
            title="New order assigned",
            body=f"Order {order.order_number} worth {order.total_value} has been assigned to {vendor.company_name}. "
                 f"Please confirm the items.",
            priority=NotificationPriority.URGENT,
            data=data,
        ))
        self.notifications.to_users_on_commit([order.created_by_id or actor.user_id], NotificationPayload(
            title="Order assigned to vendor",
            body=f"Order {order.order_number} was assigned to {vendor.company_name}.",
            priority=NotificationPriority.NORMAL,
            data=data,
        ))
