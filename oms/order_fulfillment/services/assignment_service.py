"""
Assignment Service for the order fulfillment workflow.

Guards the single vendor decision on each assignment: confirm in full,
confirm part of the quantity, or decline.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

from django.utils import timezone

from ..adapters.notifications import NotificationPayload
from ..conf import oms_settings
from ..context import ActorContext, Role
from ..db import bounded_atomic
from ..exceptions import (
    ValidationException, InvalidQuantityException, NotFoundOrForbiddenException,
    AlreadyProcessedException, OrderLockedException
)
from ..models import (
    Assignment, AssignmentStatus, CONFIRMED_STATUSES, Order, OrderStatus,
    AuditAction, NotificationPriority
)
from .base import WorkflowService
from .queries import paginate, filter_date_range, get_or_none
from .workflow import AssignmentWorkflow, validate_assignment_workflow, validate_order_workflow

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = {
    AssignmentStatus.VENDOR_CONFIRMED_FULL: AuditAction.ASSIGNMENT_CONFIRMED,
    AssignmentStatus.VENDOR_CONFIRMED_PARTIAL: AuditAction.ASSIGNMENT_PARTIAL_CONFIRMED,
    AssignmentStatus.VENDOR_DECLINED: AuditAction.ASSIGNMENT_DECLINED,
}

# Order statuses a first confirmation moves forward to PROCESSING
ESCALATABLE_ORDER_STATUSES = [OrderStatus.RECEIVED, OrderStatus.ASSIGNED]


@dataclass
class AssignmentUpdateResult:
    assignment: Assignment
    order_status_updated: bool
    new_order_status: Optional[str]


class AssignmentService(WorkflowService):
    """Service class for vendor decisions on assignments."""

    def update_status(self, actor: ActorContext, assignment_id, vendor_id, new_status: str,
                      confirmed_quantity: Optional[int] = None, remarks: Optional[str] = None
                      ) -> AssignmentUpdateResult:
        """
        Record a vendor's decision on one of its assignments.

        Args:
            actor: Caller context
            assignment_id: Assignment UUID
            vendor_id: Vendor acting; must own the assignment
            new_status: VENDOR_CONFIRMED_FULL, VENDOR_CONFIRMED_PARTIAL or VENDOR_DECLINED
            confirmed_quantity: Required for a partial confirmation
            remarks: Optional vendor remarks

        Returns:
            AssignmentUpdateResult with the updated assignment and whether the
            order was escalated

        Raises:
            NotFoundOrForbiddenException: If the assignment is missing or belongs to another vendor
            AlreadyProcessedException: If the assignment was already decided
            InvalidQuantityException: If a partial quantity is out of range
            ConcurrencyException: If the transaction timed out on a lock
        """
        if new_status not in AssignmentWorkflow.VENDOR_DECISIONS:
            raise ValidationException(
                f"Status must be one of {', '.join(AssignmentWorkflow.VENDOR_DECISIONS)}",
                {"status": new_status}
            )
        if new_status == AssignmentStatus.VENDOR_CONFIRMED_PARTIAL and confirmed_quantity is None:
            raise InvalidQuantityException(
                "Confirmed quantity is required for a partial confirmation",
                {"confirmed_quantity": None}
            )

        with bounded_atomic('update_assignment_status',
                            lock_timeout_ms=oms_settings.ASSIGNMENT_LOCK_TIMEOUT_MS,
                            statement_timeout_ms=oms_settings.ASSIGNMENT_STATEMENT_TIMEOUT_MS):
            # Lock the order before the assignment, the same order delete_order uses
            located = self._get_scoped(assignment_id, vendor_id)
            order = get_or_none(Order.objects.select_for_update(), pk=located.order_item.order_id)
            if order is None:
                raise NotFoundOrForbiddenException('Assignment', assignment_id)
            assignment = self._get_scoped(assignment_id, vendor_id, lock=True)

            if not assignment.is_pending:
                logger.warning(f"Assignment {assignment.id} already processed ({assignment.status})")
                raise AlreadyProcessedException(assignment.id, assignment.status)
            if order.is_terminal:
                raise OrderLockedException(order.order_number, f"order is {order.status}")

            final_quantity = self._final_quantity(assignment, new_status, confirmed_quantity)
            validate_assignment_workflow(assignment, new_status)

            previous_status = assignment.status
            self.compare_and_set(assignment, new_status, final_quantity, remarks)

            order_status_updated = False
            if new_status in CONFIRMED_STATUSES and order.status in ESCALATABLE_ORDER_STATUSES:
                validate_order_workflow(order, OrderStatus.PROCESSING)
                order.status = OrderStatus.PROCESSING
                order.save(update_fields=['status', 'updated_at'])
                order_status_updated = True

            self.audit.record(
                AUDIT_ACTIONS[new_status], 'Assignment', assignment.id, actor,
                metadata={
                    'previous_status': previous_status,
                    'new_status': new_status,
                    'assigned_quantity': assignment.assigned_quantity,
                    'confirmed_quantity': final_quantity,
                    'vendor_id': assignment.vendor_id,
                    'vendor_remarks': assignment.vendor_remarks,
                    'order_number': order.order_number,
                    'order_status_updated': order_status_updated,
                    'new_order_status': order.status if order_status_updated else None,
                }
            )

        logger.info(
            f"Assignment {assignment.id} for order {order.order_number} moved "
            f"{previous_status} -> {new_status} by vendor {vendor_id}"
        )

        if new_status in CONFIRMED_STATUSES:
            self._notify_confirmation(assignment, order)

        return AssignmentUpdateResult(
            assignment=assignment,
            order_status_updated=order_status_updated,
            new_order_status=order.status if order_status_updated else None,
        )

    def compare_and_set(self, assignment: Assignment, new_status: str, confirmed_quantity, remarks) -> None:
        """
        Write the vendor decision only if the row is still pending.

        The update is conditioned on the status read earlier, so of two
        concurrent decisions at most one changes the row.

        Raises:
            AlreadyProcessedException: If another decision got there first
        """
        now = timezone.now()
        vendor_remarks = remarks if remarks is not None else assignment.vendor_remarks

        updated = Assignment.objects.filter(
            pk=assignment.pk,
            vendor_id=assignment.vendor_id,
            status=AssignmentStatus.PENDING_CONFIRMATION,
        ).update(
            status=new_status,
            confirmed_quantity=confirmed_quantity,
            vendor_remarks=vendor_remarks,
            vendor_action_at=now,
        )
        if updated != 1:
            current = Assignment.objects.filter(pk=assignment.pk).values_list('status', flat=True).first()
            raise AlreadyProcessedException(assignment.pk, current)

        assignment.status = new_status
        assignment.confirmed_quantity = confirmed_quantity
        assignment.vendor_remarks = vendor_remarks
        assignment.vendor_action_at = now

    def get_vendor_assignment(self, assignment_id, vendor_id) -> Assignment:
        return self._get_scoped(assignment_id, vendor_id)

    def list_vendor_assignments(self, vendor_id, filters: Dict[str, Any] = None, page=1, limit=None
                                ) -> Dict[str, Any]:
        """
        List one vendor's assignments, newest first.

        Args:
            vendor_id: Vendor whose assignments to list
            filters: Optional status, order_id, order_number, start_date and end_date
            page: 1-based page number
            limit: Page size
        """
        filters = filters or {}
        queryset = Assignment.objects.select_related('order_item__order', 'vendor').filter(vendor_id=vendor_id)

        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('order_id'):
            queryset = queryset.filter(order_item__order_id=filters['order_id'])
        if filters.get('order_number'):
            queryset = queryset.filter(order_item__order__order_number__icontains=filters['order_number'])
        queryset = filter_date_range(queryset, 'assigned_at', filters.get('start_date'), filters.get('end_date'))

        return paginate(queryset.order_by('-assigned_at'), page, limit)

    def _get_scoped(self, assignment_id, vendor_id, lock: bool = False) -> Assignment:
        queryset = Assignment.objects.select_related('order_item__order')
        if lock:
            queryset = queryset.select_for_update(of=('self',))

        assignment = get_or_none(queryset, pk=assignment_id, vendor_id=vendor_id)
        if assignment is None:
            raise NotFoundOrForbiddenException('Assignment', assignment_id)
        return assignment

    def _final_quantity(self, assignment: Assignment, new_status: str, confirmed_quantity):
        if new_status == AssignmentStatus.VENDOR_CONFIRMED_FULL:
            return assignment.assigned_quantity
        if new_status == AssignmentStatus.VENDOR_DECLINED:
            return None

        quantity = confirmed_quantity
        if isinstance(quantity, str) and quantity.strip().isdigit():
            quantity = int(quantity)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidQuantityException(
                "Confirmed quantity must be a whole number",
                {"confirmed_quantity": confirmed_quantity}
            )
        if quantity <= 0 or quantity > assignment.assigned_quantity:
            raise InvalidQuantityException(
                f"Confirmed quantity must be between 1 and {assignment.assigned_quantity}",
                {"confirmed_quantity": quantity, "assigned_quantity": assignment.assigned_quantity}
            )
        return quantity

    def _notify_confirmation(self, assignment: Assignment, order: Order) -> None:
        item = assignment.order_item
        vendor_name = assignment.vendor.company_name
        if assignment.status == AssignmentStatus.VENDOR_CONFIRMED_FULL:
            summary = f"{vendor_name} confirmed all {assignment.confirmed_quantity} units"
        else:
            summary = (f"{vendor_name} confirmed {assignment.confirmed_quantity} of "
                       f"{assignment.assigned_quantity} units")

        self.notifications.to_roles_on_commit([Role.ADMIN, Role.ACCOUNTS], NotificationPayload(
            title="Vendor confirmed assignment",
            body=f"{summary} of {item.product_name} for order {order.order_number}.",
            priority=NotificationPriority.NORMAL,
            data={
                'assignment_id': str(assignment.id),
                'order_id': str(order.id),
                'order_number': order.order_number,
                'status': assignment.status,
            },
        ))
