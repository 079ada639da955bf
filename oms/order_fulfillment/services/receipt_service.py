"""
Goods Receipt Service for the order fulfillment workflow.

Records what physically arrived for a dispatch, raises a ticket when it
does not match what was sent, and moves the affected orders towards
fulfillment.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..adapters.notifications import NotificationPayload
from ..conf import oms_settings
from ..context import ActorContext, Role
from ..db import translate_concurrency_errors
from ..exceptions import (
    ValidationException, InvalidTransitionException, NotFoundOrForbiddenException,
    GrnAlreadyExistsException, ConcurrencyException
)
from ..models import (
    Assignment, AssignmentStatus, Order, OrderStatus, Dispatch, DispatchStatus,
    GoodsReceiptNote, GoodsReceiptItem, GRNStatus, GRNItemStatus,
    Ticket, TicketStatus, TicketPriority, AuditAction, NotificationPriority
)
from .base import WorkflowService
from .dispatch_service import record_dispatch_status
from .queries import paginate, filter_date_range, get_or_none
from .workflow import OrderWorkflow, validate_dispatch_workflow, validate_ticket_workflow

logger = logging.getLogger(__name__)

TICKET_NUMBER_PATTERN = re.compile(r'^TKT-(\d+)$')


@dataclass
class ReceiptLine:
    """Outcome of verifying one dispatch item."""
    dispatch_item: Any
    received_quantity: int
    damage_reported: bool = False
    damage_description: str = ''
    item_remarks: str = ''

    @property
    def dispatched_quantity(self) -> int:
        return self.dispatch_item.dispatched_quantity

    @property
    def discrepancy(self) -> int:
        return self.received_quantity - self.dispatched_quantity

    @property
    def status(self) -> str:
        if self.damage_reported:
            return GRNItemStatus.DAMAGE_REPORTED
        if self.discrepancy < 0:
            return GRNItemStatus.SHORTAGE_REPORTED
        if self.discrepancy > 0:
            return GRNItemStatus.EXCESS_RECEIVED
        return GRNItemStatus.VERIFIED_OK


@dataclass
class GoodsReceiptResult:
    grn: GoodsReceiptNote
    ticket: Optional[Ticket] = None
    order_updates: List[Dict[str, Any]] = field(default_factory=list)


def grn_status_for(item_statuses: List[str]) -> str:
    """Aggregate item outcomes: all OK, none OK, or a mix."""
    ok_count = sum(1 for status in item_statuses if status == GRNItemStatus.VERIFIED_OK)
    if ok_count == len(item_statuses):
        return GRNStatus.VERIFIED_OK
    if ok_count == 0:
        return GRNStatus.VERIFIED_MISMATCH
    return GRNStatus.PARTIALLY_VERIFIED


def ticket_priority_for(lines: List[ReceiptLine], high_shortage_percent=None) -> str:
    """
    Rank a mismatch.

    Any damage is URGENT. A shortage above the configured share of the
    dispatched quantity is HIGH, any other shortage MEDIUM, and excess
    alone LOW.
    """
    if high_shortage_percent is None:
        high_shortage_percent = oms_settings.TICKET_HIGH_PRIORITY_SHORTAGE_PERCENT

    if any(line.damage_reported for line in lines):
        return TicketPriority.URGENT

    shortages = [line for line in lines if line.discrepancy < 0]
    if any(-line.discrepancy * 100 > high_shortage_percent * line.dispatched_quantity for line in shortages):
        return TicketPriority.HIGH
    if shortages:
        return TicketPriority.MEDIUM
    return TicketPriority.LOW


def describe_mismatch(lines: List[ReceiptLine], operator_remarks: str = '') -> str:
    """Build the ticket description, one line per mismatching item."""
    parts = []
    if operator_remarks:
        parts.append(f"Operator remarks: {operator_remarks}")
        parts.append("")

    for line in lines:
        if line.status == GRNItemStatus.VERIFIED_OK:
            continue

        order_item = line.dispatch_item.assignment.order_item
        label = order_item.product_name
        if order_item.sku:
            label = f"{label} (SKU {order_item.sku})"

        problems = []
        if line.discrepancy < 0:
            problems.append(f"Shortage: {-line.discrepancy} units")
        elif line.discrepancy > 0:
            problems.append(f"Excess: {line.discrepancy} units")
        if line.damage_reported:
            if line.damage_description:
                problems.append(f"Damage reported: {line.damage_description}")
            else:
                problems.append("Damage reported")

        parts.append(f"- {label}, order {order_item.order.order_number}: {'; '.join(problems)}")

    return "\n".join(parts)


class GoodsReceiptService(WorkflowService):
    """Service class for goods receipt verification and tickets."""

    def record_grn(self, actor: ActorContext, dispatch_id, items: List[Dict[str, Any]],
                   operator_remarks: str = '', received_at=None) -> GoodsReceiptResult:
        """
        Record the goods received for a dispatch.

        Args:
            actor: Caller context
            dispatch_id: Dispatch UUID
            items: List of {dispatch_item_id, received_quantity, damage_reported,
                damage_description, item_remarks}, one per dispatch item
            operator_remarks: Free text from the receiving operator
            received_at: When the goods arrived, defaults to now

        Returns:
            GoodsReceiptResult with the GRN, the ticket raised (if any) and
            the order status changes

        Raises:
            NotFoundOrForbiddenException: If the dispatch does not exist
            GrnAlreadyExistsException: If the dispatch already has a GRN
            InvalidTransitionException: If the dispatch failed
            ValidationException: If the items do not cover the dispatch exactly once
        """
        if not items:
            raise ValidationException("GRN must contain at least one item", {"items": "This list may not be empty."})

        try:
            with translate_concurrency_errors('record_grn'), transaction.atomic():
                dispatch = get_or_none(
                    Dispatch.objects.select_for_update().select_related('vendor'), pk=dispatch_id
                )
                if dispatch is None:
                    raise NotFoundOrForbiddenException('Dispatch', dispatch_id)

                existing = GoodsReceiptNote.objects.filter(dispatch=dispatch).first()
                if existing is not None:
                    logger.warning(f"Dispatch {dispatch.id} already has GRN {existing.grn_number}")
                    raise GrnAlreadyExistsException(dispatch.id, existing.grn_number)
                if not dispatch.is_active:
                    raise InvalidTransitionException(
                        current_status=dispatch.status,
                        attempted_status=DispatchStatus.DELIVERED,
                        entity_type="Dispatch"
                    )

                lines = self._match_lines(dispatch, items)
                grn_status = grn_status_for([line.status for line in lines])
                now = timezone.now()

                grn = GoodsReceiptNote.objects.create(
                    grn_number=self._next_grn_number(),
                    dispatch=dispatch,
                    status=grn_status,
                    operator_remarks=operator_remarks or '',
                    received_at=received_at or now,
                    verified_by=actor.user,
                    verified_at=now,
                )
                for line in lines:
                    GoodsReceiptItem.objects.create(
                        grn=grn,
                        dispatch_item=line.dispatch_item,
                        assignment=line.dispatch_item.assignment,
                        dispatched_quantity=line.dispatched_quantity,
                        received_quantity=line.received_quantity,
                        discrepancy_quantity=line.discrepancy,
                        damage_reported=line.damage_reported,
                        damage_description=line.damage_description,
                        item_remarks=line.item_remarks,
                        status=line.status,
                    )

                self.audit.record(
                    AuditAction.GRN_CREATED, 'GoodsReceiptNote', grn.id, actor,
                    metadata={
                        'grn_number': grn.grn_number,
                        'dispatch_id': dispatch.id,
                        'status': grn_status,
                        'items': [
                            {
                                'dispatch_item_id': line.dispatch_item.id,
                                'dispatched_quantity': line.dispatched_quantity,
                                'received_quantity': line.received_quantity,
                                'discrepancy_quantity': line.discrepancy,
                                'damage_reported': line.damage_reported,
                                'status': line.status,
                            }
                            for line in lines
                        ],
                    }
                )
                verified_action = (
                    AuditAction.GRN_VERIFIED_OK if grn_status == GRNStatus.VERIFIED_OK
                    else AuditAction.GRN_VERIFIED_MISMATCH
                )
                self.audit.record(
                    verified_action, 'GoodsReceiptNote', grn.id, actor,
                    metadata={'grn_number': grn.grn_number, 'status': grn_status}
                )

                ticket = None
                if grn_status != GRNStatus.VERIFIED_OK:
                    ticket = self._open_ticket(actor, grn, lines)

                if dispatch.status != DispatchStatus.DELIVERED:
                    validate_dispatch_workflow(dispatch, DispatchStatus.DELIVERED)
                    record_dispatch_status(self.audit, actor, dispatch, DispatchStatus.DELIVERED)

                order_ids = {line.dispatch_item.assignment.order_item.order_id for line in lines}
                order_updates = self._refresh_orders(actor, order_ids, grn)
        except IntegrityError as exc:
            logger.warning(f"Numbering collision while recording GRN for dispatch {dispatch_id}: {exc}")
            raise ConcurrencyException(details={"operation": "record_grn"}) from exc

        logger.info(
            f"GRN {grn.grn_number} recorded for dispatch {dispatch.id} with status {grn_status}"
            + (f", ticket {ticket.ticket_number} raised" if ticket else "")
        )

        if ticket is not None:
            self._notify_mismatch(grn, ticket, dispatch)

        return GoodsReceiptResult(grn=grn, ticket=ticket, order_updates=order_updates)

    def update_ticket_status(self, actor: ActorContext, ticket_id, new_status: str) -> Ticket:
        """
        Move a ticket through its follow-up lifecycle.

        RESOLVED stamps ``resolved_at``; reopening the ticket clears it.
        """
        with transaction.atomic():
            ticket = get_or_none(Ticket.objects.select_for_update(), pk=ticket_id)
            if ticket is None:
                raise NotFoundOrForbiddenException('Ticket', ticket_id)

            validate_ticket_workflow(ticket, new_status)
            if ticket.status == new_status:
                return ticket

            previous_status = ticket.status
            ticket.status = new_status
            if new_status == TicketStatus.RESOLVED:
                ticket.resolved_at = timezone.now()
            elif new_status in [TicketStatus.OPEN, TicketStatus.IN_PROGRESS]:
                ticket.resolved_at = None
            ticket.save(update_fields=['status', 'resolved_at', 'updated_at'])

            self.audit.record(
                AuditAction.TICKET_STATUS_UPDATE, 'Ticket', ticket.id, actor,
                metadata={
                    'ticket_number': ticket.ticket_number,
                    'previous_status': previous_status,
                    'new_status': new_status,
                }
            )

        logger.info(f"Ticket {ticket.ticket_number} moved {previous_status} -> {new_status} by {actor.user_id}")
        return ticket

    def get_grn(self, grn_id) -> GoodsReceiptNote:
        queryset = GoodsReceiptNote.objects.select_related('dispatch__vendor').prefetch_related(
            'items__assignment__order_item__order'
        )
        grn = get_or_none(queryset, pk=grn_id)
        if grn is None:
            raise NotFoundOrForbiddenException('GoodsReceiptNote', grn_id)
        return grn

    def list_grns(self, filters: Dict[str, Any] = None, page=1, limit=None) -> Dict[str, Any]:
        filters = filters or {}
        queryset = GoodsReceiptNote.objects.select_related('dispatch__vendor').prefetch_related('items')

        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('dispatch_id'):
            queryset = queryset.filter(dispatch_id=filters['dispatch_id'])
        if filters.get('vendor_id'):
            queryset = queryset.filter(dispatch__vendor_id=filters['vendor_id'])
        queryset = filter_date_range(queryset, 'received_at', filters.get('start_date'), filters.get('end_date'))

        return paginate(queryset.order_by('-created_at'), page, limit)

    def get_ticket(self, ticket_id) -> Ticket:
        ticket = get_or_none(Ticket.objects.select_related('grn__dispatch'), pk=ticket_id)
        if ticket is None:
            raise NotFoundOrForbiddenException('Ticket', ticket_id)
        return ticket

    def list_tickets(self, filters: Dict[str, Any] = None, page=1, limit=None) -> Dict[str, Any]:
        filters = filters or {}
        queryset = Ticket.objects.select_related('grn')

        if filters.get('status'):
            queryset = queryset.filter(status=filters['status'])
        if filters.get('priority'):
            queryset = queryset.filter(priority=filters['priority'])
        queryset = filter_date_range(queryset, 'created_at', filters.get('start_date'), filters.get('end_date'))

        return paginate(queryset.order_by('-created_at'), page, limit)

    def _match_lines(self, dispatch: Dispatch, items) -> List[ReceiptLine]:
        """Pair every submitted item with exactly one dispatch item of ``dispatch``."""
        dispatch_items = {
            dispatch_item.id: dispatch_item
            for dispatch_item in dispatch.items.select_related('assignment__order_item__order')
        }

        errors = {}
        lines = []
        for index, item in enumerate(items):
            try:
                dispatch_item_id = uuid.UUID(str(item.get('dispatch_item_id')))
            except (TypeError, ValueError, AttributeError):
                errors[f'items[{index}].dispatch_item_id'] = "A valid dispatch item id is required."
                continue

            dispatch_item = dispatch_items.pop(dispatch_item_id, None)
            if dispatch_item is None:
                errors[f'items[{index}].dispatch_item_id'] = "Not an unrecorded item of this dispatch."
                continue

            received = item.get('received_quantity')
            if isinstance(received, bool) or not isinstance(received, int) or received < 0:
                errors[f'items[{index}].received_quantity'] = "Must be a whole number of zero or more."
                continue

            lines.append(ReceiptLine(
                dispatch_item=dispatch_item,
                received_quantity=received,
                damage_reported=bool(item.get('damage_reported', False)),
                damage_description=item.get('damage_description') or '',
                item_remarks=item.get('item_remarks') or '',
            ))

        if dispatch_items:
            errors['items'] = f"{len(dispatch_items)} dispatch item(s) missing from the receipt."
        if errors:
            raise ValidationException("Invalid GRN items", errors)
        return lines

    def _open_ticket(self, actor: ActorContext, grn: GoodsReceiptNote, lines: List[ReceiptLine]) -> Ticket:
        ticket = Ticket.objects.create(
            ticket_number=self._next_ticket_number(),
            grn=grn,
            title=f"GRN Mismatch - {grn.grn_number}",
            description=describe_mismatch(lines, grn.operator_remarks),
            priority=ticket_priority_for(lines),
            status=TicketStatus.OPEN,
            created_by=actor.user,
        )

        self.audit.record(
            AuditAction.TICKET_CREATED, 'Ticket', ticket.id, actor,
            metadata={
                'ticket_number': ticket.ticket_number,
                'grn_number': grn.grn_number,
                'priority': ticket.priority,
            }
        )
        return ticket

    def _refresh_orders(self, actor: ActorContext, order_ids, grn: GoodsReceiptNote) -> List[Dict[str, Any]]:
        """
        Re-evaluate fulfillment of the orders a receipt touched.

        An order is FULFILLED once every assignment that was not declined
        has a receipt item verified OK; otherwise having received anything
        makes it PARTIALLY_FULFILLED.
        """
        updates = []
        for order in Order.objects.select_for_update().filter(pk__in=order_ids).order_by('pk'):
            assignments = Assignment.objects.filter(order_item__order=order).exclude(
                status=AssignmentStatus.VENDOR_DECLINED
            )
            verified = set(
                GoodsReceiptItem.objects.filter(assignment__in=assignments, status=GRNItemStatus.VERIFIED_OK)
                .values_list('assignment_id', flat=True)
            )
            if verified == set(assignments.values_list('id', flat=True)):
                target = OrderStatus.FULFILLED
            else:
                target = OrderStatus.PARTIALLY_FULFILLED

            if order.status == target:
                continue
            if not OrderWorkflow.can_transition_to(order, target):
                logger.warning(f"Order {order.order_number} left in {order.status} after GRN {grn.grn_number}")
                continue

            previous_status = order.status
            order.status = target
            order.save(update_fields=['status', 'updated_at'])

            self.audit.record(
                AuditAction.ORDER_STATUS_UPDATE, 'Order', order.id, actor,
                metadata={
                    'order_number': order.order_number,
                    'previous_status': previous_status,
                    'new_status': target,
                    'grn_number': grn.grn_number,
                }
            )
            updates.append({
                'order_id': order.id,
                'order_number': order.order_number,
                'previous_status': previous_status,
                'new_status': target,
            })
            logger.info(f"Order {order.order_number} moved {previous_status} -> {target} by GRN {grn.grn_number}")
        return updates

    def _next_grn_number(self) -> str:
        prefix = f"GRN-{timezone.now().year}-"
        count = GoodsReceiptNote.objects.filter(grn_number__startswith=prefix).count()
        return f"{prefix}{count + 1:04d}"

    def _next_ticket_number(self) -> str:
        # Zero-padded, so the text order is the numeric order
        latest = (
            Ticket.objects.filter(ticket_number__startswith='TKT-')
            .order_by('-ticket_number')
            .values_list('ticket_number', flat=True)
            .first()
        )
        match = TICKET_NUMBER_PATTERN.match(latest or '')
        return f"TKT-{int(match.group(1)) + 1 if match else 1:06d}"

    def _notify_mismatch(self, grn: GoodsReceiptNote, ticket: Ticket, dispatch: Dispatch) -> None:
        priority = (
            NotificationPriority.URGENT if ticket.priority in [TicketPriority.URGENT, TicketPriority.HIGH]
            else NotificationPriority.NORMAL
        )
        payload = NotificationPayload(
            title="Goods receipt mismatch",
            body=f"{grn.grn_number} for AWB {dispatch.awb_number} did not match; ticket {ticket.ticket_number} opened.",
            priority=priority,
            data={
                'grn_id': str(grn.id),
                'ticket_id': str(ticket.id),
                'dispatch_id': str(dispatch.id),
                'ticket_priority': ticket.priority,
            },
        )
        self.notifications.to_roles_on_commit([Role.ADMIN, Role.OPS], payload)
        self.notifications.to_users_on_commit([dispatch.vendor.user_id], payload)
