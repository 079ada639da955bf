"""
Dispatch Service for the order fulfillment workflow.

Handles the logistics handoff of confirmed assignments: dispatch creation,
proof-of-dispatch uploads and carrier status progression.
"""

import logging
import uuid
from typing import Dict, Any, List

from django.db import transaction
from django.utils import timezone

from ..adapters.file_store import FileStoreInterface
from ..adapters.notifications import NotificationPayload
from ..conf import oms_settings
from ..context import ActorContext, Role
from ..exceptions import (
    ValidationException, InvalidQuantityException, InvalidTransitionException,
    NotFoundOrForbiddenException, AssignmentAlreadyDispatchedException,
    OrderLockedException, InternalErrorException
)
from ..models import (
    Assignment, AssignmentStatus, Order, Dispatch, DispatchItem, DispatchStatus,
    Attachment, AuditAction, NotificationPriority,
    DEFAULT_AWB_NUMBER, DEFAULT_LOGISTICS_PARTNER
)
from .base import WorkflowService
from .queries import paginate, filter_date_range, get_or_none
from .workflow import validate_assignment_workflow, validate_dispatch_workflow

logger = logging.getLogger(__name__)

DISPATCHABLE_STATUSES = [
    AssignmentStatus.VENDOR_CONFIRMED_FULL,
    AssignmentStatus.VENDOR_CONFIRMED_PARTIAL,
    AssignmentStatus.INVOICED,
]


def clean_dispatch_items(items) -> List[Dict[str, Any]]:
    """
    Validate the requested dispatch lines.

    Raises:
        ValidationException: If the list is empty, repeats an assignment or
            holds a malformed line
    """
    if not items:
        raise ValidationException("Dispatch must contain at least one item", {"items": "This list may not be empty."})

    errors = {}
    cleaned = []
    seen = set()

    for index, item in enumerate(items):
        try:
            assignment_id = uuid.UUID(str(item.get('assignment_id')))
        except (TypeError, ValueError, AttributeError):
            errors[f'items[{index}].assignment_id'] = "A valid assignment id is required."
            continue

        if assignment_id in seen:
            errors[f'items[{index}].assignment_id'] = "Assignment appears more than once."
            continue
        seen.add(assignment_id)

        quantity = item.get('dispatched_quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors[f'items[{index}].dispatched_quantity'] = "Must be a whole number greater than zero."
            continue

        cleaned.append({'assignment_id': assignment_id, 'dispatched_quantity': quantity})

    if errors:
        raise ValidationException("Invalid dispatch items", errors)
    return cleaned


def record_dispatch_status(audit, actor: ActorContext, dispatch: Dispatch, new_status: str) -> None:
    """
    Persist a validated status change on a locked dispatch and audit it.

    DELIVERED stamps ``delivered_at``.
    """
    previous_status = dispatch.status
    dispatch.status = new_status
    update_fields = ['status', 'updated_at']
    if new_status == DispatchStatus.DELIVERED:
        dispatch.delivered_at = timezone.now()
        update_fields.append('delivered_at')
    dispatch.save(update_fields=update_fields)

    audit.record(
        AuditAction.DISPATCH_STATUS_UPDATE, 'Dispatch', dispatch.id, actor,
        metadata={
            'previous_status': previous_status,
            'new_status': new_status,
            'delivered_at': dispatch.delivered_at,
        }
    )


class DispatchService(WorkflowService):
    """Service class for dispatch operations."""

    def __init__(self, file_store: FileStoreInterface = None, audit=None, notifier=None):
        super().__init__(audit=audit, notifier=notifier)
        self.file_store = file_store or oms_settings.build('FILE_STORE')

    def create_dispatch(self, actor: ActorContext, vendor_id, items: List[Dict[str, Any]],
                        awb_number: str = None, logistics_partner: str = None, dispatch_date=None,
                        estimated_delivery_date=None, remarks: str = '') -> Dispatch:
        """
        Ship confirmed assignments of one vendor.

        Args:
            actor: Caller context
            vendor_id: Vendor shipping the goods; must own every assignment
            items: List of {assignment_id, dispatched_quantity}
            awb_number: Air waybill number, defaults to the local porter placeholder
            logistics_partner: Carrier name
            dispatch_date: When the goods left, defaults to now
            estimated_delivery_date: Optional ETA
            remarks: Free text

        Returns:
            Created Dispatch in DISPATCHED status

        Raises:
            NotFoundOrForbiddenException: If an assignment is missing or owned by another vendor
            InvalidTransitionException: If an assignment is not confirmed
            AssignmentAlreadyDispatchedException: If an assignment already has an active dispatch
            InvalidQuantityException: If more than the confirmed quantity is dispatched
        """
        cleaned_items = clean_dispatch_items(items)
        assignment_ids = [item['assignment_id'] for item in cleaned_items]

        with transaction.atomic():
            # Lock orders before their assignments
            order_ids = set(
                Assignment.objects.filter(pk__in=assignment_ids, vendor_id=vendor_id)
                .values_list('order_item__order_id', flat=True)
            )
            orders = {
                order.id: order
                for order in Order.objects.select_for_update().filter(pk__in=order_ids).order_by('pk')
            }
            assignments = {
                assignment.id: assignment
                for assignment in Assignment.objects.select_for_update(of=('self',))
                .select_related('order_item')
                .filter(pk__in=assignment_ids, vendor_id=vendor_id)
                .order_by('pk')
            }

            for item in cleaned_items:
                assignment = assignments.get(item['assignment_id'])
                if assignment is None:
                    raise NotFoundOrForbiddenException('Assignment', item['assignment_id'])
                order = orders[assignment.order_item.order_id]
                if order.is_terminal:
                    raise OrderLockedException(order.order_number, f"order is {order.status}")
                self._check_dispatchable(assignment, item['dispatched_quantity'])

            dispatch = Dispatch.objects.create(
                vendor_id=vendor_id,
                awb_number=awb_number or DEFAULT_AWB_NUMBER,
                logistics_partner=logistics_partner or DEFAULT_LOGISTICS_PARTNER,
                dispatch_date=dispatch_date or timezone.now(),
                estimated_delivery_date=estimated_delivery_date,
                status=DispatchStatus.DISPATCHED,
                remarks=remarks or '',
                created_by=actor.user,
            )

            for item in cleaned_items:
                assignment = assignments[item['assignment_id']]
                DispatchItem.objects.create(
                    dispatch=dispatch,
                    assignment=assignment,
                    dispatched_quantity=item['dispatched_quantity'],
                )
                if assignment.status != AssignmentStatus.DISPATCHED:
                    validate_assignment_workflow(assignment, AssignmentStatus.DISPATCHED)
                    assignment.status = AssignmentStatus.DISPATCHED
                    assignment.save(update_fields=['status'])

            self.audit.record(
                AuditAction.DISPATCH_CREATE, 'Dispatch', dispatch.id, actor,
                metadata={
                    'vendor_id': vendor_id,
                    'awb_number': dispatch.awb_number,
                    'logistics_partner': dispatch.logistics_partner,
                    'items': [
                        {'assignment_id': item['assignment_id'], 'dispatched_quantity': item['dispatched_quantity']}
                        for item in cleaned_items
                    ],
                    'order_numbers': sorted(order.order_number for order in orders.values()),
                }
            )

        logger.info(
            f"Dispatch {dispatch.id} ({dispatch.awb_number}) created by vendor {vendor_id} "
            f"with {len(cleaned_items)} items"
        )

        self.notifications.to_roles_on_commit([Role.OPS], NotificationPayload(
            title="Goods dispatched",
            body=(f"Dispatch {dispatch.awb_number} via {dispatch.logistics_partner} is on its way "
                  f"with {len(cleaned_items)} item(s)."),
            priority=NotificationPriority.NORMAL,
            data={'dispatch_id': str(dispatch.id), 'vendor_id': vendor_id},
        ))
        return dispatch

    def upload_proof(self, actor: ActorContext, dispatch_id, vendor_id, file_name: str,
                     content: bytes, content_type: str = '') -> Attachment:
        """
        Attach a proof-of-dispatch file. The dispatch status is not changed.

        The file store is called before the transaction opens so no lock is
        held while the upload runs.

        Raises:
            NotFoundOrForbiddenException: If the dispatch is missing or owned by another vendor
            ValidationException: If the file is empty
            InternalErrorException: If the file store fails
        """
        if get_or_none(Dispatch.objects.all(), pk=dispatch_id, vendor_id=vendor_id) is None:
            raise NotFoundOrForbiddenException('Dispatch', dispatch_id)
        if not file_name or not content:
            raise ValidationException("A non-empty proof file is required", {"file": "No file was submitted."})

        try:
            url = self.file_store.upload(content, file_name, content_type)
        except Exception as exc:
            logger.exception(f"Failed to store proof {file_name} for dispatch {dispatch_id}")
            raise InternalErrorException("Failed to store the proof file", {"dispatch_id": str(dispatch_id)}) from exc

        with transaction.atomic():
            dispatch = get_or_none(Dispatch.objects.select_for_update(), pk=dispatch_id, vendor_id=vendor_id)
            if dispatch is None:
                raise NotFoundOrForbiddenException('Dispatch', dispatch_id)

            attachment = Attachment.objects.create(
                dispatch=dispatch,
                file_name=file_name,
                url=url,
                file_size=len(content),
                mime_type=content_type or '',
                uploaded_by=actor.user,
            )

            self.audit.record(
                AuditAction.DISPATCH_PROOF_UPLOAD, 'Dispatch', dispatch.id, actor,
                metadata={
                    'attachment_id': attachment.id,
                    'file_name': file_name,
                    'url': url,
                    'file_size': attachment.file_size,
                }
            )

        logger.info(f"Proof {file_name} attached to dispatch {dispatch.id}")
        return attachment

    def update_dispatch_status(self, actor: ActorContext, dispatch_id, new_status: str, vendor_id=None) -> Dispatch:
        """
        Move a dispatch forward along its carrier lifecycle.

        Args:
            actor: Caller context
            dispatch_id: Dispatch UUID
            new_status: Target DispatchStatus
            vendor_id: When given, the dispatch must belong to this vendor

        Returns:
            Updated Dispatch

        Raises:
            InvalidTransitionException: If the move goes backwards or leaves a terminal state
        """
        with transaction.atomic():
            lookup = {'pk': dispatch_id}
            if vendor_id is not None:
                lookup['vendor_id'] = vendor_id
            dispatch = get_or_none(Dispatch.objects.select_for_update(), **lookup)
            if dispatch is None:
                raise NotFoundOrForbiddenException('Dispatch', dispatch_id)

            validate_dispatch_workflow(dispatch, new_status)
            if dispatch.status == new_status:
                return dispatch

            record_dispatch_status(self.audit, actor, dispatch, new_status)

        logger.info(f"Dispatch {dispatch.id} moved to {new_status} by {actor.user_id}")
        return dispatch

    def get_dispatch(self, dispatch_id, vendor_id=None) -> Dispatch:
        lookup = {'pk': dispatch_id}
        if vendor_id is not None:
            lookup['vendor_id'] = vendor_id
        queryset = Dispatch.objects.select_related('vendor').prefetch_related(
            'items__assignment__order_item__order', 'attachments'
        )
        dispatch = get_or_none(queryset, **lookup)
        if dispatch is None:
            raise NotFoundOrForbiddenException('Dispatch', dispatch_id)
        return dispatch

    def list_dispatches(self, vendor_id=None, status=None, filters: Dict[str, Any] = None,
                        page=1, limit=None) -> Dict[str, Any]:
        """
        List dispatches, newest first.

        Args:
            vendor_id: Restrict to one vendor
            status: Restrict to one DispatchStatus
            filters: Optional awb_number, start_date and end_date
        """
        filters = filters or {}
        queryset = Dispatch.objects.select_related('vendor').prefetch_related('items')

        if vendor_id is not None:
            queryset = queryset.filter(vendor_id=vendor_id)
        if status:
            if status not in DispatchStatus.values:
                raise ValidationException(f"Unknown dispatch status {status}", {"status": status})
            queryset = queryset.filter(status=status)
        if filters.get('awb_number'):
            queryset = queryset.filter(awb_number__icontains=filters['awb_number'])
        queryset = filter_date_range(queryset, 'dispatch_date', filters.get('start_date'), filters.get('end_date'))

        return paginate(queryset.order_by('-created_at'), page, limit)

    def _check_dispatchable(self, assignment: Assignment, quantity: int) -> None:
        active_item = (
            DispatchItem.objects.filter(assignment=assignment)
            .exclude(dispatch__status=DispatchStatus.FAILED)
            .first()
        )
        if active_item is not None:
            logger.warning(f"Assignment {assignment.id} already dispatched in {active_item.dispatch_id}")
            raise AssignmentAlreadyDispatchedException(assignment.id, active_item.dispatch_id)

        # A DISPATCHED assignment without an active dispatch had its dispatch fail
        if assignment.status not in DISPATCHABLE_STATUSES and assignment.status != AssignmentStatus.DISPATCHED:
            raise InvalidTransitionException(
                current_status=assignment.status,
                attempted_status=AssignmentStatus.DISPATCHED,
                entity_type="Assignment"
            )

        if quantity > assignment.confirmed_quantity:
            raise InvalidQuantityException(
                f"Cannot dispatch {quantity} units, only {assignment.confirmed_quantity} were confirmed",
                {
                    "assignment_id": str(assignment.id),
                    "dispatched_quantity": quantity,
                    "confirmed_quantity": assignment.confirmed_quantity,
                }
            )
