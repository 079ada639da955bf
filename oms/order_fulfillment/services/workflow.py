"""
Workflow service for the order fulfillment pipeline.

Each entity has one transition table keyed by its status enum. Tables are
checked at import time to cover every status, so adding a status without
deciding its transitions fails loudly.
"""

from django.core.exceptions import ImproperlyConfigured

from ..exceptions import InvalidTransitionException
from ..models import (
    Order, OrderStatus, Assignment, AssignmentStatus,
    Dispatch, DispatchStatus, Ticket, TicketStatus
)


class StatusWorkflow:
    """Base class holding a transition table for one status enum."""

    entity_type = None
    status_enum = None
    ALLOWED_TRANSITIONS = {}
    allow_noop = True

    @classmethod
    def check_exhaustive(cls) -> None:
        missing = set(cls.status_enum.values) - set(cls.ALLOWED_TRANSITIONS)
        if missing:
            raise ImproperlyConfigured(
                f"{cls.__name__} has no transitions defined for: {', '.join(sorted(missing))}"
            )

    @classmethod
    def validate_status_change(cls, current_status: str, new_status: str) -> None:
        """
        Validate a move between two statuses.

        Raises:
            InvalidTransitionException: If the move is not in the table
        """
        if new_status not in cls.status_enum.values:
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=cls.entity_type
            )

        if current_status == new_status and cls.allow_noop:
            return

        if new_status not in cls.ALLOWED_TRANSITIONS.get(current_status, []):
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=cls.entity_type
            )

    @classmethod
    def validate_transition(cls, entity, new_status: str) -> None:
        cls.validate_status_change(entity.status, new_status)

    @classmethod
    def can_transition_to(cls, entity, new_status: str) -> bool:
        """Check if transition is allowed without raising exception."""
        try:
            cls.validate_transition(entity, new_status)
            return True
        except InvalidTransitionException:
            return False

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.ALLOWED_TRANSITIONS.get(status)


class OrderWorkflow(StatusWorkflow):
    """Workflow rules for Order state transitions."""

    entity_type = "Order"
    status_enum = OrderStatus
    ALLOWED_TRANSITIONS = {
        OrderStatus.RECEIVED: [OrderStatus.ASSIGNED, OrderStatus.PROCESSING, OrderStatus.CANCELLED],
        OrderStatus.ASSIGNED: [OrderStatus.PROCESSING, OrderStatus.CANCELLED],
        OrderStatus.PROCESSING: [
            OrderStatus.PARTIALLY_FULFILLED, OrderStatus.FULFILLED, OrderStatus.CANCELLED
        ],
        OrderStatus.PARTIALLY_FULFILLED: [OrderStatus.FULFILLED, OrderStatus.CLOSED],
        OrderStatus.FULFILLED: [OrderStatus.CLOSED],
        OrderStatus.CLOSED: [],  # Final state
        OrderStatus.CANCELLED: [],  # Final state
    }


class AssignmentWorkflow(StatusWorkflow):
    """
    Workflow rules for Assignment state transitions.

    The vendor decision out of PENDING_CONFIRMATION happens exactly once, so
    repeating a status is never a valid move.
    """

    entity_type = "Assignment"
    status_enum = AssignmentStatus
    allow_noop = False
    ALLOWED_TRANSITIONS = {
        AssignmentStatus.PENDING_CONFIRMATION: [
            AssignmentStatus.VENDOR_CONFIRMED_FULL,
            AssignmentStatus.VENDOR_CONFIRMED_PARTIAL,
            AssignmentStatus.VENDOR_DECLINED,
        ],
        AssignmentStatus.VENDOR_CONFIRMED_FULL: [AssignmentStatus.INVOICED, AssignmentStatus.DISPATCHED],
        AssignmentStatus.VENDOR_CONFIRMED_PARTIAL: [AssignmentStatus.INVOICED, AssignmentStatus.DISPATCHED],
        AssignmentStatus.INVOICED: [AssignmentStatus.DISPATCHED],
        AssignmentStatus.DISPATCHED: [],  # Final state
        AssignmentStatus.VENDOR_DECLINED: [],  # Final state
    }

    VENDOR_DECISIONS = ALLOWED_TRANSITIONS[AssignmentStatus.PENDING_CONFIRMATION]


class DispatchWorkflow(StatusWorkflow):
    """Workflow rules for Dispatch state transitions. Progression is monotonic."""

    entity_type = "Dispatch"
    status_enum = DispatchStatus
    ALLOWED_TRANSITIONS = {
        DispatchStatus.PENDING: [
            DispatchStatus.PROCESSING, DispatchStatus.DISPATCHED, DispatchStatus.FAILED
        ],
        DispatchStatus.PROCESSING: [DispatchStatus.DISPATCHED, DispatchStatus.FAILED],
        DispatchStatus.DISPATCHED: [
            DispatchStatus.IN_TRANSIT, DispatchStatus.DELIVERED, DispatchStatus.FAILED
        ],
        DispatchStatus.IN_TRANSIT: [DispatchStatus.DELIVERED, DispatchStatus.FAILED],
        DispatchStatus.DELIVERED: [],  # Final state
        DispatchStatus.FAILED: [],  # Final state
    }


class TicketWorkflow(StatusWorkflow):
    """Workflow rules for Ticket state transitions."""

    entity_type = "Ticket"
    status_enum = TicketStatus
    ALLOWED_TRANSITIONS = {
        TicketStatus.OPEN: [TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED],
        TicketStatus.IN_PROGRESS: [TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED],
        TicketStatus.RESOLVED: [TicketStatus.OPEN, TicketStatus.CLOSED],
        TicketStatus.CLOSED: [],  # Final state
    }


for _workflow in (OrderWorkflow, AssignmentWorkflow, DispatchWorkflow, TicketWorkflow):
    _workflow.check_exhaustive()


def validate_order_workflow(order: Order, new_status: str) -> None:
    """
    Validate order workflow transition.

    Args:
        order: Order instance
        new_status: New status to transition to

    Raises:
        InvalidTransitionException: If transition is not allowed
    """
    OrderWorkflow.validate_transition(order, new_status)


def validate_assignment_workflow(assignment: Assignment, new_status: str) -> None:
    AssignmentWorkflow.validate_transition(assignment, new_status)


def validate_dispatch_workflow(dispatch: Dispatch, new_status: str) -> None:
    DispatchWorkflow.validate_transition(dispatch, new_status)


def validate_ticket_workflow(ticket: Ticket, new_status: str) -> None:
    TicketWorkflow.validate_transition(ticket, new_status)
