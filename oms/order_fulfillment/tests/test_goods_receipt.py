"""
Tests for goods receipt verification, mismatch tickets and order fulfillment.
"""

from types import SimpleNamespace

from django.test import SimpleTestCase
from django.utils import timezone

from ..context import Role
from ..exceptions import (
    ValidationException, InvalidTransitionException, NotFoundOrForbiddenException,
    GrnAlreadyExistsException
)
from ..models import (
    AssignmentStatus, OrderStatus, DispatchStatus, GoodsReceiptNote, GRNStatus, GRNItemStatus,
    Ticket, TicketStatus, TicketPriority, NotificationPriority
)
from ..services.receipt_service import ReceiptLine, grn_status_for, ticket_priority_for, describe_mismatch
from .helpers import WorkflowTestCase


def line(dispatched, received, damage=False):
    return ReceiptLine(
        dispatch_item=SimpleNamespace(dispatched_quantity=dispatched),
        received_quantity=received,
        damage_reported=damage,
    )


class ReceiptRulesTest(SimpleTestCase):

    def test_line_status(self):
        self.assertEqual(line(10, 10).status, GRNItemStatus.VERIFIED_OK)
        self.assertEqual(line(10, 8).status, GRNItemStatus.SHORTAGE_REPORTED)
        self.assertEqual(line(10, 12).status, GRNItemStatus.EXCESS_RECEIVED)
        self.assertEqual(line(10, 8, damage=True).status, GRNItemStatus.DAMAGE_REPORTED)
        self.assertEqual(line(10, 8).discrepancy, -2)

    def test_grn_status_aggregation(self):
        ok, short = GRNItemStatus.VERIFIED_OK, GRNItemStatus.SHORTAGE_REPORTED
        self.assertEqual(grn_status_for([ok, ok]), GRNStatus.VERIFIED_OK)
        self.assertEqual(grn_status_for([short, GRNItemStatus.DAMAGE_REPORTED]), GRNStatus.VERIFIED_MISMATCH)
        self.assertEqual(grn_status_for([ok, short]), GRNStatus.PARTIALLY_VERIFIED)

    def test_ticket_priority(self):
        self.assertEqual(ticket_priority_for([line(10, 10, damage=True), line(10, 9)]), TicketPriority.URGENT)
        self.assertEqual(ticket_priority_for([line(10, 8)]), TicketPriority.HIGH)
        self.assertEqual(ticket_priority_for([line(10, 9)]), TicketPriority.MEDIUM)
        self.assertEqual(ticket_priority_for([line(10, 12)]), TicketPriority.LOW)
        self.assertEqual(ticket_priority_for([line(100, 90)]), TicketPriority.MEDIUM)
        self.assertEqual(ticket_priority_for([line(10, 9)], high_shortage_percent=5), TicketPriority.HIGH)


class RecordGoodsReceiptTest(WorkflowTestCase):

    def receipt_items(self, dispatch, received=None, damaged=()):
        """One GRN line per dispatch item; ``received`` maps SKU to the counted quantity."""
        received = received or {}
        lines = []
        for dispatch_item in dispatch.items.select_related('assignment__order_item'):
            sku = dispatch_item.assignment.order_item.sku
            lines.append({
                'dispatch_item_id': dispatch_item.id,
                'received_quantity': received.get(sku, dispatch_item.dispatched_quantity),
                'damage_reported': sku in damaged,
                'damage_description': 'Crushed carton' if sku in damaged else '',
            })
        return lines

    def test_shortage_raises_ticket_and_partially_fulfills_order(self):
        order, _, dispatch = self.confirmed_dispatch(lines=[('X', 10, 5)])

        with self.captureOnCommitCallbacks(execute=True):
            result = self.receipt_service.record_grn(
                self.ops, dispatch.id, self.receipt_items(dispatch, {'X': 8}), operator_remarks='Two cartons missing'
            )

        grn = result.grn
        self.assertEqual(grn.status, GRNStatus.VERIFIED_MISMATCH)
        self.assertEqual(grn.verified_by, self.ops_user)
        item = grn.items.get()
        self.assertEqual(item.discrepancy_quantity, -2)
        self.assertEqual(item.status, GRNItemStatus.SHORTAGE_REPORTED)

        ticket = result.ticket
        self.assertEqual(ticket.status, TicketStatus.OPEN)
        self.assertEqual(ticket.priority, TicketPriority.HIGH)
        self.assertEqual(ticket.ticket_number, 'TKT-000001')
        self.assertIn('Shortage: 2 units', ticket.description)
        self.assertTrue(ticket.description.startswith('Operator remarks: Two cartons missing'))
        self.assertIn('Product X (SKU X), order ORD-1', ticket.description)
        self.assertEqual(ticket.title, f"GRN Mismatch - {grn.grn_number}")

        dispatch.refresh_from_db()
        self.assertEqual(dispatch.status, DispatchStatus.DELIVERED)
        self.assertIsNotNone(dispatch.delivered_at)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PARTIALLY_FULFILLED)
        self.assertEqual(result.order_updates, [{
            'order_id': order.id,
            'order_number': 'ORD-1',
            'previous_status': OrderStatus.PROCESSING,
            'new_status': OrderStatus.PARTIALLY_FULFILLED,
        }])

        self.assertEqual(self.audit.actions()[-5:], [
            'grn:created', 'grn:verified_mismatch', 'ticket:created', 'dispatch:status_update', 'order:status_update',
        ])

        to_back_office = self.notifier.sent_to_roles(Role.ADMIN, Role.OPS)
        self.assertEqual(len(to_back_office), 1)
        self.assertEqual(to_back_office[0]['payload'].priority, NotificationPriority.URGENT)
        self.assertEqual(len(self.notifier.sent_to_user(self.vendor_user.pk)), 1)

    def test_matching_receipt_fulfills_order_without_ticket(self):
        order, _, dispatch = self.confirmed_dispatch(lines=[('A', 3, 1), ('B', 2, 1)])

        result = self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch))

        self.assertEqual(result.grn.status, GRNStatus.VERIFIED_OK)
        self.assertIsNone(result.ticket)
        self.assertFalse(Ticket.objects.exists())
        self.assertIn('grn:verified_ok', self.audit.actions())
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.FULFILLED)

    def test_mixed_receipt_is_partially_verified(self):
        order, _, dispatch = self.confirmed_dispatch(lines=[('A', 3, 1), ('B', 2, 1)])

        result = self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch, {'B': 3}))

        self.assertEqual(result.grn.status, GRNStatus.PARTIALLY_VERIFIED)
        self.assertEqual(result.ticket.priority, TicketPriority.LOW)
        self.assertIn('Excess: 1 units', result.ticket.description)
        self.assertNotIn('Product A', result.ticket.description)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PARTIALLY_FULFILLED)

    def test_damage_is_urgent(self):
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 3, 1)])

        result = self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch, damaged={'A'}))

        self.assertEqual(result.grn.items.get().status, GRNItemStatus.DAMAGE_REPORTED)
        self.assertEqual(result.ticket.priority, TicketPriority.URGENT)
        self.assertIn('Damage reported: Crushed carton', result.ticket.description)

    def test_declined_assignments_do_not_block_fulfillment(self):
        order = self.create_order(vendor=self.vendor, lines=[('A', 3, 1), ('B', 2, 1)])
        first, second = self.assignments_of(order)
        self.confirm(first)
        self.confirm(second, AssignmentStatus.VENDOR_DECLINED)
        first.refresh_from_db()
        dispatch = self.dispatch((first, 3))

        self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch))

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.FULFILLED)

    def test_split_dispatches_fulfill_order_on_second_receipt(self):
        order = self.create_order(vendor=self.vendor, lines=[('A', 3, 1), ('B', 2, 1)])
        first, second = self.assignments_of(order)
        self.confirm(first)
        self.confirm(second)
        first.refresh_from_db()
        second.refresh_from_db()
        first_dispatch = self.dispatch((first, 3))
        second_dispatch = self.dispatch((second, 2))

        first_result = self.receipt_service.record_grn(self.ops, first_dispatch.id, self.receipt_items(first_dispatch))
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PARTIALLY_FULFILLED)

        second_result = self.receipt_service.record_grn(
            self.ops, second_dispatch.id, self.receipt_items(second_dispatch)
        )
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.FULFILLED)

        year = timezone.now().year
        self.assertEqual(first_result.grn.grn_number, f'GRN-{year}-0001')
        self.assertEqual(second_result.grn.grn_number, f'GRN-{year}-0002')

    def test_ticket_numbers_increase(self):
        _, _, first = self.confirmed_dispatch('ORD-1', lines=[('A', 10, 1)])
        _, _, second = self.confirmed_dispatch('ORD-2', lines=[('B', 10, 1)])

        one = self.receipt_service.record_grn(self.ops, first.id, self.receipt_items(first, {'A': 9}))
        two = self.receipt_service.record_grn(self.ops, second.id, self.receipt_items(second, {'B': 9}))

        self.assertEqual(one.ticket.ticket_number, 'TKT-000001')
        self.assertEqual(two.ticket.ticket_number, 'TKT-000002')

    def test_ticket_number_follows_highest_existing(self):
        Ticket.objects.create(ticket_number='TKT-000009', title='Manual', description='Raised by hand')
        Ticket.objects.create(ticket_number='TKT-000041', title='Manual', description='Raised by hand')
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 10, 1)])

        result = self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch, {'A': 9}))

        self.assertEqual(result.ticket.ticket_number, 'TKT-000042')

    def test_second_receipt_for_dispatch_rejected(self):
        _, _, dispatch = self.confirmed_dispatch()
        self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch))

        with self.assertRaises(GrnAlreadyExistsException) as ctx:
            self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch))

        self.assertEqual(ctx.exception.code, 'GRN_ALREADY_EXISTS')
        self.assertEqual(GoodsReceiptNote.objects.count(), 1)

    def test_failed_dispatch_cannot_be_received(self):
        _, _, dispatch = self.confirmed_dispatch()
        self.dispatch_service.update_dispatch_status(self.ops, dispatch.id, DispatchStatus.FAILED)

        with self.assertRaises(InvalidTransitionException) as ctx:
            self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch))

        self.assertEqual(ctx.exception.details['entity_type'], 'Dispatch')
        self.assertFalse(GoodsReceiptNote.objects.exists())

    def test_receipt_must_cover_every_dispatch_item_once(self):
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 3, 1), ('B', 2, 1)])
        items = self.receipt_items(dispatch)

        with self.assertRaises(ValidationException) as ctx:
            self.receipt_service.record_grn(self.ops, dispatch.id, items[:1])
        self.assertIn('items', ctx.exception.details)

        with self.assertRaises(ValidationException):
            self.receipt_service.record_grn(self.ops, dispatch.id, items + items[:1])

        bad_quantity = [dict(items[0], received_quantity=-1), items[1]]
        with self.assertRaises(ValidationException) as ctx:
            self.receipt_service.record_grn(self.ops, dispatch.id, bad_quantity)
        self.assertIn('items[0].received_quantity', ctx.exception.details)

        with self.assertRaises(ValidationException):
            self.receipt_service.record_grn(self.ops, dispatch.id, [])

        self.assertFalse(GoodsReceiptNote.objects.exists())

    def test_unknown_dispatch(self):
        with self.assertRaises(NotFoundOrForbiddenException):
            self.receipt_service.record_grn(
                self.ops, '00000000-0000-0000-0000-000000000000',
                [{'dispatch_item_id': '00000000-0000-0000-0000-000000000000', 'received_quantity': 1}]
            )

    def test_list_grns_and_tickets(self):
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 10, 1)])
        result = self.receipt_service.record_grn(self.ops, dispatch.id, self.receipt_items(dispatch, {'A': 5}))

        self.assertEqual(self.receipt_service.list_grns({'vendor_id': self.vendor.id})['total'], 1)
        self.assertEqual(self.receipt_service.list_grns({'status': GRNStatus.VERIFIED_OK})['total'], 0)
        self.assertEqual(self.receipt_service.list_tickets({'priority': TicketPriority.HIGH})['total'], 1)
        self.assertEqual(self.receipt_service.get_grn(result.grn.id), result.grn)
        self.assertEqual(self.receipt_service.get_ticket(result.ticket.id), result.ticket)


class TicketStatusTest(WorkflowTestCase):

    def setUp(self):
        super().setUp()
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 10, 1)])
        dispatch_item = dispatch.items.get()
        self.ticket = self.receipt_service.record_grn(
            self.ops, dispatch.id, [{'dispatch_item_id': dispatch_item.id, 'received_quantity': 9}]
        ).ticket

    def test_resolve_and_reopen(self):
        ticket = self.receipt_service.update_ticket_status(self.ops, self.ticket.id, TicketStatus.RESOLVED)
        self.assertIsNotNone(ticket.resolved_at)

        ticket = self.receipt_service.update_ticket_status(self.ops, self.ticket.id, TicketStatus.OPEN)
        self.assertIsNone(ticket.resolved_at)

        entry = self.audit.entries[-1]
        self.assertEqual(entry.action, 'ticket:status_update')
        self.assertEqual(entry.metadata['previous_status'], TicketStatus.RESOLVED)

    def test_closed_ticket_keeps_resolution_time(self):
        self.receipt_service.update_ticket_status(self.ops, self.ticket.id, TicketStatus.RESOLVED)
        ticket = self.receipt_service.update_ticket_status(self.ops, self.ticket.id, TicketStatus.CLOSED)

        self.assertEqual(ticket.status, TicketStatus.CLOSED)
        self.assertIsNotNone(ticket.resolved_at)

        with self.assertRaises(InvalidTransitionException):
            self.receipt_service.update_ticket_status(self.ops, self.ticket.id, TicketStatus.OPEN)

    def test_unknown_ticket(self):
        with self.assertRaises(NotFoundOrForbiddenException):
            self.receipt_service.update_ticket_status(self.ops, 'missing', TicketStatus.CLOSED)


class DescribeMismatchTest(WorkflowTestCase):

    def test_without_remarks_lists_only_mismatching_lines(self):
        _, _, dispatch = self.confirmed_dispatch(lines=[('A', 3, 1), ('B', 2, 1)])
        lines = []
        for dispatch_item in dispatch.items.select_related('assignment__order_item__order'):
            short = dispatch_item.assignment.order_item.sku == 'B'
            lines.append(ReceiptLine(dispatch_item, dispatch_item.dispatched_quantity - (1 if short else 0)))

        description = describe_mismatch(lines)

        self.assertEqual(description, "- Product B (SKU B), order ORD-1: Shortage: 1 units")
