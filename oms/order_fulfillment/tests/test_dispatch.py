"""
Tests for dispatch creation, proof uploads and carrier status updates.
"""

from ..adapters import InMemoryFileStore
from ..context import Role
from ..exceptions import (
    ValidationException, InvalidQuantityException, InvalidTransitionException,
    NotFoundOrForbiddenException, AssignmentAlreadyDispatchedException,
    OrderLockedException, InternalErrorException
)
from ..models import (
    Assignment, AssignmentStatus, Dispatch, DispatchItem, DispatchStatus, Attachment,
    DEFAULT_AWB_NUMBER, DEFAULT_LOGISTICS_PARTNER
)
from ..services import DispatchService
from .helpers import WorkflowTestCase


class CreateDispatchTest(WorkflowTestCase):

    def setUp(self):
        super().setUp()
        self.order = self.create_order(vendor=self.vendor, lines=[('A', 10, 5), ('B', 4, 2)])
        self.first, self.second = self.assignments_of(self.order)

    def confirmed(self, assignment, status=AssignmentStatus.VENDOR_CONFIRMED_FULL, quantity=None):
        self.confirm(assignment, status, quantity)
        assignment.refresh_from_db()
        return assignment

    def test_dispatch_confirmed_assignments(self):
        first = self.confirmed(self.first, AssignmentStatus.VENDOR_CONFIRMED_PARTIAL, 6)
        second = self.confirmed(self.second)

        with self.captureOnCommitCallbacks(execute=True):
            dispatch = self.dispatch((first, 6), (second, 3))

        self.assertEqual(dispatch.status, DispatchStatus.DISPATCHED)
        self.assertEqual(dispatch.awb_number, 'AWB-100')
        self.assertEqual(dispatch.created_by, self.vendor_user)
        self.assertEqual(dispatch.total_quantity, 9)
        self.assertEqual(
            set(Assignment.objects.filter(order_item__order=self.order).values_list('status', flat=True)),
            {AssignmentStatus.DISPATCHED}
        )

        entry = self.audit.entries[-1]
        self.assertEqual(entry.action, 'dispatch:create')
        self.assertEqual(entry.metadata['order_numbers'], ['ORD-1'])
        self.assertEqual(len(entry.metadata['items']), 2)

        sent = self.notifier.sent_to_roles(Role.OPS)
        self.assertEqual(len(sent), 1)
        self.assertEqual(sent[0]['payload'].data['dispatch_id'], str(dispatch.id))

    def test_defaults_to_local_porter(self):
        first = self.confirmed(self.first)

        dispatch = self.dispatch_service.create_dispatch(
            self.vendor_actor, self.vendor.id, [{'assignment_id': str(first.id), 'dispatched_quantity': 1}]
        )

        self.assertEqual(dispatch.awb_number, DEFAULT_AWB_NUMBER)
        self.assertEqual(dispatch.logistics_partner, DEFAULT_LOGISTICS_PARTNER)
        self.assertIsNotNone(dispatch.dispatch_date)

    def test_cannot_dispatch_more_than_confirmed(self):
        first = self.confirmed(self.first, AssignmentStatus.VENDOR_CONFIRMED_PARTIAL, 6)

        with self.assertRaises(InvalidQuantityException) as ctx:
            self.dispatch((first, 7))

        self.assertEqual(ctx.exception.details['confirmed_quantity'], 6)
        self.assertFalse(Dispatch.objects.exists())
        self.assertEqual(Assignment.objects.get(pk=first.pk).status, AssignmentStatus.VENDOR_CONFIRMED_PARTIAL)

    def test_unconfirmed_or_declined_assignment_cannot_be_dispatched(self):
        declined = self.confirmed(self.second, AssignmentStatus.VENDOR_DECLINED)

        for assignment in [self.first, declined]:
            with self.assertRaises(InvalidTransitionException) as ctx:
                self.dispatch((assignment, 1))
            self.assertEqual(ctx.exception.details['entity_type'], 'Assignment')
            self.assertEqual(ctx.exception.details['attempted_status'], AssignmentStatus.DISPATCHED)

    def test_assignment_cannot_be_dispatched_twice(self):
        first = self.confirmed(self.first)
        dispatch = self.dispatch((first, 5))

        with self.assertRaises(AssignmentAlreadyDispatchedException) as ctx:
            self.dispatch((first, 5))

        self.assertEqual(ctx.exception.details['dispatch_id'], str(dispatch.id))
        self.assertEqual(Dispatch.objects.count(), 1)

    def test_redispatch_after_failed_dispatch(self):
        first = self.confirmed(self.first)
        failed = self.dispatch((first, 10))
        self.dispatch_service.update_dispatch_status(self.ops, failed.id, DispatchStatus.FAILED)

        retry = self.dispatch((first, 10))

        self.assertNotEqual(retry.id, failed.id)
        self.assertEqual(DispatchItem.objects.filter(assignment=first).count(), 2)

    def test_other_vendor_cannot_dispatch(self):
        first = self.confirmed(self.first)

        with self.assertRaises(NotFoundOrForbiddenException):
            self.dispatch((first, 1), vendor=self.other_vendor)

    def test_cancelled_order_cannot_be_dispatched(self):
        first = self.confirmed(self.first)
        self.order_service.cancel_order(self.ops, self.order.id)

        with self.assertRaises(OrderLockedException):
            self.dispatch((first, 1))

    def test_invalid_lines(self):
        first = self.confirmed(self.first)
        cases = [
            [],
            [{'assignment_id': 'bad', 'dispatched_quantity': 1}],
            [{'assignment_id': first.id, 'dispatched_quantity': 0}],
            [{'assignment_id': first.id, 'dispatched_quantity': '2'}],
            [{'assignment_id': first.id, 'dispatched_quantity': 1},
             {'assignment_id': first.id, 'dispatched_quantity': 1}],
        ]
        for items in cases:
            with self.assertRaises(ValidationException):
                self.dispatch_service.create_dispatch(self.vendor_actor, self.vendor.id, items)

        self.assertFalse(Dispatch.objects.exists())


class DispatchProofAndStatusTest(WorkflowTestCase):

    def setUp(self):
        super().setUp()
        self.order, self.assignments, self.dispatch_obj = self.confirmed_dispatch()

    def test_upload_proof(self):
        attachment = self.dispatch_service.upload_proof(
            self.vendor_actor, self.dispatch_obj.id, self.vendor.id, 'invoice.pdf', b'%PDF-1.4', 'application/pdf'
        )

        self.assertTrue(attachment.url.startswith('memory://proofs/'))
        self.assertEqual(attachment.file_size, 8)
        self.assertEqual(attachment.mime_type, 'application/pdf')
        self.assertIn(attachment.url, self.file_store.files)
        self.assertEqual(self.audit.entries[-1].action, 'dispatch:proof_upload')

        self.dispatch_obj.refresh_from_db()
        self.assertEqual(self.dispatch_obj.status, DispatchStatus.DISPATCHED)

    def test_upload_proof_rejects_empty_file_and_foreign_dispatch(self):
        with self.assertRaises(ValidationException):
            self.dispatch_service.upload_proof(self.vendor_actor, self.dispatch_obj.id, self.vendor.id, 'a.pdf', b'')
        with self.assertRaises(NotFoundOrForbiddenException):
            self.dispatch_service.upload_proof(
                self.other_vendor_actor, self.dispatch_obj.id, self.other_vendor.id, 'a.pdf', b'data'
            )
        self.assertEqual(self.file_store.files, {})

    def test_file_store_failure(self):
        service = DispatchService(file_store=InMemoryFileStore(fail=True), audit=self.audit, notifier=self.notifier)

        with self.assertLogs('order_fulfillment.services.dispatch_service', level='ERROR'):
            with self.assertRaises(InternalErrorException) as ctx:
                service.upload_proof(self.vendor_actor, self.dispatch_obj.id, self.vendor.id, 'a.pdf', b'data')

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertFalse(Attachment.objects.exists())

    def test_status_moves_forward_and_stamps_delivery(self):
        self.dispatch_service.update_dispatch_status(self.ops, self.dispatch_obj.id, DispatchStatus.IN_TRANSIT)
        dispatch = self.dispatch_service.update_dispatch_status(
            self.ops, self.dispatch_obj.id, DispatchStatus.DELIVERED
        )

        self.assertEqual(dispatch.status, DispatchStatus.DELIVERED)
        self.assertIsNotNone(dispatch.delivered_at)
        self.assertEqual(self.audit.actions()[-2:], ['dispatch:status_update', 'dispatch:status_update'])

    def test_status_cannot_move_backwards(self):
        self.dispatch_service.update_dispatch_status(self.ops, self.dispatch_obj.id, DispatchStatus.IN_TRANSIT)

        for status in [DispatchStatus.DISPATCHED, DispatchStatus.PENDING, 'LOST']:
            with self.assertRaises(InvalidTransitionException):
                self.dispatch_service.update_dispatch_status(self.ops, self.dispatch_obj.id, status)

    def test_repeated_status_is_a_no_op(self):
        audit_count = len(self.audit.entries)

        dispatch = self.dispatch_service.update_dispatch_status(
            self.ops, self.dispatch_obj.id, DispatchStatus.DISPATCHED
        )

        self.assertEqual(dispatch.status, DispatchStatus.DISPATCHED)
        self.assertEqual(len(self.audit.entries), audit_count)

    def test_vendor_scope_on_status_update(self):
        with self.assertRaises(NotFoundOrForbiddenException):
            self.dispatch_service.update_dispatch_status(
                self.other_vendor_actor, self.dispatch_obj.id, DispatchStatus.IN_TRANSIT,
                vendor_id=self.other_vendor.id
            )

    def test_list_and_get(self):
        self.assertEqual(self.dispatch_service.list_dispatches(vendor_id=self.vendor.id)['total'], 1)
        self.assertEqual(self.dispatch_service.list_dispatches(vendor_id=self.other_vendor.id)['total'], 0)
        self.assertEqual(self.dispatch_service.list_dispatches(status=DispatchStatus.DELIVERED)['total'], 0)
        self.assertEqual(self.dispatch_service.list_dispatches(filters={'awb_number': 'awb-1'})['total'], 1)

        with self.assertRaises(ValidationException):
            self.dispatch_service.list_dispatches(status='LOST')

        self.assertEqual(self.dispatch_service.get_dispatch(self.dispatch_obj.id, self.vendor.id), self.dispatch_obj)
        with self.assertRaises(NotFoundOrForbiddenException):
            self.dispatch_service.get_dispatch(self.dispatch_obj.id, self.other_vendor.id)
