"""
API tests: response envelope, error codes, role checks and vendor scoping.
"""

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from ..context import Role
from ..models import (
    Order, Assignment, AssignmentStatus, Dispatch, DispatchStatus, AuditLog, Notification, TicketPriority
)
from .helpers import make_user, make_vendor

MEMORY_STORE = {'FILE_STORE': 'order_fulfillment.adapters.file_store.InMemoryFileStore'}


class WorkflowAPITestCase(APITestCase):

    def setUp(self):
        self.ops_user = make_user('ops', Role.OPS)
        self.accounts_user = make_user('accounts', Role.ACCOUNTS)
        self.vendor_user = make_user('vendor1', Role.VENDOR)
        self.other_vendor_user = make_user('vendor2', Role.VENDOR)
        self.vendor = make_vendor('V1', user=self.vendor_user)
        self.other_vendor = make_vendor('V2', user=self.other_vendor_user)

    def as_user(self, user):
        self.client.force_authenticate(user=user)

    def create_order(self, order_number='ORD-1', vendor=None, quantity=10):
        self.as_user(self.ops_user)
        response = self.client.post('/api/orders/', {
            'order_number': order_number,
            'vendor_id': vendor.id if vendor else None,
            'items': [{'product_name': 'Widget', 'sku': 'W-1', 'quantity': quantity, 'price_per_unit': '5.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data['data']

    def assignment_id(self, order_data):
        return order_data['items'][0]['assignments'][0]['id']

    def assertError(self, response, http_status, code):
        self.assertEqual(response.status_code, http_status, response.data)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], code)


class OrderAPITest(WorkflowAPITestCase):

    def test_create_order_returns_envelope(self):
        data = self.create_order(vendor=self.vendor)

        self.assertEqual(data['order_number'], 'ORD-1')
        self.assertEqual(data['status'], 'RECEIVED')
        self.assertEqual(data['total_value'], '50.00')
        self.assertEqual(data['items'][0]['assignments'][0]['status'], AssignmentStatus.PENDING_CONFIRMATION)

        entry = AuditLog.objects.get(action='order:create')
        self.assertEqual(entry.actor, self.ops_user)
        self.assertEqual(entry.entity_id, data['id'])

    def test_malformed_forwarded_for_header_is_not_audited(self):
        self.as_user(self.ops_user)

        response = self.client.post('/api/orders/', {
            'order_number': 'ORD-XFF',
            'items': [{'sku': 'A', 'quantity': 1, 'price_per_unit': '1'}],
        }, format='json', HTTP_X_FORWARDED_FOR='not-an-address', REMOTE_ADDR='192.0.2.10')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(AuditLog.objects.get(action='order:create').ip_address, '192.0.2.10')

    def test_validation_errors(self):
        self.as_user(self.ops_user)

        response = self.client.post('/api/orders/', {'order_number': 'ORD-1', 'items': []}, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')
        self.assertIn('items', response.data['error']['details'])

        response = self.client.post('/api/orders/', {
            'order_number': 'ORD-1',
            'items': [{'sku': 'A', 'quantity': 1, 'price_per_unit': '0'}],
        }, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')
        self.assertIn('items[0].price_per_unit', response.data['error']['details'])
        self.assertFalse(Order.objects.exists())

    def test_duplicate_order_number_is_conflict(self):
        self.create_order()

        response = self.client.post('/api/orders/', {
            'order_number': 'ORD-1',
            'items': [{'sku': 'A', 'quantity': 1, 'price_per_unit': '1'}],
        }, format='json')

        self.assertError(response, status.HTTP_409_CONFLICT, 'DUPLICATE_ORDER_NUMBER')

    def test_ineligible_vendor(self):
        self.as_user(self.ops_user)
        response = self.client.post('/api/orders/', {
            'order_number': 'ORD-1',
            'vendor_id': 4242,
            'items': [{'sku': 'A', 'quantity': 1, 'price_per_unit': '1'}],
        }, format='json')

        self.assertError(response, 422, 'VENDOR_NOT_ELIGIBLE')

    def test_list_is_paginated(self):
        self.create_order('ORD-1')
        self.create_order('ORD-2')

        response = self.client.get('/api/orders/', {'limit': 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['total'], 2)
        self.assertEqual(response.data['data']['pages'], 2)
        self.assertEqual(len(response.data['data']['results']), 1)

    def test_page_zero_is_the_first_page(self):
        self.create_order('ORD-1')

        response = self.client.get('/api/orders/', {'page': 0})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['data']['page'], 1)
        self.assertEqual(response.data['data']['total'], 1)

        response = self.client.get('/api/orders/', {'page': -2})
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')

    def test_bad_filter_values(self):
        self.as_user(self.ops_user)

        response = self.client.get('/api/orders/', {'vendor_id': 'abc'})
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')

        self.assertIn('vendor_id', response.data['error']['details'])

        response = self.client.get('/api/orders/', {'start_date': '19-10-2026'})
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')

        response = self.client.get('/api/orders/', {'status': 'SHIPPED'})
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')
        self.assertIn('status', response.data['error']['details'])

    def test_accounts_can_read_but_not_write(self):
        data = self.create_order()
        self.as_user(self.accounts_user)

        self.assertEqual(self.client.get(f"/api/orders/{data['id']}/").status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(f"/api/orders/{data['id']}/summary/").status_code, status.HTTP_200_OK)
        response = self.client.delete(f"/api/orders/{data['id']}/")
        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')

    def test_vendor_cannot_manage_orders(self):
        self.as_user(self.vendor_user)

        response = self.client.get('/api/orders/')
        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')

    def test_anonymous_request_rejected(self):
        response = self.client.get('/api/orders/')
        self.assertError(response, status.HTTP_401_UNAUTHORIZED, 'NOT_AUTHENTICATED')

    def test_update_assign_cancel_and_delete(self):
        data = self.create_order(vendor=self.vendor)
        url = f"/api/orders/{data['id']}/"

        response = self.client.put(url, {
            'items': [{'sku': 'B', 'quantity': 2, 'price_per_unit': '3.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['data']['total_value'], '6.00')

        response = self.client.post(f'{url}assign_vendor/', {'vendor_id': self.other_vendor.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['data']['status'], 'ASSIGNED')

        response = self.client.delete(url)
        self.assertError(response, status.HTTP_409_CONFLICT, 'ORDER_LOCKED')

        response = self.client.post(f'{url}cancel/', {'reason': 'duplicate'}, format='json')
        self.assertEqual(response.data['data']['status'], 'CANCELLED')

        other = self.create_order('ORD-2')
        response = self.client.delete(f"/api/orders/{other['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'id': other['id'], 'order_number': 'ORD-2', 'deleted': True})

    def test_unknown_order(self):
        self.as_user(self.ops_user)

        response = self.client.get('/api/orders/00000000-0000-0000-0000-000000000000/')

        self.assertError(response, status.HTTP_404_NOT_FOUND, 'NOT_FOUND_OR_FORBIDDEN')


class VendorAssignmentAPITest(WorkflowAPITestCase):

    def setUp(self):
        super().setUp()
        self.order = self.create_order(vendor=self.vendor)
        self.url = f"/api/vendor/assignments/{self.assignment_id(self.order)}/status/"

    def test_partial_confirmation(self):
        self.as_user(self.vendor_user)

        response = self.client.post(self.url, {
            'status': AssignmentStatus.VENDOR_CONFIRMED_PARTIAL, 'confirmed_quantity': 6,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        data = response.data['data']
        self.assertEqual(data['assignment']['confirmed_quantity'], 6)
        self.assertTrue(data['order_status_updated'])
        self.assertEqual(data['new_order_status'], 'PROCESSING')

        response = self.client.post(self.url, {'status': AssignmentStatus.VENDOR_CONFIRMED_FULL}, format='json')
        self.assertError(response, status.HTTP_409_CONFLICT, 'ALREADY_PROCESSED')

    def test_quantity_out_of_range(self):
        self.as_user(self.vendor_user)

        response = self.client.patch(self.url, {
            'status': AssignmentStatus.VENDOR_CONFIRMED_PARTIAL, 'confirmed_quantity': 11,
        }, format='json')

        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'INVALID_QUANTITY')

    def test_other_vendor_gets_not_found(self):
        self.as_user(self.other_vendor_user)

        response = self.client.post(self.url, {'status': AssignmentStatus.VENDOR_CONFIRMED_FULL}, format='json')
        self.assertError(response, status.HTTP_404_NOT_FOUND, 'NOT_FOUND_OR_FORBIDDEN')

        response = self.client.get('/api/vendor/assignments/')
        self.assertEqual(response.data['data']['total'], 0)

    def test_vendor_lists_own_assignments(self):
        self.as_user(self.vendor_user)

        response = self.client.get('/api/vendor/assignments/', {'status': AssignmentStatus.PENDING_CONFIRMATION})

        self.assertEqual(response.data['data']['total'], 1)
        self.assertEqual(response.data['data']['results'][0]['order_number'], 'ORD-1')

    def test_back_office_cannot_decide_for_vendor(self):
        self.as_user(self.ops_user)

        response = self.client.post(self.url, {'status': AssignmentStatus.VENDOR_CONFIRMED_FULL}, format='json')

        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')

    def test_vendor_role_without_profile(self):
        self.as_user(make_user('drifter', Role.VENDOR))

        response = self.client.get('/api/vendor/assignments/')

        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')

    def test_notifications_reach_back_office_inbox(self):
        admin = make_user('admin', Role.ADMIN)
        self.as_user(self.vendor_user)

        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(self.url, {'status': AssignmentStatus.VENDOR_CONFIRMED_FULL}, format='json')

        self.assertEqual(Notification.objects.filter(recipient=admin).count(), 1)
        self.assertEqual(Notification.objects.filter(recipient=self.accounts_user).count(), 1)
        self.assertFalse(Notification.objects.filter(recipient=self.ops_user).exists())

        self.as_user(admin)
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.data['count'], 1)
        notification_id = response.data['results'][0]['id']

        response = self.client.post(f'/api/notifications/{notification_id}/mark_read/')
        self.assertTrue(response.data['data']['is_read'])


@override_settings(OMS=MEMORY_STORE)
class DispatchAndReceiptAPITest(WorkflowAPITestCase):

    def setUp(self):
        super().setUp()
        self.order = self.create_order(vendor=self.vendor)
        self.assignment = Assignment.objects.get(pk=self.assignment_id(self.order))
        self.as_user(self.vendor_user)
        self.client.post(
            f'/api/vendor/assignments/{self.assignment.id}/status/',
            {'status': AssignmentStatus.VENDOR_CONFIRMED_FULL}, format='json'
        )

    def create_dispatch(self, quantity=10):
        self.as_user(self.vendor_user)
        return self.client.post('/api/dispatches/', {
            'awb_number': 'AWB-1',
            'logistics_partner': 'BlueDart',
            'items': [{'assignment_id': str(self.assignment.id), 'dispatched_quantity': quantity}],
        }, format='json')

    def test_dispatch_receipt_and_ticket(self):
        response = self.create_dispatch()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        dispatch = response.data['data']
        self.assertEqual(dispatch['status'], DispatchStatus.DISPATCHED)
        self.assertFalse(dispatch['has_goods_receipt'])

        response = self.client.post(
            f"/api/dispatches/{dispatch['id']}/upload_proof/",
            {'file': SimpleUploadedFile('proof.pdf', b'%PDF', content_type='application/pdf')},
            format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['data']['file_name'], 'proof.pdf')

        self.as_user(self.ops_user)
        response = self.client.post('/api/grns/', {
            'dispatch_id': dispatch['id'],
            'items': [{'dispatch_item_id': dispatch['items'][0]['id'], 'received_quantity': 8}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        data = response.data['data']
        self.assertEqual(data['grn']['status'], 'VERIFIED_MISMATCH')
        self.assertEqual(data['ticket']['priority'], TicketPriority.HIGH)
        self.assertIn('Shortage: 2 units', data['ticket']['description'])
        self.assertEqual(data['order_updates'][0]['new_status'], 'PARTIALLY_FULFILLED')
        self.assertEqual(Dispatch.objects.get().status, DispatchStatus.DELIVERED)

        response = self.client.post(
            f"/api/tickets/{data['ticket']['id']}/status/", {'status': 'RESOLVED'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIsNotNone(response.data['data']['resolved_at'])

        response = self.client.post('/api/grns/', {
            'dispatch_id': dispatch['id'],
            'items': [{'dispatch_item_id': dispatch['items'][0]['id'], 'received_quantity': 10}],
        }, format='json')
        self.assertError(response, status.HTTP_409_CONFLICT, 'GRN_ALREADY_EXISTS')

    def test_over_dispatch_rejected(self):
        response = self.create_dispatch(quantity=11)

        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'INVALID_QUANTITY')
        self.assertFalse(Dispatch.objects.exists())

    def test_vendor_scoping(self):
        dispatch_id = self.create_dispatch().data['data']['id']

        self.as_user(self.other_vendor_user)
        response = self.client.get(f'/api/dispatches/{dispatch_id}/')
        self.assertError(response, status.HTTP_404_NOT_FOUND, 'NOT_FOUND_OR_FORBIDDEN')
        self.assertEqual(self.client.get('/api/dispatches/').data['data']['total'], 0)
        response = self.client.get('/api/dispatches/', {'vendor_id': self.vendor.id})
        self.assertEqual(response.data['data']['total'], 0)

        self.as_user(self.ops_user)
        self.assertEqual(self.client.get('/api/dispatches/').data['data']['total'], 1)
        response = self.client.get('/api/dispatches/', {'vendor_id': self.other_vendor.id})
        self.assertEqual(response.data['data']['total'], 0)
        response = self.client.get('/api/dispatches/', {'vendor_id': self.vendor.id, 'status': 'DISPATCHED'})
        self.assertEqual(response.data['data']['total'], 1)
        response = self.client.post('/api/dispatches/', {'items': []}, format='json')
        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')

    def test_status_cannot_regress(self):
        dispatch_id = self.create_dispatch().data['data']['id']
        self.as_user(self.ops_user)

        response = self.client.patch(f'/api/dispatches/{dispatch_id}/status/', {'status': 'IN_TRANSIT'}, format='json')
        self.assertEqual(response.data['data']['status'], 'IN_TRANSIT')

        response = self.client.patch(f'/api/dispatches/{dispatch_id}/status/', {'status': 'PENDING'}, format='json')
        self.assertError(response, status.HTTP_400_BAD_REQUEST, 'INVALID_TRANSITION')

    def test_audit_log_is_read_only(self):
        self.as_user(self.ops_user)

        response = self.client.get('/api/audit-logs/', {'entity_type': 'Assignment'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'assignment:confirmed')

        entry_id = response.data['results'][0]['id']
        response = self.client.delete(f'/api/audit-logs/{entry_id}/')
        self.assertError(response, status.HTTP_405_METHOD_NOT_ALLOWED, 'METHOD_NOT_ALLOWED')

        self.as_user(self.vendor_user)
        response = self.client.get('/api/audit-logs/')
        self.assertError(response, status.HTTP_403_FORBIDDEN, 'FORBIDDEN')
