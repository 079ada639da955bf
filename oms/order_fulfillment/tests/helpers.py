"""
Shared fixtures for the order fulfillment tests.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import TestCase
from django.utils import timezone

from vendor_management.models import Vendor, VendorStatus

from ..adapters import InMemoryNotificationChannel, InMemoryFileStore
from ..context import ActorContext, Role
from ..models import AssignmentStatus
from ..services import (
    InMemoryAuditLedger, OrderService, AssignmentService, DispatchService, GoodsReceiptService
)


def make_user(username, *roles, **extra):
    user = get_user_model().objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='testpass123',
        **extra
    )
    for role in roles:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
    return user


def make_vendor(code, user=None, status=VendorStatus.ACTIVE, verified=True):
    return Vendor.objects.create(
        company_name=f'Vendor {code}',
        vendor_code=code,
        email=f'{code.lower()}@vendor.example.com',
        user=user,
        status=status,
        verified=verified,
        verified_at=timezone.now() if verified else None,
    )


class WorkflowTestCase(TestCase):
    """
    Base test case with users for every role, two eligible vendors and the
    workflow services wired to in-memory collaborators.
    """

    def setUp(self):
        self.ops_user = make_user('ops', Role.OPS)
        self.admin_user = make_user('admin', Role.ADMIN)
        self.accounts_user = make_user('accounts', Role.ACCOUNTS)
        self.vendor_user = make_user('vendor1', Role.VENDOR)
        self.other_vendor_user = make_user('vendor2', Role.VENDOR)

        self.vendor = make_vendor('V1', user=self.vendor_user)
        self.other_vendor = make_vendor('V2', user=self.other_vendor_user)

        self.ops = ActorContext.for_user(self.ops_user, ip_address='10.0.0.1', user_agent='tests')
        self.vendor_actor = ActorContext.for_user(self.vendor_user)
        self.other_vendor_actor = ActorContext.for_user(self.other_vendor_user)

        self.audit = InMemoryAuditLedger()
        self.notifier = InMemoryNotificationChannel()
        self.file_store = InMemoryFileStore()

        self.order_service = OrderService(audit=self.audit, notifier=self.notifier)
        self.assignment_service = AssignmentService(audit=self.audit, notifier=self.notifier)
        self.dispatch_service = DispatchService(file_store=self.file_store, audit=self.audit, notifier=self.notifier)
        self.receipt_service = GoodsReceiptService(audit=self.audit, notifier=self.notifier)

    def items(self, *lines):
        """Build item payloads from (sku, quantity, price) tuples."""
        return [
            {'sku': sku, 'product_name': f'Product {sku}', 'quantity': quantity, 'price_per_unit': Decimal(str(price))}
            for sku, quantity, price in lines
        ]

    def create_order(self, order_number='ORD-1', vendor=None, lines=(('X', 10, 5),)):
        vendor_id = vendor.id if vendor is not None else None
        return self.order_service.create_order(self.ops, order_number, self.items(*lines), vendor_id=vendor_id)

    def assignments_of(self, order):
        return [assignment for item in order.items.order_by('sku') for assignment in item.assignments.all()]

    def confirm(self, assignment, status=AssignmentStatus.VENDOR_CONFIRMED_FULL, quantity=None, actor=None):
        return self.assignment_service.update_status(
            actor or self.vendor_actor, assignment.id, assignment.vendor_id, status,
            confirmed_quantity=quantity
        )

    def dispatch(self, *pairs, vendor=None):
        """Dispatch (assignment, quantity) pairs for ``vendor``."""
        vendor = vendor or self.vendor
        return self.dispatch_service.create_dispatch(
            self.vendor_actor,
            vendor.id,
            [{'assignment_id': assignment.id, 'dispatched_quantity': quantity} for assignment, quantity in pairs],
            awb_number='AWB-100',
            logistics_partner='BlueDart',
        )

    def confirmed_dispatch(self, order_number='ORD-1', lines=(('X', 10, 5),)):
        """Order confirmed in full by the vendor and dispatched completely."""
        order = self.create_order(order_number, vendor=self.vendor, lines=lines)
        assignments = self.assignments_of(order)
        for assignment in assignments:
            self.confirm(assignment)
            assignment.refresh_from_db()
        dispatch = self.dispatch(*[(a, a.confirmed_quantity) for a in assignments])
        return order, assignments, dispatch
