from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('vendor_management', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_number', models.CharField(help_text='Unique business identifier of the order',
                                                  max_length=50, unique=True)),
                ('status', models.CharField(
                    choices=[('RECEIVED', 'Received'), ('ASSIGNED', 'Assigned'), ('PROCESSING', 'Processing'),
                             ('PARTIALLY_FULFILLED', 'Partially fulfilled'), ('FULFILLED', 'Fulfilled'),
                             ('CLOSED', 'Closed'), ('CANCELLED', 'Cancelled')],
                    default='RECEIVED', help_text='Current order status in the fulfillment workflow',
                    max_length=20)),
                ('source', models.CharField(
                    choices=[('MANUAL_ENTRY', 'Manual entry'), ('EXCEL_IMPORT', 'Excel import')],
                    default='MANUAL_ENTRY', max_length=20)),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'),
                                                    help_text='Sum of all item totals', max_digits=14)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(
                    help_text='User who created the order', null=True,
                    on_delete=django.db.models.deletion.SET_NULL, related_name='created_orders',
                    to=settings.AUTH_USER_MODEL)),
                ('primary_vendor', models.ForeignKey(
                    blank=True, help_text='Vendor selected when the order was created or last assigned',
                    null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='primary_orders',
                    to='vendor_management.vendor')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='of_order_status_idx'),
                    models.Index(fields=['primary_vendor', 'status'], name='of_order_vendor_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_name', models.CharField(max_length=255)),
                ('sku', models.CharField(blank=True, max_length=100)),
                ('quantity', models.PositiveIntegerField(help_text='Units ordered')),
                ('price_per_unit', models.DecimalField(decimal_places=2, max_digits=12)),
                ('total_price', models.DecimalField(decimal_places=2, help_text='price_per_unit * quantity',
                                                    max_digits=14)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(
                    help_text='Order this item belongs to', on_delete=django.db.models.deletion.CASCADE,
                    related_name='items', to='order_fulfillment.order')),
            ],
            options={
                'ordering': ['created_at', 'sku'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name='of_item_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(price_per_unit__gt=0), name='of_item_price_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Assignment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('assigned_quantity', models.PositiveIntegerField()),
                ('confirmed_quantity', models.PositiveIntegerField(blank=True, null=True)),
                ('status', models.CharField(
                    choices=[('PENDING_CONFIRMATION', 'Pending confirmation'),
                             ('VENDOR_CONFIRMED_FULL', 'Confirmed in full'),
                             ('VENDOR_CONFIRMED_PARTIAL', 'Partially confirmed'),
                             ('VENDOR_DECLINED', 'Declined'), ('INVOICED', 'Invoiced'),
                             ('DISPATCHED', 'Dispatched')],
                    default='PENDING_CONFIRMATION', max_length=30)),
                ('vendor_remarks', models.TextField(blank=True)),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('vendor_action_at', models.DateTimeField(blank=True, null=True)),
                ('assigned_by', models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='made_assignments',
                    to=settings.AUTH_USER_MODEL)),
                ('order_item', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='assignments',
                    to='order_fulfillment.orderitem')),
                ('vendor', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='assignments',
                    to='vendor_management.vendor')),
            ],
            options={
                'ordering': ['-assigned_at'],
                'indexes': [models.Index(fields=['vendor', 'status'], name='of_assignment_vendor_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('order_item', 'vendor'),
                                            name='of_assignment_item_vendor_unique'),
                    models.CheckConstraint(
                        condition=(
                            models.Q(confirmed_quantity__isnull=True)
                            | models.Q(confirmed_quantity__gt=0,
                                       confirmed_quantity__lte=models.F('assigned_quantity'))
                        ),
                        name='of_assignment_confirmed_within_assigned'),
                    models.CheckConstraint(
                        condition=(
                            ~models.Q(status__in=['PENDING_CONFIRMATION', 'VENDOR_DECLINED'])
                            | models.Q(confirmed_quantity__isnull=True)
                        ),
                        name='of_assignment_unconfirmed_has_no_quantity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Dispatch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('awb_number', models.CharField(default='LOCAL-PORTER', help_text='Air waybill number',
                                                max_length=100)),
                ('logistics_partner', models.CharField(default='Local Porter', max_length=100)),
                ('dispatch_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('estimated_delivery_date', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(
                    choices=[('PENDING', 'Pending'), ('PROCESSING', 'Processing'), ('DISPATCHED', 'Dispatched'),
                             ('IN_TRANSIT', 'In transit'), ('DELIVERED', 'Delivered'), ('FAILED', 'Failed')],
                    default='DISPATCHED', max_length=20)),
                ('remarks', models.TextField(blank=True, max_length=1000)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_dispatches',
                    to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='dispatches',
                    to='vendor_management.vendor')),
            ],
            options={
                'ordering': ['-created_at'],
                'verbose_name_plural': 'dispatches',
                'indexes': [
                    models.Index(fields=['vendor', 'status'], name='of_dispatch_vendor_idx'),
                    models.Index(fields=['awb_number'], name='of_dispatch_awb_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DispatchItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('dispatched_quantity', models.PositiveIntegerField()),
                ('assignment', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='dispatch_items',
                    to='order_fulfillment.assignment')),
                ('dispatch', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='items',
                    to='order_fulfillment.dispatch')),
            ],
            options={
                'ordering': ['dispatch', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('dispatch', 'assignment'), name='of_dispatch_item_unique'),
                    models.CheckConstraint(condition=models.Q(dispatched_quantity__gt=0),
                                           name='of_dispatch_item_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Attachment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255)),
                ('url', models.CharField(help_text='Location returned by the file store', max_length=1000)),
                ('file_size', models.PositiveIntegerField(default=0)),
                ('mime_type', models.CharField(blank=True, max_length=100)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('dispatch', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='attachments',
                    to='order_fulfillment.dispatch')),
                ('uploaded_by', models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name='uploaded_attachments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-uploaded_at'],
            },
        ),
        migrations.CreateModel(
            name='GoodsReceiptNote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('grn_number', models.CharField(max_length=30, unique=True)),
                ('status', models.CharField(
                    choices=[('PENDING_VERIFICATION', 'Pending verification'), ('VERIFIED_OK', 'Verified OK'),
                             ('VERIFIED_MISMATCH', 'Verified with mismatch'),
                             ('PARTIALLY_VERIFIED', 'Partially verified')],
                    default='PENDING_VERIFICATION', max_length=25)),
                ('operator_remarks', models.TextField(blank=True)),
                ('received_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('dispatch', models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT, related_name='goods_receipt',
                    to='order_fulfillment.dispatch')),
                ('verified_by', models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_grns',
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'goods receipt note',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', '-created_at'], name='of_grn_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='GoodsReceiptItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('dispatched_quantity', models.PositiveIntegerField()),
                ('received_quantity', models.PositiveIntegerField()),
                ('discrepancy_quantity', models.IntegerField(
                    help_text='received - dispatched; negative is a shortage, positive an excess')),
                ('damage_reported', models.BooleanField(default=False)),
                ('damage_description', models.TextField(blank=True)),
                ('item_remarks', models.TextField(blank=True)),
                ('status', models.CharField(
                    choices=[('VERIFIED_OK', 'Verified OK'), ('SHORTAGE_REPORTED', 'Shortage reported'),
                             ('EXCESS_RECEIVED', 'Excess received'), ('DAMAGE_REPORTED', 'Damage reported')],
                    max_length=20)),
                ('assignment', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='receipt_items',
                    to='order_fulfillment.assignment')),
                ('dispatch_item', models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT, related_name='receipt_item',
                    to='order_fulfillment.dispatchitem')),
                ('grn', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='items',
                    to='order_fulfillment.goodsreceiptnote')),
            ],
            options={
                'ordering': ['grn', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('ticket_number', models.CharField(max_length=20, unique=True)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('priority', models.CharField(
                    choices=[('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('URGENT', 'Urgent')],
                    default='MEDIUM', max_length=10)),
                ('status', models.CharField(
                    choices=[('OPEN', 'Open'), ('IN_PROGRESS', 'In progress'), ('RESOLVED', 'Resolved'),
                             ('CLOSED', 'Closed')],
                    default='OPEN', max_length=15)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tickets',
                    to=settings.AUTH_USER_MODEL)),
                ('grn', models.OneToOneField(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='ticket',
                    to='order_fulfillment.goodsreceiptnote')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'priority'], name='of_ticket_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(
                    choices=[('order:create', 'Order created'), ('order:update', 'Order updated'),
                             ('order:delete', 'Order deleted'), ('order:vendor_assign', 'Vendor assigned to order'),
                             ('order:cancel', 'Order cancelled'), ('order:status_update', 'Order status updated'),
                             ('assignment:confirmed', 'Assignment confirmed'),
                             ('assignment:partial_confirmed', 'Assignment partially confirmed'),
                             ('assignment:declined', 'Assignment declined'),
                             ('dispatch:create', 'Dispatch created'),
                             ('dispatch:proof_upload', 'Dispatch proof uploaded'),
                             ('dispatch:status_update', 'Dispatch status updated'),
                             ('grn:created', 'GRN created'), ('grn:verified_ok', 'GRN verified OK'),
                             ('grn:verified_mismatch', 'GRN verified with mismatch'),
                             ('ticket:created', 'Ticket created'),
                             ('ticket:status_update', 'Ticket status updated')],
                    max_length=50)),
                ('entity_type', models.CharField(help_text='Type of entity (Order, Assignment, Dispatch, etc.)',
                                                 max_length=50)),
                ('entity_id', models.CharField(max_length=64)),
                ('metadata', models.JSONField(blank=True, default=dict,
                                              encoder=django.core.serializers.json.DjangoJSONEncoder,
                                              help_text='Snapshot of the change')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor', models.ForeignKey(
                    blank=True, help_text='User who performed the action; empty for system actions', null=True,
                    on_delete=django.db.models.deletion.SET_NULL, related_name='audit_entries',
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id', '-created_at'], name='of_audit_entity_idx'),
                    models.Index(fields=['actor', '-created_at'], name='of_audit_actor_idx'),
                    models.Index(fields=['action', '-created_at'], name='of_audit_action_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.CharField(
                    choices=[('URGENT', 'Urgent'), ('NORMAL', 'Normal'), ('LOW', 'Low')],
                    default='NORMAL', max_length=10)),
                ('title', models.CharField(max_length=200)),
                ('body', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('recipient', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='oms_notifications',
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['recipient', 'is_read'], name='of_notification_inbox_idx')],
            },
        ),
    ]
