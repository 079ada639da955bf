"""
Django admin configuration for the order fulfillment workflow.

Workflow state changes go through the services, so most fields are
read-only here and the audit ledger cannot be edited at all.
"""

from django.contrib import admin
from .models import (
    Order, OrderItem, Assignment, Dispatch, DispatchItem, Attachment,
    GoodsReceiptNote, GoodsReceiptItem, Ticket, AuditLog, Notification
)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['id', 'product_name', 'sku', 'quantity', 'price_per_unit', 'total_price']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'status', 'primary_vendor', 'total_value', 'source', 'created_at']
    list_filter = ['status', 'source', 'created_at']
    search_fields = ['order_number', 'primary_vendor__company_name']
    readonly_fields = ['id', 'order_number', 'status', 'total_value', 'created_by', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ['order_item', 'vendor', 'assigned_quantity', 'confirmed_quantity', 'status', 'vendor_action_at']
    list_filter = ['status', 'vendor']
    search_fields = ['order_item__order__order_number', 'order_item__sku', 'vendor__company_name']
    readonly_fields = ['id', 'status', 'confirmed_quantity', 'assigned_at', 'vendor_action_at']


class DispatchItemInline(admin.TabularInline):
    model = DispatchItem
    extra = 0
    readonly_fields = ['assignment', 'dispatched_quantity']
    can_delete = False


class AttachmentInline(admin.TabularInline):
    model = Attachment
    extra = 0
    readonly_fields = ['file_name', 'url', 'file_size', 'mime_type', 'uploaded_by', 'uploaded_at']
    can_delete = False


@admin.register(Dispatch)
class DispatchAdmin(admin.ModelAdmin):
    list_display = ['awb_number', 'vendor', 'logistics_partner', 'status', 'dispatch_date', 'delivered_at']
    list_filter = ['status', 'logistics_partner', 'dispatch_date']
    search_fields = ['awb_number', 'vendor__company_name']
    readonly_fields = ['id', 'status', 'delivered_at', 'created_by', 'created_at', 'updated_at']
    inlines = [DispatchItemInline, AttachmentInline]


class GoodsReceiptItemInline(admin.TabularInline):
    model = GoodsReceiptItem
    extra = 0
    readonly_fields = [
        'dispatch_item', 'dispatched_quantity', 'received_quantity',
        'discrepancy_quantity', 'damage_reported', 'status'
    ]
    can_delete = False


@admin.register(GoodsReceiptNote)
class GoodsReceiptNoteAdmin(admin.ModelAdmin):
    list_display = ['grn_number', 'dispatch', 'status', 'received_at', 'verified_by']
    list_filter = ['status', 'received_at']
    search_fields = ['grn_number', 'dispatch__awb_number']
    readonly_fields = ['id', 'grn_number', 'status', 'verified_by', 'verified_at', 'created_at']
    inlines = [GoodsReceiptItemInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['ticket_number', 'title', 'priority', 'status', 'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['ticket_number', 'title', 'grn__grn_number']
    readonly_fields = ['id', 'ticket_number', 'grn', 'status', 'resolved_at', 'created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'entity_type', 'entity_id', 'actor', 'ip_address', 'created_at']
    list_filter = ['action', 'entity_type', 'created_at']
    search_fields = ['entity_id', 'actor__username']
    readonly_fields = [
        'id', 'actor', 'action', 'entity_type', 'entity_id',
        'metadata', 'ip_address', 'user_agent', 'created_at'
    ]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'recipient', 'priority', 'is_read', 'created_at']
    list_filter = ['priority', 'is_read']
    search_fields = ['title', 'recipient__username']
