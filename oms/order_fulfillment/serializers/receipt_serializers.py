"""
Goods receipt and ticket serializers.
"""

from rest_framework import serializers

from ..models import GoodsReceiptNote, GoodsReceiptItem, Ticket, TicketStatus


class GoodsReceiptItemInputSerializer(serializers.Serializer):
    dispatch_item_id = serializers.UUIDField()
    received_quantity = serializers.IntegerField(min_value=0)
    damage_reported = serializers.BooleanField(default=False)
    damage_description = serializers.CharField(required=False, allow_blank=True, default='')
    item_remarks = serializers.CharField(required=False, allow_blank=True, default='')


class GoodsReceiptCreateSerializer(serializers.Serializer):
    """Serializer for recording a goods receipt against a dispatch."""

    dispatch_id = serializers.UUIDField()
    operator_remarks = serializers.CharField(required=False, allow_blank=True, default='')
    received_at = serializers.DateTimeField(required=False, allow_null=True)
    items = GoodsReceiptItemInputSerializer(many=True, allow_empty=False)


class GoodsReceiptItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='assignment.order_item.product_name', read_only=True)
    sku = serializers.CharField(source='assignment.order_item.sku', read_only=True)
    order_number = serializers.CharField(source='assignment.order_item.order.order_number', read_only=True)

    class Meta:
        model = GoodsReceiptItem
        fields = [
            'id', 'dispatch_item', 'assignment', 'order_number', 'product_name', 'sku',
            'dispatched_quantity', 'received_quantity', 'discrepancy_quantity',
            'damage_reported', 'damage_description', 'item_remarks', 'status'
        ]
        read_only_fields = fields


class TicketSerializer(serializers.ModelSerializer):
    grn_number = serializers.CharField(source='grn.grn_number', read_only=True, default=None)

    class Meta:
        model = Ticket
        fields = [
            'id', 'ticket_number', 'grn', 'grn_number', 'title', 'description',
            'priority', 'status', 'resolved_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class GoodsReceiptNoteSerializer(serializers.ModelSerializer):
    """Serializer for GRN details."""

    awb_number = serializers.CharField(source='dispatch.awb_number', read_only=True)
    vendor_name = serializers.CharField(source='dispatch.vendor.company_name', read_only=True)
    verified_by_name = serializers.CharField(source='verified_by.username', read_only=True, default=None)
    items = GoodsReceiptItemSerializer(many=True, read_only=True)
    ticket = serializers.SerializerMethodField()

    class Meta:
        model = GoodsReceiptNote
        fields = [
            'id', 'grn_number', 'dispatch', 'awb_number', 'vendor_name', 'status',
            'operator_remarks', 'received_at', 'verified_by_name', 'verified_at',
            'items', 'ticket', 'created_at'
        ]
        read_only_fields = fields

    def get_ticket(self, obj):
        if not hasattr(obj, 'ticket'):
            return None
        ticket = obj.ticket
        return {'id': ticket.id, 'ticket_number': ticket.ticket_number, 'priority': ticket.priority}


class TicketStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TicketStatus.choices)
