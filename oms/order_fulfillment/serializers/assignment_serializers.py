"""
Assignment serializers for the vendor confirmation flow.
"""

from rest_framework import serializers

from ..models import Assignment
from ..services.workflow import AssignmentWorkflow


class AssignmentSerializer(serializers.ModelSerializer):
    """Assignment as seen by the vendor it belongs to."""

    order_id = serializers.UUIDField(source='order_item.order_id', read_only=True)
    order_number = serializers.CharField(source='order_item.order.order_number', read_only=True)
    order_status = serializers.CharField(source='order_item.order.status', read_only=True)
    product_name = serializers.CharField(source='order_item.product_name', read_only=True)
    sku = serializers.CharField(source='order_item.sku', read_only=True)
    price_per_unit = serializers.DecimalField(
        source='order_item.price_per_unit', max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = Assignment
        fields = [
            'id', 'order_id', 'order_number', 'order_status', 'product_name', 'sku',
            'price_per_unit', 'vendor', 'assigned_quantity', 'confirmed_quantity',
            'status', 'vendor_remarks', 'assigned_at', 'vendor_action_at'
        ]
        read_only_fields = fields


class AssignmentStatusUpdateSerializer(serializers.Serializer):
    """Vendor decision on an assignment."""

    status = serializers.ChoiceField(choices=[(s, s) for s in AssignmentWorkflow.VENDOR_DECISIONS])
    # Range checks happen in the service so they report INVALID_QUANTITY
    confirmed_quantity = serializers.IntegerField(required=False, allow_null=True)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=1000)
