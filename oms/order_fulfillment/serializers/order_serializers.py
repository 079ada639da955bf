"""
Order serializers for the order fulfillment workflow.

Input serializers only check shapes; business rules are enforced by the
services so every entry point gets the same error codes.
"""

from rest_framework import serializers

from ..models import Order, OrderItem, OrderSource, Assignment


class OrderItemInputSerializer(serializers.Serializer):
    """One line of an order as submitted by the client."""

    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True)
    quantity = serializers.IntegerField()
    price_per_unit = serializers.DecimalField(max_digits=12, decimal_places=2)

    def validate(self, attrs):
        if not attrs.get('product_name') and not attrs.get('sku'):
            raise serializers.ValidationError("Either product_name or sku is required")
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    """Serializer for creating orders."""

    order_number = serializers.CharField(max_length=50)
    vendor_id = serializers.IntegerField(required=False, allow_null=True)
    source = serializers.ChoiceField(choices=OrderSource.choices, default=OrderSource.MANUAL_ENTRY)
    items = OrderItemInputSerializer(many=True, allow_empty=False)


class OrderUpdateSerializer(serializers.Serializer):
    """Serializer for replacing the items of an order."""

    vendor_id = serializers.IntegerField(required=False, allow_null=True)
    items = OrderItemInputSerializer(many=True, allow_empty=False)


class AssignVendorSerializer(serializers.Serializer):
    vendor_id = serializers.IntegerField()


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')


class OrderAssignmentSerializer(serializers.ModelSerializer):
    """Assignment as shown inside an order."""

    vendor_name = serializers.CharField(source='vendor.company_name', read_only=True)

    class Meta:
        model = Assignment
        fields = [
            'id', 'vendor', 'vendor_name', 'assigned_quantity', 'confirmed_quantity',
            'status', 'vendor_remarks', 'assigned_at', 'vendor_action_at'
        ]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem model."""

    assignments = OrderAssignmentSerializer(many=True, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product_name', 'sku', 'quantity', 'price_per_unit',
            'total_price', 'assignments', 'created_at'
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Serializer for order listing."""

    primary_vendor_name = serializers.CharField(source='primary_vendor.company_name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'status', 'source', 'total_value',
            'primary_vendor', 'primary_vendor_name', 'items_count',
            'created_by_name', 'created_at', 'updated_at'
        ]

    def get_items_count(self, obj):
        return len(obj.items.all())


class OrderDetailSerializer(serializers.ModelSerializer):
    """Serializer for order details."""

    primary_vendor_name = serializers.CharField(source='primary_vendor.company_name', read_only=True, default=None)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'status', 'source', 'total_value',
            'primary_vendor', 'primary_vendor_name', 'created_by_name',
            'created_at', 'updated_at', 'items'
        ]
