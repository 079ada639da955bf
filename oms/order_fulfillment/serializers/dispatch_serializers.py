"""
Dispatch serializers for the logistics handoff.
"""

from rest_framework import serializers

from ..models import Dispatch, DispatchItem, DispatchStatus, Attachment


class DispatchItemInputSerializer(serializers.Serializer):
    assignment_id = serializers.UUIDField()
    dispatched_quantity = serializers.IntegerField(min_value=1)


class DispatchCreateSerializer(serializers.Serializer):
    """Serializer for creating a dispatch."""

    awb_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    logistics_partner = serializers.CharField(max_length=100, required=False, allow_blank=True)
    dispatch_date = serializers.DateTimeField(required=False, allow_null=True)
    estimated_delivery_date = serializers.DateTimeField(required=False, allow_null=True)
    remarks = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    items = DispatchItemInputSerializer(many=True, allow_empty=False)

    def validate_items(self, value):
        """Reject the same assignment twice in one dispatch."""
        ids = [item['assignment_id'] for item in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Duplicate assignments in dispatch")
        return value

    def validate(self, attrs):
        eta = attrs.get('estimated_delivery_date')
        dispatched = attrs.get('dispatch_date')
        if eta and dispatched and eta < dispatched:
            raise serializers.ValidationError(
                {'estimated_delivery_date': "Estimated delivery cannot be before the dispatch date"}
            )
        return attrs


class DispatchStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DispatchStatus.choices)


class ProofUploadSerializer(serializers.Serializer):
    file = serializers.FileField(allow_empty_file=False)


class AttachmentSerializer(serializers.ModelSerializer):
    uploaded_by_name = serializers.CharField(source='uploaded_by.username', read_only=True, default=None)

    class Meta:
        model = Attachment
        fields = ['id', 'file_name', 'url', 'file_size', 'mime_type', 'uploaded_by_name', 'uploaded_at']
        read_only_fields = fields


class DispatchItemSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='assignment.order_item.order.order_number', read_only=True)
    product_name = serializers.CharField(source='assignment.order_item.product_name', read_only=True)
    sku = serializers.CharField(source='assignment.order_item.sku', read_only=True)
    confirmed_quantity = serializers.IntegerField(source='assignment.confirmed_quantity', read_only=True)

    class Meta:
        model = DispatchItem
        fields = [
            'id', 'assignment', 'order_number', 'product_name', 'sku',
            'confirmed_quantity', 'dispatched_quantity'
        ]
        read_only_fields = fields


class DispatchSerializer(serializers.ModelSerializer):
    """Serializer for dispatch details."""

    vendor_name = serializers.CharField(source='vendor.company_name', read_only=True)
    items = DispatchItemSerializer(many=True, read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)
    has_goods_receipt = serializers.SerializerMethodField()

    class Meta:
        model = Dispatch
        fields = [
            'id', 'vendor', 'vendor_name', 'awb_number', 'logistics_partner',
            'dispatch_date', 'estimated_delivery_date', 'delivered_at', 'status',
            'remarks', 'items', 'attachments', 'has_goods_receipt',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_has_goods_receipt(self, obj):
        return hasattr(obj, 'goods_receipt')


class DispatchListSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.company_name', read_only=True)
    total_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Dispatch
        fields = [
            'id', 'vendor', 'vendor_name', 'awb_number', 'logistics_partner',
            'dispatch_date', 'status', 'total_quantity', 'created_at'
        ]
