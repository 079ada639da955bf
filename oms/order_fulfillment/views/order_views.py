"""
Order views for the order fulfillment workflow.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action

from ..filters import OrderFilter
from ..services import OrderService
from ..serializers.order_serializers import (
    OrderCreateSerializer, OrderUpdateSerializer, AssignVendorSerializer,
    CancelOrderSerializer, OrderListSerializer, OrderDetailSerializer
)
from ..permissions import IsAdminOrOps, IsAdminOpsOrAccounts
from .base import WorkflowViewMixin, success_response


class OrderViewSet(WorkflowViewMixin, viewsets.GenericViewSet):
    """
    ViewSet for Order management.

    Back-office users create, edit and assign orders; accounts can read them.
    """

    service_class = OrderService
    serializer_class = OrderDetailSerializer
    filterset_class = OrderFilter

    def get_permissions(self):
        if self.action in ['list', 'retrieve', 'summary']:
            return [IsAdminOpsOrAccounts()]
        return [IsAdminOrOps()]

    def list(self, request):
        page = self.service.list_orders(self.filter_params(), **self.page_params())
        return self.paginated_response(page, OrderListSerializer)

    def retrieve(self, request, pk=None):
        order = self.service.get_order(pk)
        return success_response(OrderDetailSerializer(order).data)

    def create(self, request):
        data = self.validated(OrderCreateSerializer)
        order = self.service.create_order(
            self.actor,
            order_number=data['order_number'],
            items=data['items'],
            vendor_id=data.get('vendor_id'),
            source=data['source'],
        )
        order = self.service.get_order(order.id)
        return success_response(OrderDetailSerializer(order).data, status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        data = self.validated(OrderUpdateSerializer)
        order = self.service.update_order(self.actor, pk, items=data['items'], vendor_id=data.get('vendor_id'))
        order = self.service.get_order(order.id)
        return success_response(OrderDetailSerializer(order).data)

    def destroy(self, request, pk=None):
        snapshot = self.service.delete_order(self.actor, pk)
        return success_response({'id': pk, 'order_number': snapshot['order_number'], 'deleted': True})

    @action(detail=True, methods=['post'])
    def assign_vendor(self, request, pk=None):
        """Replace the order's assignments with fresh ones for another vendor."""
        data = self.validated(AssignVendorSerializer)
        order = self.service.assign_vendor(self.actor, pk, data['vendor_id'])
        order = self.service.get_order(order.id)
        return success_response(OrderDetailSerializer(order).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel an order."""
        data = self.validated(CancelOrderSerializer)
        order = self.service.cancel_order(self.actor, pk, data['reason'])
        return success_response(OrderDetailSerializer(self.service.get_order(order.id)).data)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        """Get order progress across assignments and dispatches."""
        return success_response(self.service.get_order_summary(pk))
