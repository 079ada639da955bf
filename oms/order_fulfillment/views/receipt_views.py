"""
Goods receipt and ticket views.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action

from ..filters import GoodsReceiptFilter, TicketFilter
from ..services import GoodsReceiptService
from ..serializers.receipt_serializers import (
    GoodsReceiptCreateSerializer, GoodsReceiptNoteSerializer,
    TicketSerializer, TicketStatusSerializer
)
from ..permissions import IsAdminOrOps, IsAdminOpsOrAccounts
from .base import WorkflowViewMixin, success_response


class GoodsReceiptViewSet(WorkflowViewMixin, viewsets.GenericViewSet):
    """Receiving desk: record what arrived for a dispatch."""

    service_class = GoodsReceiptService
    serializer_class = GoodsReceiptNoteSerializer
    filterset_class = GoodsReceiptFilter

    def get_permissions(self):
        if self.action == 'create':
            return [IsAdminOrOps()]
        return [IsAdminOpsOrAccounts()]

    def list(self, request):
        page = self.service.list_grns(self.filter_params(), **self.page_params())
        return self.paginated_response(page, GoodsReceiptNoteSerializer)

    def retrieve(self, request, pk=None):
        return success_response(GoodsReceiptNoteSerializer(self.service.get_grn(pk)).data)

    def create(self, request):
        data = self.validated(GoodsReceiptCreateSerializer)
        result = self.service.record_grn(
            self.actor,
            data['dispatch_id'],
            items=data['items'],
            operator_remarks=data.get('operator_remarks', ''),
            received_at=data.get('received_at'),
        )
        grn = self.service.get_grn(result.grn.id)
        return success_response({
            'grn': GoodsReceiptNoteSerializer(grn).data,
            'ticket': TicketSerializer(result.ticket).data if result.ticket else None,
            'order_updates': result.order_updates,
        }, status.HTTP_201_CREATED)


class TicketViewSet(WorkflowViewMixin, viewsets.GenericViewSet):
    """Mismatch tickets raised by goods receipts."""

    service_class = GoodsReceiptService
    serializer_class = TicketSerializer
    filterset_class = TicketFilter

    def get_permissions(self):
        if self.action == 'update_status':
            return [IsAdminOrOps()]
        return [IsAdminOpsOrAccounts()]

    def list(self, request):
        page = self.service.list_tickets(self.filter_params(), **self.page_params())
        return self.paginated_response(page, TicketSerializer)

    def retrieve(self, request, pk=None):
        return success_response(TicketSerializer(self.service.get_ticket(pk)).data)

    @action(detail=True, methods=['post', 'patch'], url_path='status')
    def update_status(self, request, pk=None):
        data = self.validated(TicketStatusSerializer)
        ticket = self.service.update_ticket_status(self.actor, pk, data['status'])
        return success_response(TicketSerializer(ticket).data)
