"""
Vendor-facing assignment views.
"""

from rest_framework import viewsets
from rest_framework.decorators import action

from ..filters import AssignmentFilter
from ..services import AssignmentService
from ..serializers.assignment_serializers import AssignmentSerializer, AssignmentStatusUpdateSerializer
from ..permissions import IsVendor
from .base import WorkflowViewMixin, success_response


class VendorAssignmentViewSet(WorkflowViewMixin, viewsets.GenericViewSet):
    """Assignments of the vendor linked to the requesting user."""

    service_class = AssignmentService
    serializer_class = AssignmentSerializer
    permission_classes = [IsVendor]
    filterset_class = AssignmentFilter

    def list(self, request):
        page = self.service.list_vendor_assignments(
            self.get_vendor_id(), self.filter_params(), **self.page_params()
        )
        return self.paginated_response(page, AssignmentSerializer)

    def retrieve(self, request, pk=None):
        assignment = self.service.get_vendor_assignment(pk, self.get_vendor_id())
        return success_response(AssignmentSerializer(assignment).data)

    @action(detail=True, methods=['post', 'patch'], url_path='status')
    def update_status(self, request, pk=None):
        """Confirm in full, confirm partially or decline the assignment."""
        data = self.validated(AssignmentStatusUpdateSerializer)
        result = self.service.update_status(
            self.actor,
            pk,
            self.get_vendor_id(),
            data['status'],
            confirmed_quantity=data.get('confirmed_quantity'),
            remarks=data.get('remarks'),
        )
        return success_response({
            'assignment': AssignmentSerializer(result.assignment).data,
            'order_status_updated': result.order_status_updated,
            'new_order_status': result.new_order_status,
        })
