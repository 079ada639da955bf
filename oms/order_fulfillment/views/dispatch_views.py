"""
Dispatch views for the logistics handoff.
"""

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser

from ..context import Role
from ..filters import DispatchFilter
from ..services import DispatchService
from ..serializers.dispatch_serializers import (
    DispatchCreateSerializer, DispatchStatusSerializer, ProofUploadSerializer,
    DispatchSerializer, DispatchListSerializer, AttachmentSerializer
)
from ..permissions import IsVendor, IsVendorOrBackOffice
from .base import WorkflowViewMixin, success_response


class DispatchViewSet(WorkflowViewMixin, viewsets.GenericViewSet):
    """
    Vendors create dispatches and attach proofs; back-office users follow
    them. Vendors only ever see their own dispatches.
    """

    service_class = DispatchService
    serializer_class = DispatchSerializer
    filterset_class = DispatchFilter

    def get_permissions(self):
        if self.action in ['create', 'upload_proof']:
            return [IsVendor()]
        return [IsVendorOrBackOffice()]

    def list(self, request):
        filters = self.filter_params()
        vendor_id = self.get_scoped_vendor_id()
        if vendor_id is None:
            vendor_id = filters.get('vendor_id')
        page = self.service.list_dispatches(
            vendor_id=vendor_id,
            status=filters.get('status'),
            filters=filters,
            **self.page_params()
        )
        return self.paginated_response(page, DispatchListSerializer)

    def retrieve(self, request, pk=None):
        dispatch = self.service.get_dispatch(pk, vendor_id=self.get_scoped_vendor_id())
        return success_response(DispatchSerializer(dispatch).data)

    def create(self, request):
        data = self.validated(DispatchCreateSerializer)
        dispatch = self.service.create_dispatch(
            self.actor,
            self.get_vendor_id(),
            items=data['items'],
            awb_number=data.get('awb_number'),
            logistics_partner=data.get('logistics_partner'),
            dispatch_date=data.get('dispatch_date'),
            estimated_delivery_date=data.get('estimated_delivery_date'),
            remarks=data.get('remarks', ''),
        )
        dispatch = self.service.get_dispatch(dispatch.id)
        return success_response(DispatchSerializer(dispatch).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], parser_classes=[MultiPartParser, FormParser])
    def upload_proof(self, request, pk=None):
        """Attach a proof-of-dispatch file."""
        upload = self.validated(ProofUploadSerializer)['file']
        attachment = self.service.upload_proof(
            self.actor,
            pk,
            self.get_vendor_id(),
            file_name=upload.name,
            content=upload.read(),
            content_type=getattr(upload, 'content_type', '') or '',
        )
        return success_response(AttachmentSerializer(attachment).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post', 'patch'], url_path='status')
    def update_status(self, request, pk=None):
        """Move the dispatch along its carrier lifecycle."""
        data = self.validated(DispatchStatusSerializer)
        vendor_id = None if self.actor.has_role(Role.ADMIN, Role.OPS) else self.get_vendor_id()
        dispatch = self.service.update_dispatch_status(self.actor, pk, data['status'], vendor_id=vendor_id)
        return success_response(DispatchSerializer(self.service.get_dispatch(dispatch.id)).data)
