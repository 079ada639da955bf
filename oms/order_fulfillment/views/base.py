"""
Shared plumbing for the order fulfillment viewsets.
"""

from rest_framework import status
from rest_framework.response import Response

from ..context import ActorContext, Role
from ..exceptions import ValidationException, NotFoundOrForbiddenException


def success_response(data, http_status=status.HTTP_200_OK):
    return Response({'success': True, 'data': data}, status=http_status)


class WorkflowViewMixin:
    """
    Helpers for viewsets that delegate to the workflow services.

    ``service_class`` is instantiated once per request with its default
    collaborators. ``filterset_class`` validates the list query string.
    """

    service_class = None
    filterset_class = None

    @property
    def service(self):
        if not hasattr(self, '_service'):
            self._service = self.service_class()
        return self._service

    @property
    def actor(self) -> ActorContext:
        if not hasattr(self, '_actor'):
            self._actor = ActorContext.from_request(self.request)
        return self._actor

    def get_vendor_id(self):
        """
        Vendor linked to the requesting user.

        Raises:
            NotFoundOrForbiddenException: If the user has no vendor profile
        """
        vendor = getattr(self.request.user, 'vendor_profile', None)
        if vendor is None:
            raise NotFoundOrForbiddenException('Vendor')
        return vendor.id

    def get_scoped_vendor_id(self):
        """Vendors only see their own records; back-office users see everything."""
        if self.actor.has_role(Role.ADMIN, Role.OPS, Role.ACCOUNTS):
            return None
        return self.get_vendor_id()

    def paginated_response(self, page, serializer_class):
        return success_response({
            'results': serializer_class(page['results'], many=True, context=self.get_serializer_context()).data,
            'total': page['total'],
            'page': page['page'],
            'limit': page['limit'],
            'pages': page['pages'],
        })

    def page_params(self):
        params = self.request.query_params
        return {'page': params.get('page', 1), 'limit': params.get('limit')}

    def filter_params(self):
        """
        Validated list filters.

        Raises:
            ValidationException: If a query parameter does not parse
        """
        filterset = self.filterset_class(
            self.request.query_params, queryset=self.filterset_class._meta.model.objects.none()
        )
        if not filterset.is_valid():
            errors = {name: list(messages) for name, messages in filterset.errors.items()}
            raise ValidationException("Invalid filter parameters", errors)
        return filterset.form.cleaned_data

    def validated(self, serializer_class, data=None):
        serializer = serializer_class(data=self.request.data if data is None else data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

