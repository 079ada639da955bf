"""
Query-parameter filters for the list endpoints.

The viewsets validate these and hand ``form.cleaned_data`` to the service
``list_*`` methods, which own the actual queries.
"""

import django_filters
from django.db.models import Q

from .models import (
    Order, OrderStatus, Assignment, AssignmentStatus, Dispatch, DispatchStatus,
    GoodsReceiptNote, GRNStatus, Ticket, TicketStatus, TicketPriority
)


class DateRangeFilterSet(django_filters.FilterSet):
    """Adds start_date / end_date (YYYY-MM-DD, inclusive) on ``date_field``."""

    date_field = 'created_at'

    start_date = django_filters.DateFilter(lookup_expr='date__gte')
    end_date = django_filters.DateFilter(lookup_expr='date__lte')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.filters['start_date'].field_name = self.date_field
        self.filters['end_date'].field_name = self.date_field


class OrderFilter(DateRangeFilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    vendor_id = django_filters.NumberFilter(field_name='primary_vendor_id')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Order
        fields = ['status', 'vendor_id', 'search', 'start_date', 'end_date']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(order_number__icontains=value) | Q(primary_vendor__company_name__icontains=value))


class AssignmentFilter(DateRangeFilterSet):
    date_field = 'assigned_at'

    status = django_filters.ChoiceFilter(choices=AssignmentStatus.choices)
    order_id = django_filters.UUIDFilter(field_name='order_item__order_id')
    order_number = django_filters.CharFilter(field_name='order_item__order__order_number', lookup_expr='icontains')

    class Meta:
        model = Assignment
        fields = ['status', 'order_id', 'order_number', 'start_date', 'end_date']


class DispatchFilter(DateRangeFilterSet):
    date_field = 'dispatch_date'

    status = django_filters.ChoiceFilter(choices=DispatchStatus.choices)
    vendor_id = django_filters.NumberFilter(field_name='vendor_id')
    awb_number = django_filters.CharFilter(lookup_expr='icontains')

    class Meta:
        model = Dispatch
        fields = ['status', 'vendor_id', 'awb_number', 'start_date', 'end_date']


class GoodsReceiptFilter(DateRangeFilterSet):
    date_field = 'received_at'

    status = django_filters.ChoiceFilter(choices=GRNStatus.choices)
    dispatch_id = django_filters.UUIDFilter(field_name='dispatch_id')
    vendor_id = django_filters.NumberFilter(field_name='dispatch__vendor_id')

    class Meta:
        model = GoodsReceiptNote
        fields = ['status', 'dispatch_id', 'vendor_id', 'start_date', 'end_date']


class TicketFilter(DateRangeFilterSet):
    status = django_filters.ChoiceFilter(choices=TicketStatus.choices)
    priority = django_filters.ChoiceFilter(choices=TicketPriority.choices)

    class Meta:
        model = Ticket
        fields = ['status', 'priority', 'start_date', 'end_date']
