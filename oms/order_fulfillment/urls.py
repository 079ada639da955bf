"""
URL configuration for the order fulfillment workflow.

Provides API endpoints for orders, vendor assignments, dispatches, goods
receipts, tickets and the audit ledger.
"""

from rest_framework.routers import DefaultRouter

from .views import (
    OrderViewSet, VendorAssignmentViewSet, DispatchViewSet,
    GoodsReceiptViewSet, TicketViewSet, AuditLogViewSet, NotificationViewSet
)

# Create router and register viewsets
router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'vendor/assignments', VendorAssignmentViewSet, basename='vendor-assignment')
router.register(r'dispatches', DispatchViewSet, basename='dispatch')
router.register(r'grns', GoodsReceiptViewSet, basename='grn')
router.register(r'tickets', TicketViewSet, basename='ticket')
router.register(r'audit-logs', AuditLogViewSet, basename='audit-log')
router.register(r'notifications', NotificationViewSet, basename='notification')

# URL patterns
urlpatterns = router.urls
