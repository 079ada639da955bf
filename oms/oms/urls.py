"""
URL configuration for the oms project.

The workflow API lives under /api/; JWT tokens are issued under /api/auth/.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request):
    """API root view with available endpoints."""
    return Response({
        'message': 'Order Management API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'orders': '/api/orders/',
            'vendor_assignments': '/api/vendor/assignments/',
            'dispatches': '/api/dispatches/',
            'grns': '/api/grns/',
            'tickets': '/api/tickets/',
            'audit_logs': '/api/audit-logs/',
            'notifications': '/api/notifications/',
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),  # Exact match for /api/ (must be first)
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/', include('order_fulfillment.urls')),

    # Browsable API login
    path('api/docs/', include('rest_framework.urls')),
]
