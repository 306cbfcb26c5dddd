"""
INSAN MOBILE Main URL Configuration
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view
from rest_framework.response import Response

from core.health import health_check, readiness_check


# ===========================================
# ADMIN SITE CUSTOMIZATION
# ===========================================
admin.site.site_header = "INSAN MOBILE - Mitra Kurir SPX"
admin.site.site_title = "INSAN MOBILE Admin"
admin.site.index_title = "Manajemen Operasional"


@api_view(['GET'])
def api_root(request):
    """API Root endpoint with available routes."""
    return Response({
        'name': 'INSAN MOBILE API',
        'version': '1.0.0',
        'endpoints': {
            'auth': {
                'token': '/api/auth/token/',
                'refresh': '/api/auth/token/refresh/',
            },
            'setup_admin': '/api/setup-admin/',
            'users': '/api/users/',
            'account': {
                'profile': '/api/account/profile/',
                'password': '/api/account/password/',
                'notifications': '/api/account/notifications/',
            },
            'locations': '/api/locations/',
            'attendance': '/api/attendance/',
            'tasks': '/api/tasks/',
            'packages': '/api/packages/',
            'performance': '/api/courier/performance/',
            'dashboard': '/api/fleet/dashboard/',
            'couriers': '/api/fleet/couriers/',
            'approvals': '/api/approvals/',
            'reports': '/api/reports/',
            'notifications': '/api/notifications/',
            'greeting': '/api/greeting/',
        }
    })


urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Monitoring
    path('health/', health_check, name='health'),
    path('health/ready/', readiness_check, name='health-ready'),

    # API Root
    path('api/', api_root, name='api-root'),

    # OpenAPI schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='docs'),

    # App URLs
    path('api/', include('core.urls')),
    path('api/', include('attendance.urls')),
    path('api/', include('logistics.urls')),
    path('api/', include('courier.urls')),
    path('api/fleet/', include('fleet.urls')),
    path('api/', include('approvals.urls')),
    path('api/', include('reports.urls')),
    path('api/', include('notifications.urls')),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
