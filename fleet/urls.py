"""
FLEET App - URL Configuration
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import DashboardViewSet, CourierManagementViewSet

router = DefaultRouter()
router.register(r'dashboard', DashboardViewSet, basename='dashboard')
router.register(r'couriers', CourierManagementViewSet, basename='courier')

urlpatterns = [
    path('', include(router.urls)),
]
