"""
Logistics App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import DailyTaskViewSet, PackageViewSet

router = DefaultRouter()
router.register(r'tasks', DailyTaskViewSet, basename='task')
router.register(r'packages', PackageViewSet, basename='package')

urlpatterns = [
    path('', include(router.urls)),
]
