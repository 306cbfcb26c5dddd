"""
COURIER App - URL Configuration
"""

from django.urls import path

from .views import PerformanceView

urlpatterns = [
    path('courier/performance/', PerformanceView.as_view(), name='courier-performance'),
]
