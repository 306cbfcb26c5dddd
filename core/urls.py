"""
Core App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    UserViewSet, AccountSettingsViewSet, LocationViewSet,
    LoginView, SetupAdminView, GreetingView,
)

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')
router.register(r'locations', LocationViewSet, basename='location')

urlpatterns = [
    # JWT Authentication
    path('auth/token/', LoginView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # First MasterAdmin
    path('setup-admin/', SetupAdminView.as_view(), name='setup-admin'),

    # Self-service settings
    path('account/profile/', AccountSettingsViewSet.as_view({'get': 'profile', 'patch': 'update_profile'}), name='account-profile'),
    path('account/password/', AccountSettingsViewSet.as_view({'post': 'change_password'}), name='account-password'),
    path('account/notifications/', AccountSettingsViewSet.as_view({'patch': 'notification_preferences'}), name='account-notifications'),

    # AI greeting
    path('greeting/', GreetingView.as_view(), name='greeting'),

    # Router URLs
    path('', include(router.urls)),
]
