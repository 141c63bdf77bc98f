"""URL routes for auth, profile, admin user management and addresses."""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    ChangePasswordView,
    ForgotPasswordView,
    LoginView,
    LogoutView,
    MeView,
    RegisterView,
    ResendVerificationView,
    ResetPasswordView,
    ShippingAddressViewSet,
    UserAdminViewSet,
    VerifyEmailView,
)

router = DefaultRouter()
router.register(r'users', UserAdminViewSet, basename='user')
router.register(r'addresses', ShippingAddressViewSet, basename='address')

urlpatterns = [
    # 1. Registration, JWT login and logout
    path('auth/register/', RegisterView.as_view(), name='auth_register'),
    path('auth/login/', LoginView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', LogoutView.as_view(), name='auth_logout'),

    # 2. Email verification and password recovery
    path('auth/verify-email/', VerifyEmailView.as_view(), name='auth_verify_email'),
    path('auth/resend-verification/', ResendVerificationView.as_view(), name='auth_resend_verification'),
    path('auth/forgot-password/', ForgotPasswordView.as_view(), name='auth_forgot_password'),
    path('auth/reset-password/', ResetPasswordView.as_view(), name='auth_reset_password'),

    # 3. Authenticated profile
    path('auth/me/', MeView.as_view(), name='auth_me'),
    path('auth/change-password/', ChangePasswordView.as_view(), name='auth_change_password'),

    # 4. ViewSet routes
    path('', include(router.urls)),
]
