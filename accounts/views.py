"""Accounts app views.

Contains:
- Auth endpoints (register, JWT login/refresh/logout, lockout)
- Email verification and password reset
- Profile endpoints for the authenticated user
- Admin user management
- Shipping address CRUD

Kept intentionally simple and DRF-native.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from .emails import send_password_reset_email, send_verification_email
from .models import ShippingAddress
from .permissions import IsAdminRole
from .serializers import (
    AdminUserSerializer,
    ChangePasswordSerializer,
    EmailSerializer,
    LoginSerializer,
    LogoutSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    ShippingAddressSerializer,
    UserProfileSerializer,
    UserRoleSerializer,
    VerifyEmailSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class RegisterView(generics.CreateAPIView):
    """Public registration endpoint; sends the email verification link."""
    queryset = User.objects.all()
    permission_classes = [AllowAny]
    serializer_class = RegisterSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info('User registered: %s', user.email)
        send_verification_email(user)


class LoginView(TokenObtainPairView):
    """JWT login with email + password and failed-attempt lockout."""

    serializer_class = LoginSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'


class LogoutView(APIView):
    """Blacklist the given refresh token."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            RefreshToken(serializer.validated_data['refresh']).blacklist()
        except TokenError:
            return Response({'detail': 'Invalid or expired refresh token.'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info('User logged out: %s', request.user.email)
        return Response({'detail': 'Logged out.'})


class VerifyEmailView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = VerifyEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']
        user.email_verified = True
        user.save(update_fields=['email_verified'])
        logger.info('Email verified for %s', user.email)
        return Response({'detail': 'Email verified successfully. You can now log in.'})


class ResendVerificationView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'

    def post(self, request):
        serializer = EmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.filter(email__iexact=serializer.validated_data['email']).first()
        if user is not None and not user.email_verified:
            send_verification_email(user)
        return Response({'detail': 'If the account exists and is unverified, a verification link has been sent.'})


class ForgotPasswordView(APIView):
    """Send a reset link without revealing whether the email is registered."""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'

    def post(self, request):
        serializer = EmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.filter(email__iexact=serializer.validated_data['email'], is_active=True).first()
        if user is not None:
            send_password_reset_email(user)
        else:
            logger.warning('Password reset requested for unknown email %s', serializer.validated_data['email'])
        return Response({'detail': 'If an account with that email exists, a password reset link has been sent.'})


class ResetPasswordView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth'

    def post(self, request):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']
        user.set_password(serializer.validated_data['new_password'])
        user.failed_login_attempts = 0
        user.locked_until = None
        user.save(update_fields=['password', 'failed_login_attempts', 'locked_until'])
        logger.info('Password reset for %s', user.email)
        return Response({'detail': 'Password has been reset. You can now log in.'})


class MeView(generics.RetrieveUpdateAPIView):
    """Get or update the authenticated user's profile."""

    serializer_class = UserProfileSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'put', 'patch', 'head', 'options']

    def get_object(self):
        return self.request.user


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save(update_fields=['password'])
        logger.info('Password changed for %s', request.user.email)
        return Response({'detail': 'Password updated.'})


class UserAdminViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    """Admin-only account management (list, edit, delete, change role)."""

    queryset = User.objects.order_by('-date_joined')
    serializer_class = AdminUserSerializer
    permission_classes = [IsAdminRole]

    def perform_update(self, serializer):
        user = serializer.save()
        logger.info('User %s updated by admin %s', user.email, self.request.user.email)

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response({'detail': 'You cannot delete your own account.'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info('User %s deleted by admin %s', user.email, request.user.email)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'], url_path='role')
    def change_role(self, request, pk=None):
        """Promote or demote an account."""
        user = self.get_object()
        serializer = UserRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_role = serializer.validated_data['role']

        if user.pk == request.user.pk and new_role != User.ROLE_ADMIN:
            return Response({'detail': 'You cannot remove your own admin role.'}, status=status.HTTP_400_BAD_REQUEST)

        user.role = new_role
        user.save(update_fields=['role'])
        logger.info('User %s role set to %s by admin %s', user.email, new_role, request.user.email)
        return Response(AdminUserSerializer(user).data)


class ShippingAddressViewSet(viewsets.ModelViewSet):
    """Shipping addresses owned by the authenticated user.

    The first address becomes the default; deleting the default promotes
    the next remaining address.
    """

    serializer_class = ShippingAddressSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return ShippingAddress.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        is_default = not ShippingAddress.objects.filter(user=self.request.user).exists()
        serializer.save(user=self.request.user, is_default=is_default)

    def perform_destroy(self, instance):
        was_default = instance.is_default
        instance.delete()
        if was_default:
            next_address = ShippingAddress.objects.filter(user=self.request.user).order_by('id').first()
            if next_address:
                next_address.is_default = True
                next_address.save(update_fields=['is_default'])

    @action(detail=True, methods=['patch'], url_path='set-default')
    def set_default(self, request, pk=None):
        """Set a specific address as default."""
        address = self.get_object()
        with transaction.atomic():
            ShippingAddress.objects.filter(user=request.user).update(is_default=False)
            address.is_default = True
            address.save(update_fields=['is_default'])
        return Response(self.get_serializer(address).data)
