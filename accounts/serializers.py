"""Serializers for the accounts app.

Includes:
- Registration with strong validation
- Profile read/update and password change
- Admin user management (profile edits, role changes)
- Shipping addresses
- Login lockout, email verification, password reset and logout payloads
"""

import logging
import re

import phonenumbers
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .exceptions import AccountLocked, EmailNotVerified
from .models import ShippingAddress
from .tokens import email_verification_token, password_reset_token, user_from_uid

logger = logging.getLogger(__name__)

User = get_user_model()


def _validate_indian_phone(value):
    """Reject numbers that are not 10 digits or not dialable in India."""
    phone_input = str(value or '').strip()
    if not re.match(r'^\d{10}$', phone_input):
        raise serializers.ValidationError("Phone number must be exactly 10 digits.")
    try:
        parsed = phonenumbers.parse(phone_input, 'IN')
    except phonenumbers.NumberParseException:
        raise serializers.ValidationError(f"Phone number {phone_input} is not valid.")
    if not phonenumbers.is_valid_number(parsed):
        raise serializers.ValidationError(f"Phone number {phone_input} is not valid.")
    return phone_input


class RegisterSerializer(serializers.ModelSerializer):
    """Create a new shopper account.

    The username is derived from the email; new accounts always get the
    ``user`` role (roles are changed by admins only).
    """

    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(min_length=2, max_length=50)
    last_name = serializers.CharField(min_length=2, max_length=50)
    phone = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ('id', 'first_name', 'last_name', 'email', 'password', 'phone', 'role')
        read_only_fields = ('id', 'role')

    def validate_email(self, value):
        email = value.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate_phone(self, value):
        if value:
            return _validate_indian_phone(value)
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        email = validated_data['email']
        return User.objects.create_user(username=email, password=password, **validated_data)


class UserProfileSerializer(serializers.ModelSerializer):
    """The authenticated user's own profile."""

    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ('id', 'email', 'first_name', 'last_name', 'full_name', 'phone', 'role', 'date_joined')
        read_only_fields = ('id', 'email', 'role', 'date_joined')

    def validate_phone(self, value):
        if value:
            return _validate_indian_phone(value)
        return value


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_password(self, value):
        validate_password(value, user=self.context['request'].user)
        return value


class AdminUserSerializer(serializers.ModelSerializer):
    """Admin view of any account; role changes go through the role endpoint."""

    full_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ('id', 'email', 'first_name', 'last_name', 'full_name', 'phone', 'role', 'is_active', 'date_joined', 'last_login')
        read_only_fields = ('id', 'role', 'date_joined', 'last_login')

    def validate_email(self, value):
        email = value.lower().strip()
        qs = User.objects.filter(email__iexact=email)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)


class ShippingAddressSerializer(serializers.ModelSerializer):
    """Shipping address payload used for create/update."""

    class Meta:
        model = ShippingAddress
        fields = [
            'id', 'address_line1', 'address_line2', 'city', 'state',
            'country', 'pin_code', 'phone_number', 'is_default',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'is_default', 'created_at', 'updated_at']

    def validate_pin_code(self, value):
        value = str(value).strip()
        if not re.match(r'^\d{6}$', value):
            raise serializers.ValidationError("Pin code must be exactly 6 digits.")
        return value

    def validate_phone_number(self, value):
        return _validate_indian_phone(value)


class LoginSerializer(TokenObtainPairSerializer):
    """JWT login that locks the account after repeated failed attempts."""

    def validate(self, attrs):
        email = str(attrs.get(self.username_field, '')).strip()
        user = User.objects.filter(email__iexact=email).first()
        if user is not None and user.is_locked:
            logger.warning('Login attempt for locked account %s', user.email)
            raise AccountLocked()

        try:
            data = super().validate(attrs)
        except AuthenticationFailed:
            if user is not None:
                user.register_failed_login()
                if user.is_locked:
                    logger.warning('Account %s locked after %s failed logins', user.email, user.failed_login_attempts)
            logger.warning('Failed login for %s', email)
            raise

        if settings.ACCOUNT_REQUIRE_VERIFIED_EMAIL and not self.user.email_verified:
            raise EmailNotVerified()
        self.user.reset_login_attempts()
        return data


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value):
        return value.lower().strip()


class VerifyEmailSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()

    def validate(self, attrs):
        user = user_from_uid(attrs['uid'])
        if user is not None and user.email_verified:
            raise serializers.ValidationError({'detail': 'Email already verified.'})
        if user is None or not email_verification_token.check_token(user, attrs['token']):
            raise serializers.ValidationError({'token': 'Invalid or expired verification token.'})
        attrs['user'] = user
        return attrs


class ResetPasswordSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate(self, attrs):
        user = user_from_uid(attrs['uid'])
        if user is None or not password_reset_token.check_token(user, attrs['token']):
            raise serializers.ValidationError({'token': 'Invalid or expired reset token.'})
        try:
            validate_password(attrs['new_password'], user=user)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({'new_password': list(exc.messages)})
        attrs['user'] = user
        return attrs


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()
