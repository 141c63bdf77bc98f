"""Authentication errors, raised as DRF API exceptions."""

from rest_framework import status
from rest_framework.exceptions import APIException


class AccountLocked(APIException):
    status_code = status.HTTP_423_LOCKED
    default_detail = 'Account is temporarily locked due to multiple failed login attempts. Please try again later.'
    default_code = 'account_locked'


class EmailNotVerified(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Please verify your email before logging in.'
    default_code = 'email_not_verified'
