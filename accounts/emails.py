"""Transactional emails for account verification and password reset."""

import logging
from smtplib import SMTPException
from urllib.parse import urlencode

from django.conf import settings
from django.core.mail import send_mail

from .tokens import email_verification_token, encode_uid, password_reset_token

logger = logging.getLogger(__name__)


def _frontend_link(path, user, token):
    query = urlencode({'uid': encode_uid(user), 'token': token})
    return f"{settings.FRONTEND_URL.rstrip('/')}/{path}?{query}"


def _send(user, subject, body):
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [user.email])
    except (SMTPException, OSError) as exc:
        logger.error('Failed to send "%s" to %s: %s', subject, user.email, exc)
        return False
    logger.info('Sent "%s" to %s', subject, user.email)
    return True


def send_verification_email(user) -> bool:
    link = _frontend_link('verify-email', user, email_verification_token.make_token(user))
    body = (
        f"Hi {user.first_name or user.email},\n\n"
        f"Thank you for registering with {settings.STORE_NAME}. "
        f"Please verify your email address by opening the link below:\n\n{link}\n"
    )
    return _send(user, f'Verify your email - {settings.STORE_NAME}', body)


def send_password_reset_email(user) -> bool:
    link = _frontend_link('reset-password', user, password_reset_token.make_token(user))
    body = (
        f"Hi {user.first_name or user.email},\n\n"
        f"We received a request to reset your {settings.STORE_NAME} password. "
        f"Open the link below to choose a new one:\n\n{link}\n\n"
        "If you did not ask for this, you can ignore this email.\n"
    )
    return _send(user, f'Reset your password - {settings.STORE_NAME}', body)
