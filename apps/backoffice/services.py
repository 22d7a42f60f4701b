"""
Back-office authentication: email OTP, then a 24h session token.

Only addresses listed in ADMIN_OTP_EMAILS can request a code.
"""

import logging
import secrets
import uuid
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.core.emails import send_notification_email
from .models import AdminOTPCode, AdminSession

logger = logging.getLogger(__name__)


class BackofficeAuthError(Exception):
    status_code = 400


class UnauthorizedEmail(BackofficeAuthError):
    status_code = 403


class InvalidCode(BackofficeAuthError):
    status_code = 401


class CodeDeliveryFailed(BackofficeAuthError):
    status_code = 502


def _normalize(email):
    return (email or '').strip().lower()


def is_admin_email(email):
    allowed = {_normalize(address) for address in settings.ADMIN_OTP_EMAILS if address}
    return _normalize(email) in allowed


def generate_code():
    return f"{secrets.randbelow(900000) + 100000}"


def request_otp(email):
    """
    Create a new code (earlier unused codes stop working) and mail it

    Raises:
        UnauthorizedEmail, CodeDeliveryFailed
    """
    email = _normalize(email)
    if not is_admin_email(email):
        logger.warning(f"Back-office OTP requested for unauthorized email {email}")
        raise UnauthorizedEmail('Email not authorized')

    AdminOTPCode.objects.filter(email=email, used=False).update(used=True)

    otp = AdminOTPCode.objects.create(
        email=email,
        code=generate_code(),
        expires_at=timezone.now() + timedelta(minutes=settings.ADMIN_OTP_TTL_MINUTES),
    )

    sent = send_notification_email(
        subject='Your WorkFlow360 admin access code',
        recipient=email,
        text_body=(
            f"Your access code for the WorkFlow360 admin panel: {otp.code}\n\n"
            f"This code expires in {settings.ADMIN_OTP_TTL_MINUTES} minutes.\n"
            "If you did not request it, ignore this email."
        ),
    )
    if not sent:
        raise CodeDeliveryFailed('Could not send the access code')

    logger.info(f"Back-office OTP sent to {email}")
    return otp


def verify_otp(email, code):
    """
    Exchange a valid code for a session

    Raises:
        InvalidCode: wrong, used or expired code
    """
    email = _normalize(email)
    otp = AdminOTPCode.objects.filter(
        email=email,
        code=str(code or '').strip(),
        used=False,
        expires_at__gt=timezone.now(),
    ).order_by('-created_at').first()

    if otp is None:
        logger.warning(f"Invalid back-office OTP for {email}")
        raise InvalidCode('Invalid or expired code')

    otp.used = True
    otp.save(update_fields=['used'])

    session = AdminSession.objects.create(
        email=email,
        token=uuid.uuid4().hex,
        expires_at=timezone.now() + timedelta(hours=settings.ADMIN_SESSION_TTL_HOURS),
    )
    logger.info(f"Back-office session opened for {email}")
    return session


def get_session(token):
    if not token or not isinstance(token, str):
        return None
    return AdminSession.objects.filter(token=token, revoked=False, expires_at__gt=timezone.now()).first()


def validate_token(token):
    session = get_session(token)
    if session is None:
        return {'valid': False, 'email': None, 'expires_at': None}
    return {'valid': True, 'email': session.email, 'expires_at': session.expires_at.isoformat()}


def revoke_token(token):
    revoked = AdminSession.objects.filter(token=token, revoked=False).update(revoked=True)
    return revoked > 0
