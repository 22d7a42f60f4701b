import logging

from celery import shared_task
from django.db.models import Q
from django.utils import timezone

from .models import AdminOTPCode, AdminSession

logger = logging.getLogger(__name__)


@shared_task
def cleanup_admin_sessions():
    """Delete expired or used OTP codes and expired or revoked sessions"""
    now = timezone.now()
    codes_deleted, _ = AdminOTPCode.objects.filter(Q(expires_at__lt=now) | Q(used=True)).delete()
    sessions_deleted, _ = AdminSession.objects.filter(Q(expires_at__lt=now) | Q(revoked=True)).delete()
    logger.info(f"Back-office cleanup: {codes_deleted} codes, {sessions_deleted} sessions deleted")
    return {'codes_deleted': codes_deleted, 'sessions_deleted': sessions_deleted}
