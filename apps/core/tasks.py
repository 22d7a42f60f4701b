import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from .emails import send_notification_email
from .models import Company, RateLimitLog
from .reports import (
    build_daily_report, build_team_report, build_weekly_summary,
    daily_report_text, team_report_text, weekly_summary_text
)

logger = logging.getLogger(__name__)

User = get_user_model()

MANAGER_ROLES = [User.ROLE_OWNER, User.ROLE_MANAGER]


@shared_task
def cleanup_rate_limit_logs():
    """Rate limit windows are short; older rows are never counted again"""
    cutoff = timezone.now() - timedelta(hours=settings.RATE_LIMIT_LOG_RETENTION_HOURS)
    deleted, _ = RateLimitLog.objects.filter(created_at__lt=cutoff).delete()
    logger.info(f"Deleted {deleted} rate limit log rows older than {cutoff}")
    return {'deleted': deleted}


def _notify(user, subject, body):
    if not user.wants_email_notifications():
        return False
    return send_notification_email(subject=subject, recipient=user.email, text_body=body)


@shared_task
def send_daily_reports():
    """
    Per-user daily report, plus the team view for owners and managers
    Scheduled in config/celery.py
    """
    day = timezone.localdate()
    individual = 0
    team = 0

    companies = Company.objects.filter(is_active=True, daily_reports_enabled=True)
    for company in companies:
        members = list(User.objects.filter(company=company, is_active=True).select_related('profile').order_by('first_name', 'email'))
        if not members:
            continue

        for member in members:
            try:
                report = build_daily_report(member, day)
                if _notify(member, f"Your daily report - {day:%d/%m/%Y}", daily_report_text(report)):
                    individual += 1
            except Exception as e:
                logger.error(f"Error sending daily report to {member.email}: {str(e)}", exc_info=True)

        managers = [member for member in members if member.role in MANAGER_ROLES]
        if not managers:
            continue

        try:
            body = team_report_text(build_team_report(company, day, members))
        except Exception as e:
            logger.error(f"Error building team report for {company.name}: {str(e)}", exc_info=True)
            continue

        for manager in managers:
            if _notify(manager, f"Team daily summary - {day:%d/%m/%Y}", body):
                team += 1

    logger.info(f"Daily reports: {individual} individual and {team} team emails sent")
    return {'individual_sent': individual, 'team_sent': team}


@shared_task
def send_weekly_summaries():
    """Last seven days per company, emailed to owners and managers every Monday"""
    since = timezone.now() - timedelta(days=7)
    sent = 0

    for company in Company.objects.filter(is_active=True):
        managers = User.objects.filter(company=company, is_active=True, role__in=MANAGER_ROLES).select_related('profile')
        if not managers.exists():
            continue

        try:
            body = weekly_summary_text(build_weekly_summary(company, since))
        except Exception as e:
            logger.error(f"Error building weekly summary for {company.name}: {str(e)}", exc_info=True)
            continue

        for manager in managers:
            if _notify(manager, f"Weekly summary - {company.name}", body):
                sent += 1

    logger.info(f"Weekly summaries: {sent} emails sent")
    return {'sent': sent}
