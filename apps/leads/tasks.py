import logging
from collections import defaultdict
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from apps.core.emails import send_notification_email
from .models import Lead

logger = logging.getLogger(__name__)


def _stale_leads_email(seller, leads):
    lines = [f"Hi {seller.get_short_name()},", "",
             f"These leads have had no activity for more than {settings.STALE_LEAD_DAYS} days:", ""]
    for lead in leads:
        lines.append(f"- {lead.name} ({lead.get_status_display()}, idle {lead.days_idle()} days)")
    lines += ["", f"Open your pipeline: {settings.APP_URL}/leads/kanban"]
    return "\n".join(lines)


@shared_task
def check_stale_leads():
    """
    Email every seller the open leads they have not touched for STALE_LEAD_DAYS
    Scheduled in config/celery.py
    """
    threshold = timezone.now() - timedelta(days=settings.STALE_LEAD_DAYS)
    stale_leads = Lead.objects.filter(
        updated_at__lt=threshold,
        assigned_to__isnull=False,
        assigned_to__is_active=True,
    ).exclude(status__in=Lead.CLOSED_STATUSES).select_related('assigned_to').order_by('updated_at')

    by_seller = defaultdict(list)
    for lead in stale_leads:
        by_seller[lead.assigned_to].append(lead)

    emails_sent = 0
    skipped = 0
    for seller, leads in by_seller.items():
        if not seller.wants_email_notifications():
            skipped += 1
            continue

        try:
            sent = send_notification_email(
                subject=f"{len(leads)} lead(s) waiting for follow-up",
                recipient=seller.email,
                text_body=_stale_leads_email(seller, leads),
            )
        except Exception as e:
            logger.error(f"Error notifying {seller.email} about stale leads: {str(e)}", exc_info=True)
            continue
        if sent:
            emails_sent += 1

    logger.info(f"Stale leads: {stale_leads.count()} leads, {emails_sent} emails sent, {skipped} sellers opted out")
    return {
        'stale_leads': sum(len(leads) for leads in by_seller.values()),
        'sellers': len(by_seller),
        'emails_sent': emails_sent,
        'skipped': skipped,
    }
