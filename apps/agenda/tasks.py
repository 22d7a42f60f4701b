import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from apps.core.emails import send_notification_email
from .models import Meeting, MeetingParticipant, Task

logger = logging.getLogger(__name__)


@shared_task
def send_meeting_reminders():
    """
    Email participants of meetings starting within MEETING_REMINDER_WINDOW_MINUTES
    Scheduled in config/celery.py (every 15 minutes)
    """
    now = timezone.now()
    window_end = now + timedelta(minutes=settings.MEETING_REMINDER_WINDOW_MINUTES)

    participants = MeetingParticipant.objects.filter(
        reminder_sent=False,
        meeting__status=Meeting.STATUS_SCHEDULED,
        meeting__start_time__gte=now,
        meeting__start_time__lte=window_end,
        user__is_active=True,
    ).select_related('meeting', 'meeting__lead', 'user')

    sent = 0
    failed = 0
    for participant in participants:
        meeting = participant.meeting
        minutes = max(int((meeting.start_time - now).total_seconds() // 60), 0)
        body = (
            f"Hi {participant.user.get_short_name()},\n\n"
            f"Your meeting \"{meeting.title}\" starts in {minutes} minutes "
            f"({meeting.start_time:%H:%M}).\n"
        )
        if meeting.lead:
            body += f"Lead: {meeting.lead.name}\n"

        if send_notification_email(f"Reminder: {meeting.title}", participant.user.email, body):
            participant.reminder_sent = True
            participant.save(update_fields=['reminder_sent'])
            sent += 1
        else:
            failed += 1

    logger.info(f"Meeting reminders: {sent} sent, {failed} failed")
    return {'sent': sent, 'failed': failed}


@shared_task
def check_meeting_feedback():
    """
    Find scheduled meetings that ended MEETING_FEEDBACK_DELAY_MINUTES ago without feedback
    Scheduled in config/celery.py (hourly)
    """
    cutoff = timezone.now() - timedelta(minutes=settings.MEETING_FEEDBACK_DELAY_MINUTES)
    meetings = Meeting.objects.filter(
        status=Meeting.STATUS_SCHEDULED,
        feedback_collected=False,
        end_time__lt=cutoff,
    )

    pending = 0
    for meeting in meetings:
        pending += 1
        logger.info(f"Meeting {meeting.id} ({meeting.title}) is waiting for feedback")

    return {'pending_feedback': pending}


@shared_task
def cleanup_old_tasks():
    """
    Delete done tasks older than DONE_TASK_RETENTION_DAYS and
    unfinished ones older than OPEN_TASK_RETENTION_DAYS
    """
    now = timezone.now()

    _, done_rows = Task.objects.filter(
        status=Task.STATUS_DONE,
        updated_at__lt=now - timedelta(days=settings.DONE_TASK_RETENTION_DAYS),
    ).delete()

    _, open_rows = Task.objects.filter(
        status__in=[Task.STATUS_OPEN, Task.STATUS_IN_PROGRESS],
        created_at__lt=now - timedelta(days=settings.OPEN_TASK_RETENTION_DAYS),
    ).delete()

    done_deleted = done_rows.get(Task._meta.label, 0)
    open_deleted = open_rows.get(Task._meta.label, 0)

    logger.info(f"Old tasks cleanup: {done_deleted} done, {open_deleted} unfinished tasks deleted")
    return {'done_deleted': done_deleted, 'open_deleted': open_deleted}
