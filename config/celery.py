# Celery is a distributed task queue for running background jobs

# - Execute WhatsApp campaigns (sequential sends with a delay)
# - Deliver scheduled campaign messages
# - Meeting reminders and feedback checks
# - Stale lead digests for sellers
# - Clean up old data
#
# Start worker: celery -A config worker -l info
# Start beat: celery -A config beat -l info
# ==============================================================================

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for Celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# 'workflow360' is the app name (appears in logs and monitoring)
app = Celery('workflow360')

# All settings prefixed with 'CELERY_' will be used
app.config_from_object('django.conf:settings', namespace='CELERY')

# Looks for tasks.py file in each installed app
app.autodiscover_tasks()


# CELERY BEAT SCHEDULE (Periodic Tasks)

app.conf.beat_schedule = {
    # Scheduled campaign messages whose time has come
    'process-scheduled-messages': {
        'task': 'apps.whatsapp.tasks.process_scheduled_messages',
        'schedule': crontab(minute='*'),  # Every minute
    },

    # Email participants of meetings starting within the next hour
    'send-meeting-reminders': {
        'task': 'apps.agenda.tasks.send_meeting_reminders',
        'schedule': crontab(minute='*/15'),  # Every 15 minutes
    },

    # Meetings that ended without feedback
    'check-meeting-feedback': {
        'task': 'apps.agenda.tasks.check_meeting_feedback',
        'schedule': crontab(minute=0),  # Every hour at minute 0
    },

    # Daily digest of leads nobody touched for a week
    'check-stale-leads': {
        'task': 'apps.leads.tasks.check_stale_leads',
        'schedule': crontab(hour=8, minute=0),  # Every day at 8:00 AM
    },

    # Remove finished and abandoned tasks
    'cleanup-old-tasks': {
        'task': 'apps.agenda.tasks.cleanup_old_tasks',
        'schedule': crontab(hour=3, minute=0),  # Every day at 3:00 AM
    },

    'cleanup-rate-limit-logs': {
        'task': 'apps.core.tasks.cleanup_rate_limit_logs',
        'schedule': crontab(hour=3, minute=30),
    },

    'cleanup-admin-sessions': {
        'task': 'apps.backoffice.tasks.cleanup_admin_sessions',
        'schedule': crontab(hour=4, minute=0),
    },

    # Performance reports by email
    'send-daily-reports': {
        'task': 'apps.core.tasks.send_daily_reports',
        'schedule': crontab(hour=19, minute=0),  # Every day at 7:00 PM
    },

    'send-weekly-summaries': {
        'task': 'apps.core.tasks.send_weekly_summaries',
        'schedule': crontab(hour=8, minute=0, day_of_week='mon'),  # Mondays at 8:00 AM
    },
}


# CELERY TASK ANNOTATIONS

app.conf.task_annotations = {
    # Campaigns can run for a long time (delay between each recipient)
    'apps.whatsapp.tasks.execute_campaign': {
        'time_limit': 4 * 60 * 60,
        'soft_time_limit': 4 * 60 * 60 - 60,
    },

    # Prevent overwhelming the Evolution API
    'apps.whatsapp.tasks.process_scheduled_messages': {
        'rate_limit': '60/m',
    },
}


# CRONTAB EXAMPLES (for reference)
# ==============================================================================
#
# crontab(minute=0, hour=0)              # Every day at midnight
# crontab(minute=0, hour='*/3')          # Every 3 hours
# crontab(minute='*/15')                  # Every 15 minutes
#
# ==============================================================================
