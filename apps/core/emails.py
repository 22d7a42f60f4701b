"""
Outgoing transactional email.

Email is never critical for the operation that triggers it: failures are
logged and reported through the return value.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def send_notification_email(subject, recipient, text_body, html_body=None):
    """
    Send one email

    Returns:
        bool: True if the backend accepted the message
    """
    try:
        sent = send_mail(
            subject=subject,
            message=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            html_message=html_body,
            fail_silently=False,
        )
        logger.info(f"Email '{subject}' sent to {recipient}")
        return sent > 0
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {recipient}: {str(e)}", exc_info=True)
        return False
