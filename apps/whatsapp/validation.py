import re

from django.conf import settings
from django.utils.html import escape

DANGEROUS_PATTERNS = re.compile(r'<script|javascript:|onerror=|onclick=|<iframe', re.IGNORECASE)


class MessageValidationError(ValueError):
    pass


def validate_outgoing_text(text):
    """
    Check a message before it is sent

    Returns the text unchanged (Evolution receives plain text).

    Raises:
        MessageValidationError: empty, too long, or containing markup/script patterns
    """
    if not isinstance(text, str) or not text.strip():
        raise MessageValidationError('Message is required')

    max_length = settings.WHATSAPP_MAX_MESSAGE_LENGTH
    if len(text) > max_length:
        raise MessageValidationError(f'Message too long. Maximum {max_length} characters')

    if DANGEROUS_PATTERNS.search(text):
        raise MessageValidationError('Message contains characters or patterns that are not allowed')

    return text


def sanitize_for_storage(text):
    """HTML-escaped copy kept in the database"""
    return str(escape(text))
