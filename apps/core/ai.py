"""
Claude calls shared by campaign personalization and lead analysis.

Rate limits and 5xx answers are retried with exponential backoff; callers
decide what a final failure means for them.
"""

import logging

from anthropic import Anthropic, APIStatusError, RateLimitError
from django.conf import settings
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def ai_configured(client=None):
    return bool(client or settings.ANTHROPIC_API_KEY)


def get_client(client=None):
    return client or Anthropic(api_key=settings.ANTHROPIC_API_KEY)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type((RateLimitError, APIStatusError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
)
def call_claude(client, system, prompt, max_tokens=None):
    return client.messages.create(
        model=settings.AI_MODEL,
        max_tokens=max_tokens or settings.AI_PERSONALIZATION_MAX_TOKENS,
        system=system,
        messages=[{'role': 'user', 'content': prompt}],
    )


def response_text(response):
    parts = [block.text for block in response.content if getattr(block, 'type', None) == 'text']
    return ''.join(parts).strip()
