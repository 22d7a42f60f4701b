"""
Message personalization for campaigns.

1. render_template: {nome}, {empresa}, {email} placeholders (and the English
   {name}, {company}) replaced with lead data, case-insensitively
2. personalize: optional rewrite by Claude following the campaign
   instructions; any failure falls back to the rendered text
"""

import logging
import re

from apps.core.ai import ai_configured, call_claude, get_client, response_text

logger = logging.getLogger(__name__)

PLACEHOLDERS = {
    'nome': 'name',
    'name': 'name',
    'empresa': 'company_name',
    'company': 'company_name',
    'email': 'email',
}

PLACEHOLDER_RE = re.compile(r'\{(' + '|'.join(PLACEHOLDERS) + r')\}', re.IGNORECASE)

SYSTEM_PROMPT = """You are a marketing assistant that personalizes WhatsApp messages.
Specific instructions: {instructions}

Keep the message professional, friendly and concise.
IMPORTANT: return ONLY the text of the personalized message, without any explanation."""


def render_template(template, lead):
    def replace(match):
        value = getattr(lead, PLACEHOLDERS[match.group(1).lower()], '')
        return value or ''

    return PLACEHOLDER_RE.sub(replace, template or '')


def personalize(text, lead, instructions, client=None):
    """
    Ask Claude to adapt `text` to the lead

    Returns the base text when AI is not configured or the call fails.
    """
    if not instructions or not ai_configured(client):
        return text

    client = get_client(client)
    prompt = (
        "Personalize this message for the lead:\n\n"
        f"Name: {lead.name or ''}\n"
        f"Company: {lead.company_name or ''}\n"
        f"Email: {lead.email or ''}\n\n"
        f"Base message:\n{text}"
    )

    try:
        response = call_claude(client, SYSTEM_PROMPT.format(instructions=instructions), prompt)
        personalized = response_text(response)
    except Exception as e:
        logger.error(f"AI personalization failed for lead {lead.id}, using base text: {str(e)}")
        return text

    return personalized or text
