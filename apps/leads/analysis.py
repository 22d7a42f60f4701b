"""
AI review of a lead's interaction history.

The observations timeline and the lead card are sent to Claude, which
answers with a structured review: summary, strengths, attention points,
improvements, next steps and a hot/warm/cold temperature.
"""

import logging

from django.conf import settings

from apps.core.ai import ai_configured, call_claude, get_client, response_text

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert in CRM analysis and sales management. "
    "Give detailed, objective and actionable reviews in plain professional language."
)

PROMPT = """Review the following sales conversation.

Lead:
- Name: {name}
- Company: {company}
- Email: {email}
- Phone: {phone}
- Current status: {status}
- Source: {source}
- Estimated value: {value}
- Seller: {seller}

Interaction history:
{history}

Answer with these sections:
1. Summary (2-3 sentences on the current situation)
2. Strengths (3-4 things being done well)
3. Attention points (3-4 risks or problems)
4. Improvements (4-5 concrete actions, highest impact first)
5. Next steps (3-4 immediate actions)
6. Lead temperature: Hot, Warm or Cold, with a short justification"""


class AnalysisError(Exception):
    status_code = 502


class AnalysisUnavailable(AnalysisError):
    status_code = 503


def _history(observations):
    if not observations:
        return 'No notes yet'
    return '\n\n'.join(
        f"[{obs.created_at:%Y-%m-%d %H:%M}] {obs.user.get_full_name() if obs.user else 'System'} "
        f"({obs.note_type}): {obs.content}"
        for obs in observations
    )


def build_prompt(lead, observations):
    return PROMPT.format(
        name=lead.name,
        company=lead.company_name or 'Not informed',
        email=lead.email or 'Not informed',
        phone=lead.phone or 'Not informed',
        status=lead.get_status_display(),
        source=lead.source or 'Not informed',
        value=lead.estimated_value if lead.estimated_value is not None else 'Not informed',
        seller=lead.assigned_to.get_full_name() if lead.assigned_to else 'Unassigned',
        history=_history(observations),
    )


def analyze_lead(lead, client=None):
    """
    Returns:
        dict: {'analysis': str, 'lead': {...}}

    Raises:
        AnalysisUnavailable: no Anthropic key configured
        AnalysisError: the call failed or came back empty
    """
    if not ai_configured(client):
        raise AnalysisUnavailable('AI analysis is not configured')

    observations = list(lead.observations.select_related('user').order_by('created_at'))

    try:
        response = call_claude(
            get_client(client), SYSTEM_PROMPT, build_prompt(lead, observations),
            max_tokens=settings.AI_ANALYSIS_MAX_TOKENS
        )
        analysis = response_text(response)
    except Exception as e:
        logger.error(f"AI analysis failed for lead {lead.id}: {str(e)}", exc_info=True)
        raise AnalysisError('Could not generate the analysis') from e

    if not analysis:
        raise AnalysisError('The AI returned an empty analysis')

    logger.info(f"AI analysis generated for lead {lead.id} ({len(observations)} notes)")
    return {
        'analysis': analysis,
        'lead': {
            'name': lead.name,
            'status': lead.status,
            'company_name': lead.company_name,
            'notes_count': len(observations),
        }
    }
