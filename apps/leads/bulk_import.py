"""
Bulk lead import with optional WhatsApp prospecting.

POST /api/leads/import/
{
    "leads": [{"name": "...", "phone": "...", "email": "...", "company": "...",
               "source": "...", "estimated_value": 1000}],
    "auto_prospect": true,
    "message_template": "Hi {nome}!",
    "campaign_name": "...",
    "delay_seconds": 15
}

Rows are validated one by one: a bad row is reported and skipped, it never
aborts the batch. Leads already in the company (same phone, or same email
when one is given) are counted as duplicates. With auto_prospect the
imported leads become recipients of a scheduled campaign, one message every
`delay_seconds`.
"""

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework import serializers

from apps.whatsapp.models import WhatsAppCampaign
from apps.whatsapp.validation import MessageValidationError, validate_outgoing_text
from .models import Lead

logger = logging.getLogger(__name__)

MAX_IMPORT_ROWS = 100
DEFAULT_IMPORT_SOURCE = 'Bulk import'
DEFAULT_PROSPECT_DELAY = 15


class BulkImportError(Exception):
    status_code = 400


class ProspectingNotAllowed(BulkImportError):
    status_code = 403


class LeadImportSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    company = serializers.CharField(required=False, allow_blank=True, max_length=200)
    source = serializers.CharField(required=False, allow_blank=True, max_length=100)
    estimated_value = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate_phone(self, value):
        phone = Lead.normalize_phone(value)
        if not phone:
            raise serializers.ValidationError('Phone is required')
        return phone

    def validate_email(self, value):
        return value.strip().lower() if value else None


def _first_error(errors):
    field, messages = next(iter(errors.items()))
    message = messages[0] if isinstance(messages, list) and messages else messages
    return f"{field}: {message}"


def _is_duplicate(company, phone, email):
    match = Q(phone=phone)
    if email:
        match |= Q(email__iexact=email)
    return Lead.objects.filter(company=company).filter(match).exists()


def _prospecting_options(payload):
    """Validated campaign options, or None when auto_prospect is off"""
    if not payload.get('auto_prospect'):
        return None

    template = payload.get('message_template')
    try:
        validate_outgoing_text(template)
    except MessageValidationError as e:
        raise BulkImportError(f'message_template: {e}')

    delay_seconds = payload.get('delay_seconds', DEFAULT_PROSPECT_DELAY)
    if isinstance(delay_seconds, bool) or not isinstance(delay_seconds, int) or not 0 <= delay_seconds <= 3600:
        raise BulkImportError('delay_seconds must be an integer between 0 and 3600')

    return {
        'template': template,
        'name': str(payload.get('campaign_name') or '').strip(),
        'delay_seconds': delay_seconds,
    }


def _create_prospecting_campaign(company, user, leads, options):
    now = timezone.now()
    campaign = WhatsAppCampaign.objects.create(
        company=company,
        name=options['name'] or f"Import {timezone.localdate():%Y-%m-%d}",
        message_template=options['template'],
        delay_seconds=options['delay_seconds'],
        status=WhatsAppCampaign.STATUS_SCHEDULED,
        scheduled_at=now,
        created_by=user,
    )
    added = campaign.add_recipients(leads, scheduled_at=now, stagger_seconds=options['delay_seconds'])
    logger.info(f"Prospecting campaign {campaign.id} scheduled for {added} imported leads")
    return campaign


def import_leads(company, user, payload):
    """
    Create the leads of an import payload

    Returns:
        dict: results (success, duplicates, errors, imported_leads, error_details)
              and the id of the prospecting campaign, if one was created

    Raises:
        BulkImportError: the payload as a whole is unusable
    """
    rows = payload.get('leads')
    if not isinstance(rows, list) or not rows:
        raise BulkImportError('No leads provided')
    if len(rows) > MAX_IMPORT_ROWS:
        raise BulkImportError(f'At most {MAX_IMPORT_ROWS} leads per import')

    prospecting = _prospecting_options(payload)
    if prospecting and not user.is_manager():
        raise ProspectingNotAllowed('Only managers can start prospecting campaigns')

    results = {'success': 0, 'duplicates': 0, 'errors': 0, 'imported_leads': [], 'error_details': []}
    imported = []
    # Sellers keep what they import; managers distribute it later
    assigned_to = None if user.is_manager() else user

    for index, row in enumerate(rows):
        serializer = LeadImportSerializer(data=row if isinstance(row, dict) else {})
        if not serializer.is_valid():
            results['errors'] += 1
            results['error_details'].append({'row': index, 'lead': row, 'error': _first_error(serializer.errors)})
            continue

        data = serializer.validated_data
        if _is_duplicate(company, data['phone'], data.get('email')):
            results['duplicates'] += 1
            continue

        try:
            with transaction.atomic():
                lead = Lead.objects.create(
                    company=company,
                    name=data['name'],
                    email=data.get('email'),
                    phone=data['phone'],
                    company_name=data.get('company') or '',
                    source=data.get('source') or DEFAULT_IMPORT_SOURCE,
                    estimated_value=data.get('estimated_value'),
                    status=Lead.STATUS_NEW,
                    assigned_to=assigned_to,
                    created_by=user,
                )
        except Exception as e:
            logger.error(f"Error importing lead row {index} for {company.name}: {str(e)}", exc_info=True)
            results['errors'] += 1
            results['error_details'].append({'row': index, 'lead': row, 'error': 'Could not save this lead'})
            continue

        imported.append(lead)
        results['success'] += 1
        results['imported_leads'].append(lead.to_dict())

    campaign = None
    if prospecting and imported:
        campaign = _create_prospecting_campaign(company, user, imported, prospecting)

    logger.info(
        f"Bulk import for {company.name} by {user.email}: {results['success']} created, "
        f"{results['duplicates']} duplicates, {results['errors']} errors"
    )
    return {'results': results, 'campaign_id': campaign.id if campaign else None}
