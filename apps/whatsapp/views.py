import logging

from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import company_required, manager_required
from apps.core.errors import error_response, parse_json_body
from apps.core.models import IntegrationLog
from apps.leads.models import Activity, Lead
from .evolution_api import clean_phone, send_whatsapp_message
from .models import CampaignMessage, WhatsAppCampaign, WhatsAppConfig, WhatsAppMessage
from .tasks import execute_campaign
from .validation import MessageValidationError, sanitize_for_storage, validate_outgoing_text

logger = logging.getLogger(__name__)


@company_required
@require_http_methods(["POST"])
def send_message_view(request):
    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    company = request.user.company
    text = payload.get('message')
    media_url = payload.get('media_url') or None
    media_type = payload.get('media_type') or None

    try:
        validate_outgoing_text(text)
    except MessageValidationError as e:
        return error_response(str(e))

    lead = None
    lead_id = payload.get('lead_id')
    if lead_id:
        if not isinstance(lead_id, int) or isinstance(lead_id, bool):
            return error_response('lead_id must be an integer')
        lead = Lead.objects.filter(pk=lead_id, company=company).first()
        if lead is None:
            return error_response('Lead not found', status=404)

    phone = clean_phone(str(payload.get('phone') or '') or (lead.phone if lead else ''))
    if not phone:
        return error_response('Phone is required')

    if media_type and media_type not in dict(WhatsAppMessage.MEDIA_CHOICES):
        return error_response('Invalid media type')

    message = WhatsAppMessage.objects.create(
        company=company,
        lead=lead,
        user=request.user,
        phone=phone,
        message=sanitize_for_storage(text),
        direction=WhatsAppMessage.DIRECTION_SENT,
        media_url=media_url,
        media_type=media_type if media_url else None,
    )

    success, error = send_whatsapp_message(message, text=text)

    IntegrationLog.objects.create(
        company=company,
        integration_type=IntegrationLog.TYPE_WHATSAPP,
        action='send_message',
        status=IntegrationLog.STATUS_SUCCESS if success else IntegrationLog.STATUS_ERROR,
        request_data={'phone': phone, 'lead_id': lead.id if lead else None},
        response_data={'message_id': message.id},
        error_message=error or '',
    )

    if not success:
        return JsonResponse({'status': 'error', 'message': error, 'data': message.to_dict()}, status=502)

    if lead:
        Activity.objects.create(
            lead=lead,
            user=request.user,
            activity_type=Activity.TYPE_WHATSAPP,
            description='WhatsApp message sent'
        )

    return JsonResponse({'status': 'success', 'message': 'Message sent', 'data': message.to_dict()})


@company_required
@require_http_methods(["GET"])
def lead_messages_view(request, lead_id):
    lead = Lead.objects.filter(pk=lead_id, company=request.user.company).first()
    if lead is None:
        return error_response('Lead not found', status=404)
    if not request.user.is_manager() and lead.assigned_to_id != request.user.id:
        return error_response('Lead not found', status=404)

    conversation = Q(lead=lead)
    if lead.phone:
        conversation |= Q(lead__isnull=True, phone=lead.phone)
    messages = WhatsAppMessage.objects.filter(conversation, company=lead.company).order_by('created_at')

    return JsonResponse({'status': 'success', 'data': [message.to_dict() for message in messages]})


def _find_lead_by_phone(company, phone):
    leads = Lead.objects.filter(company=company)
    lead = leads.filter(phone=phone).first()
    if lead is None and len(phone) >= 10:
        # Stored without country code, or received without it
        lead = leads.filter(Q(phone__endswith=phone[-10:])).first()
    return lead


def _extract_text(message_data):
    message = message_data.get('message') or {}
    return (
        message.get('conversation')
        or (message.get('extendedTextMessage') or {}).get('text')
        or '[Media]'
    )


@csrf_exempt
@require_http_methods(["POST"])
def webhook_receiver(request, webhook_secret):
    """Evolution API webhook: stores messages received from leads"""

    config = WhatsAppConfig.objects.select_related('company').filter(webhook_secret=webhook_secret, is_active=True).first()
    if config is None:
        logger.error("WhatsApp webhook called with an invalid secret")
        return JsonResponse({'status': 'error', 'message': 'Invalid webhook secret'}, status=401)

    payload = parse_json_body(request)
    if payload is None:
        logger.error("Invalid JSON payload")
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON payload'}, status=400)

    try:
        message_data = payload.get('data')
        if payload.get('event') != 'messages.upsert' or not isinstance(message_data, dict):
            return JsonResponse({'status': 'success', 'message': 'Event ignored'})

        key = message_data.get('key') or {}
        if key.get('fromMe'):
            return JsonResponse({'status': 'success', 'message': 'Own message ignored'})

        phone = clean_phone((key.get('remoteJid') or '').replace('@s.whatsapp.net', ''))
        if not phone:
            return JsonResponse({'status': 'success', 'message': 'No sender phone'})

        lead = _find_lead_by_phone(config.company, phone)
        if lead is None:
            logger.info(f"No lead found for phone {phone}")
            return JsonResponse({'status': 'success', 'message': 'Lead not found'})

        with transaction.atomic():
            message = WhatsAppMessage.objects.create(
                company=config.company,
                lead=lead,
                phone=phone,
                message=sanitize_for_storage(_extract_text(message_data)),
                direction=WhatsAppMessage.DIRECTION_RECEIVED,
                status=WhatsAppMessage.STATUS_READ,
                provider_message_id=key.get('id'),
            )

            last_campaign_message = CampaignMessage.objects.filter(
                lead=lead,
                status=CampaignMessage.STATUS_SENT
            ).select_related('campaign').order_by('-sent_at').first()
            if last_campaign_message:
                last_campaign_message.campaign.register_response()

            Activity.objects.create(
                lead=lead,
                user=None,
                activity_type=Activity.TYPE_WHATSAPP,
                description='WhatsApp message received'
            )

        logger.info(f"Message {message.id} received from lead {lead.id}")
        return JsonResponse({'status': 'success', 'message': 'Message processed', 'data': {'message_id': message.id}})

    except Exception as e:
        logger.error(f"Error processing WhatsApp webhook: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)


@company_required
@manager_required
@require_http_methods(["GET", "POST"])
def config_view(request):
    company = request.user.company
    config, _ = WhatsAppConfig.objects.get_or_create(company=company)

    if request.method == 'POST':
        payload = parse_json_body(request)
        if payload is None:
            return error_response('Invalid JSON payload')
        for field in ('api_url', 'instance_name', 'api_key'):
            if field in payload:
                setattr(config, field, (payload[field] or '').strip())
        if 'is_active' in payload:
            config.is_active = bool(payload['is_active'])
        config.save()

    return JsonResponse({
        'status': 'success',
        'data': {
            'api_url': config.api_url,
            'instance_name': config.instance_name,
            'has_api_key': bool(config.api_key),
            'is_active': config.is_active,
            'webhook_url': config.get_webhook_url(),
        }
    })


def _campaign_leads(company, payload):
    """Recipients selected by lead_ids or statuses; returns (leads, error)"""
    leads = Lead.objects.filter(company=company).exclude(phone='')

    lead_ids = payload.get('lead_ids')
    if lead_ids:
        if not isinstance(lead_ids, list) or not all(
            isinstance(lead_id, int) and not isinstance(lead_id, bool) for lead_id in lead_ids
        ):
            return None, 'lead_ids must be a list of integers'
        return leads.filter(pk__in=lead_ids), None

    statuses = payload.get('statuses')
    if statuses:
        valid = dict(Lead.STATUS_CHOICES)
        if not isinstance(statuses, list) or not all(isinstance(status, str) and status in valid for status in statuses):
            return None, f"statuses must be a list of: {', '.join(valid)}"
        return leads.filter(status__in=statuses), None

    return None, 'Provide lead_ids or statuses'


@company_required
@manager_required
@require_http_methods(["GET", "POST"])
def campaigns_view(request):
    company = request.user.company

    if request.method == 'GET':
        campaigns = WhatsAppCampaign.objects.filter(company=company)
        return JsonResponse({'status': 'success', 'data': [campaign.to_dict() for campaign in campaigns]})

    payload = parse_json_body(request)
    if payload is None:
        return error_response('Invalid JSON payload')

    name = str(payload.get('name') or '').strip()
    if not name:
        return error_response('Name is required')

    template = payload.get('message_template')
    try:
        validate_outgoing_text(template)
    except MessageValidationError as e:
        return error_response(str(e))

    try:
        delay_seconds = int(payload.get('delay_seconds', 5))
    except (TypeError, ValueError):
        return error_response('delay_seconds must be an integer')
    if delay_seconds < 0 or delay_seconds > 3600:
        return error_response('delay_seconds must be between 0 and 3600')

    scheduled_at = None
    if payload.get('scheduled_at'):
        scheduled_at = parse_datetime(payload['scheduled_at']) if isinstance(payload['scheduled_at'], str) else None
        if scheduled_at is None:
            return error_response('Invalid scheduled_at')
        if timezone.is_naive(scheduled_at):
            scheduled_at = timezone.make_aware(scheduled_at)

    leads, error = _campaign_leads(company, payload)
    if error:
        return error_response(error)

    with transaction.atomic():
        campaign = WhatsAppCampaign.objects.create(
            company=company,
            name=name,
            message_template=template,
            delay_seconds=delay_seconds,
            use_ai_personalization=bool(payload.get('use_ai_personalization')),
            ai_instructions=payload.get('ai_instructions') or '',
            scheduled_at=scheduled_at,
            status=WhatsAppCampaign.STATUS_SCHEDULED if scheduled_at else WhatsAppCampaign.STATUS_DRAFT,
            created_by=request.user,
        )
        added = campaign.add_recipients(leads, scheduled_at=scheduled_at)

    if not added:
        campaign.delete()
        return error_response('No leads with a phone number matched')

    logger.info(f"Campaign {campaign.id} created by {request.user.email} with {added} recipients")
    return JsonResponse({'status': 'success', 'data': campaign.to_dict()}, status=201)


@company_required
@manager_required
@require_http_methods(["POST"])
def campaign_start_view(request, pk):
    campaign = WhatsAppCampaign.objects.filter(pk=pk, company=request.user.company).first()
    if campaign is None:
        return error_response('Campaign not found', status=404)

    if not campaign.can_start():
        return error_response(f'Campaign is already {campaign.get_status_display().lower()}', status=409)

    execute_campaign.delay(campaign.id)
    campaign.refresh_from_db()
    return JsonResponse({'status': 'success', 'message': 'Campaign started', 'data': campaign.to_dict()}, status=202)


@company_required
@manager_required
@require_http_methods(["GET"])
def campaign_detail_view(request, pk):
    campaign = WhatsAppCampaign.objects.filter(pk=pk, company=request.user.company).first()
    if campaign is None:
        return error_response('Campaign not found', status=404)

    data = campaign.to_dict()
    data['recipients'] = [recipient.to_dict() for recipient in campaign.messages.select_related('lead')]
    return JsonResponse({'status': 'success', 'data': data})
