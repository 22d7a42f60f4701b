import logging
import time

from celery import shared_task
from django.conf import settings
from django.db.models import F
from django.utils import timezone

from .campaign import CampaignRunner, SendError, deliver_campaign_message
from .evolution_api import EvolutionAPIClient
from .models import CampaignMessage, WhatsAppCampaign
from .validation import MessageValidationError

logger = logging.getLogger(__name__)


@shared_task
def execute_campaign(campaign_id):
    """Send a whole campaign now (POST /api/whatsapp/campaigns/<id>/start/)"""
    try:
        campaign = WhatsAppCampaign.objects.select_related('company').get(pk=campaign_id)
    except WhatsAppCampaign.DoesNotExist:
        logger.error(f"Campaign {campaign_id} not found")
        return {'error': 'Campaign not found'}

    if campaign.status in (WhatsAppCampaign.STATUS_COMPLETED, WhatsAppCampaign.STATUS_CANCELLED):
        logger.warning(f"Campaign {campaign_id} is {campaign.status}, not executing")
        return {'error': f'Campaign is {campaign.status}'}

    try:
        return CampaignRunner(campaign).run()
    except SendError as e:
        logger.error(f"Campaign {campaign_id} could not start: {str(e)}")
        return {'error': str(e)}


@shared_task
def process_scheduled_messages():
    """
    Send due messages of scheduled campaigns, WHATSAPP_SCHEDULED_BATCH_SIZE per run
    Scheduled in config/celery.py (every minute)
    """
    now = timezone.now()
    batch = list(
        CampaignMessage.objects.filter(
            status=CampaignMessage.STATUS_PENDING,
            scheduled_at__lte=now,
            campaign__status__in=[WhatsAppCampaign.STATUS_SCHEDULED, WhatsAppCampaign.STATUS_SENDING],
        ).select_related('campaign', 'campaign__company', 'lead').order_by('scheduled_at', 'id')[:settings.WHATSAPP_SCHEDULED_BATCH_SIZE]
    )

    if not batch:
        return {'processed': 0, 'sent': 0, 'failed': 0, 'skipped': 0}

    logger.info(f"Processing {len(batch)} scheduled WhatsApp messages")
    results = {'sent': 0, 'failed': 0, 'skipped': 0}
    clients = {}
    campaigns = {}

    for recipient in batch:
        campaign = recipient.campaign
        campaigns[campaign.id] = campaign

        if campaign.status == WhatsAppCampaign.STATUS_SCHEDULED:
            campaign.status = WhatsAppCampaign.STATUS_SENDING
            campaign.started_at = campaign.started_at or now
            campaign.save(update_fields=['status', 'started_at'])

        if campaign.company_id not in clients:
            clients[campaign.company_id] = EvolutionAPIClient.for_company(campaign.company)
        client = clients[campaign.company_id]

        try:
            if client is None:
                raise SendError('WhatsApp configuration is incomplete')
            result = deliver_campaign_message(campaign, recipient, client)
            status = result.status
        except (SendError, MessageValidationError) as e:
            recipient.mark_failed(e)
            status = CampaignMessage.STATUS_FAILED
        except Exception as e:
            logger.error(f"Error processing campaign message {recipient.id}: {str(e)}", exc_info=True)
            recipient.mark_failed(e)
            status = CampaignMessage.STATUS_FAILED

        results[status] += 1
        if status == CampaignMessage.STATUS_SENT:
            WhatsAppCampaign.objects.filter(pk=campaign.pk).update(sent_count=F('sent_count') + 1)
            if campaign.delay_seconds:
                time.sleep(campaign.delay_seconds)
        elif status == CampaignMessage.STATUS_FAILED:
            WhatsAppCampaign.objects.filter(pk=campaign.pk).update(failed_count=F('failed_count') + 1)

    for campaign in campaigns.values():
        if not campaign.pending_messages().exists():
            campaign.mark_completed()
            logger.info(f"Campaign {campaign.id} completed")

    logger.info(f"Scheduled messages: {results}")
    return {'processed': len(batch), **results}
