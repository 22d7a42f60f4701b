import logging
import time
from dataclasses import dataclass

from django.db.models import F
from django.utils import timezone

from .evolution_api import EvolutionAPIClient, clean_phone
from .models import CampaignMessage, WhatsAppCampaign, WhatsAppMessage
from .personalization import personalize, render_template
from .validation import MessageValidationError, sanitize_for_storage, validate_outgoing_text

logger = logging.getLogger(__name__)

NO_PHONE_ERROR = 'Lead has no phone'


class SendError(Exception):
    pass


@dataclass
class RecipientResult:
    status: str
    error: str = ''


def deliver_campaign_message(campaign, recipient, client, personalize_with_ai=True):
    """
    Render, personalize, send and record one campaign recipient

    Raises:
        SendError / MessageValidationError: the caller marks the recipient failed
    """
    lead = recipient.lead
    phone = clean_phone(lead.phone)
    if not phone:
        recipient.mark_failed(NO_PHONE_ERROR, status=CampaignMessage.STATUS_SKIPPED)
        return RecipientResult(CampaignMessage.STATUS_SKIPPED, NO_PHONE_ERROR)

    text = render_template(campaign.message_template, lead)
    if personalize_with_ai and campaign.use_ai_personalization:
        text = personalize(text, lead, campaign.ai_instructions)
    validate_outgoing_text(text)

    recipient.personalized_message = text
    recipient.save(update_fields=['personalized_message'])

    success, provider_id, error = client.send_text(phone, text)
    if not success:
        raise SendError(error or 'Send failed')

    message = WhatsAppMessage.objects.create(
        company=campaign.company,
        lead=lead,
        phone=phone,
        message=sanitize_for_storage(text),
        direction=WhatsAppMessage.DIRECTION_SENT,
        status=WhatsAppMessage.STATUS_SENT,
        provider_message_id=provider_id,
    )
    recipient.mark_sent(whatsapp_message=message)
    return RecipientResult(CampaignMessage.STATUS_SENT)


class CampaignRunner:
    """
    Sends a campaign to its pending recipients, one at a time

    Sequential single pass: a failed recipient is recorded and the loop moves
    on; the campaign ends completed with its sent/failed counters updated.
    """

    def __init__(self, campaign, client=None, sleep=time.sleep):
        self.campaign = campaign
        self.client = client
        self.sleep = sleep

    def run(self):
        campaign = self.campaign
        client = self.client or EvolutionAPIClient.for_company(campaign.company)
        if client is None:
            raise SendError('WhatsApp configuration is incomplete')

        campaign.status = WhatsAppCampaign.STATUS_SENDING
        campaign.started_at = timezone.now()
        campaign.save(update_fields=['status', 'started_at'])
        logger.info(f"Campaign {campaign.id} ({campaign.name}) started")

        results = {'sent': 0, 'failed': 0, 'skipped': 0}
        recipients = list(campaign.pending_messages().select_related('lead').order_by('created_at', 'id'))

        for index, recipient in enumerate(recipients):
            try:
                result = deliver_campaign_message(campaign, recipient, client)
            except (SendError, MessageValidationError) as e:
                recipient.mark_failed(e)
                result = RecipientResult(CampaignMessage.STATUS_FAILED, str(e))
            except Exception as e:
                logger.error(f"Campaign {campaign.id}: error sending to lead {recipient.lead_id}: {str(e)}", exc_info=True)
                recipient.mark_failed(e)
                result = RecipientResult(CampaignMessage.STATUS_FAILED, str(e))

            results[result.status] += 1
            if result.status == CampaignMessage.STATUS_FAILED:
                logger.warning(f"Campaign {campaign.id}: lead {recipient.lead_id} failed: {result.error}")

            is_last = index == len(recipients) - 1
            if result.status == CampaignMessage.STATUS_SENT and campaign.delay_seconds and not is_last:
                self.sleep(campaign.delay_seconds)

        WhatsAppCampaign.objects.filter(pk=campaign.pk).update(
            sent_count=F('sent_count') + results['sent'],
            failed_count=F('failed_count') + results['failed'],
        )
        campaign.refresh_from_db(fields=['sent_count', 'failed_count', 'leads_responded'])
        campaign.mark_completed()

        logger.info(f"Campaign {campaign.id} completed: {results}")
        return {**results, 'total_processed': sum(results.values())}
