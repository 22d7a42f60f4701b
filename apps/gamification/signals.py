import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db.models.signals import post_save
from django.dispatch import receiver

from apps.agenda.models import Meeting
from apps.leads.models import Lead, LeadObservation
from .models import GamificationEvent
from .scoring import event_ranking_changes, record_event

logger = logging.getLogger(__name__)


def company_group_name(company_id):
    return f"gamification_{company_id}"


def _lead_actor(lead):
    """Who gets the points for a pipeline move: the acting user, else the seller"""
    return getattr(lead, '_changed_by', None) or lead.assigned_to or lead.created_by


@receiver(post_save, sender=Lead)
def score_lead_changes(sender, instance, created, **kwargs):
    if created:
        record_event(instance.created_by or instance.assigned_to, GamificationEvent.EVENT_LEAD_CREATED, lead=instance)
        return

    old_status = getattr(instance, '_old_status', None)
    old_qualified = getattr(instance, '_old_qualified', None)

    if instance.qualified and old_qualified is False:
        record_event(_lead_actor(instance), GamificationEvent.EVENT_LEAD_QUALIFIED, lead=instance)

    if old_status is None or old_status == instance.status:
        return

    if instance.status == Lead.STATUS_PROPOSAL:
        record_event(_lead_actor(instance), GamificationEvent.EVENT_PROPOSAL_SENT, lead=instance)
    elif instance.status == Lead.STATUS_WON:
        # The sale belongs to the seller of the lead, not to whoever dragged the card
        record_event(instance.assigned_to or _lead_actor(instance), GamificationEvent.EVENT_SALE_CLOSED, lead=instance)


@receiver(post_save, sender=LeadObservation)
def score_observation(sender, instance, created, **kwargs):
    if created and instance.user_id:
        record_event(instance.user, GamificationEvent.EVENT_OBSERVATION_ADDED, lead=instance.lead)


@receiver(post_save, sender=Meeting)
def score_meeting(sender, instance, created, **kwargs):
    if created and instance.created_by_id:
        record_event(
            instance.created_by,
            GamificationEvent.EVENT_MEETING_SCHEDULED,
            lead=instance.lead,
            metadata={'meeting_title': instance.title}
        )


@receiver(post_save, sender=GamificationEvent)
def broadcast_event(sender, instance, created, **kwargs):
    if not created:
        return

    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    try:
        message = {
            'type': 'gamification.event',
            'event': {
                **instance.to_dict(),
                'user_name': instance.user.get_full_name(),
                'celebrate': instance.event_type == GamificationEvent.EVENT_SALE_CLOSED,
            },
            'ranking_changes': event_ranking_changes(instance),
        }
        async_to_sync(channel_layer.group_send)(company_group_name(instance.company_id), message)
    except Exception as e:
        logger.error(f"Error broadcasting gamification event {instance.id}: {str(e)}", exc_info=True)
