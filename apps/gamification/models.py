from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.core.models import Company


class GamificationEvent(models.Model):
    """One scored action; the leaderboard is a sum over a time window"""

    EVENT_LEAD_CREATED = 'lead_created'
    EVENT_LEAD_QUALIFIED = 'lead_qualified'
    EVENT_PROPOSAL_SENT = 'proposal_sent'
    EVENT_SALE_CLOSED = 'sale_closed'
    EVENT_MEETING_SCHEDULED = 'meeting_scheduled'
    EVENT_OBSERVATION_ADDED = 'observation_added'
    EVENT_TYPE_CHOICES = [
        (EVENT_LEAD_CREATED, 'Lead created'),
        (EVENT_LEAD_QUALIFIED, 'Lead qualified'),
        (EVENT_PROPOSAL_SENT, 'Proposal sent'),
        (EVENT_SALE_CLOSED, 'Sale closed'),
        (EVENT_MEETING_SCHEDULED, 'Meeting scheduled'),
        (EVENT_OBSERVATION_ADDED, 'Observation added'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='gamification_events')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='gamification_events')
    event_type = models.CharField(max_length=30, choices=EVENT_TYPE_CHOICES, db_index=True)
    points = models.IntegerField(default=0)
    lead = models.ForeignKey('leads.Lead', on_delete=models.SET_NULL, null=True, blank=True, related_name='gamification_events')
    metadata = models.JSONField(default=dict, blank=True, help_text='lead_name, estimated_value...')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = 'Gamification Event'
        verbose_name_plural = 'Gamification Events'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', '-created_at']),
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        return f"{self.user} +{self.points} ({self.event_type})"

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'event_type': self.event_type,
            'points': self.points,
            'lead_id': self.lead_id,
            'metadata': self.metadata,
            'created_at': self.created_at.isoformat(),
        }


class GamificationSetting(models.Model):
    """Company override of the default points of one event type"""

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='gamification_settings')
    event_type = models.CharField(max_length=30, choices=GamificationEvent.EVENT_TYPE_CHOICES)
    points = models.PositiveIntegerField()
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Gamification Setting'
        verbose_name_plural = 'Gamification Settings'
        unique_together = [['company', 'event_type']]

    def __str__(self):
        return f"{self.company.name}: {self.event_type} = {self.points}"
