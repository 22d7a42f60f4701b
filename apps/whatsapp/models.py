"""
This module contains models for WhatsApp integration via Evolution API:
- WhatsAppConfig: Evolution instance credentials per company
- WhatsAppMessage: Every sent/received message
- WhatsAppCampaign: Bulk message to a list of leads
- CampaignMessage: One recipient of a campaign
"""

import secrets
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.core.models import Company
from apps.leads.models import Lead


class WhatsAppConfig(models.Model):
    """Blank connection fields fall back to the EVOLUTION_* settings"""

    company = models.OneToOneField(Company,on_delete=models.CASCADE,related_name='whatsapp_config',verbose_name=_('Company'))

    api_url = models.URLField(max_length=255,blank=True,verbose_name=_('API URL'),help_text=_('Evolution API base URL'))
    instance_name = models.CharField(max_length=100,blank=True,verbose_name=_('Instance'),help_text=_('Evolution instance connected to the WhatsApp number'))
    api_key = models.CharField(max_length=255,blank=True,verbose_name=_('API Key'))
    webhook_secret = models.CharField(max_length=64,unique=True,editable=False,verbose_name=_('Webhook Secret'),help_text=_('Part of the webhook URL given to Evolution'))

    is_active = models.BooleanField(default=True,verbose_name=_('Is Active'))
    created_at = models.DateTimeField(auto_now_add=True,verbose_name=_('Created At'))
    updated_at = models.DateTimeField(auto_now=True,verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('WhatsApp Configuration')
        verbose_name_plural = _('WhatsApp Configurations')

    def __str__(self):
        return f"WhatsApp Config - {self.company.name}"

    def save(self, *args, **kwargs):
        if not self.webhook_secret:
            self.webhook_secret = secrets.token_urlsafe(24)
        super().save(*args, **kwargs)

    def get_api_url(self):
        return (self.api_url or settings.EVOLUTION_API_URL).rstrip('/')

    def get_instance_name(self):
        return self.instance_name or settings.EVOLUTION_INSTANCE_NAME

    def get_api_key(self):
        return self.api_key or settings.EVOLUTION_API_KEY

    def get_webhook_url(self):
        return f"{settings.SITE_URL}/api/whatsapp/webhook/{self.webhook_secret}/"


class WhatsAppMessage(models.Model):

    company = models.ForeignKey(Company,on_delete=models.CASCADE,related_name='whatsapp_messages',verbose_name=_('Company'))
    lead = models.ForeignKey(Lead,on_delete=models.SET_NULL,null=True,blank=True,related_name='whatsapp_messages',verbose_name=_('Lead'))
    user = models.ForeignKey(settings.AUTH_USER_MODEL,on_delete=models.SET_NULL,null=True,blank=True,related_name='whatsapp_messages',verbose_name=_('User'),help_text=_('Sender (null for received and campaign messages)'))

    phone = models.CharField(max_length=20,db_index=True,verbose_name=_('Phone'))
    message = models.TextField(verbose_name=_('Message'),help_text=_('HTML-escaped copy of the text'))

    DIRECTION_SENT = 'sent'
    DIRECTION_RECEIVED = 'received'
    DIRECTION_CHOICES = [(DIRECTION_SENT, _('Sent')),(DIRECTION_RECEIVED, _('Received')),]

    direction = models.CharField(max_length=10,choices=DIRECTION_CHOICES,verbose_name=_('Direction'))

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_READ = 'read'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [(STATUS_PENDING, _('Pending')),(STATUS_SENT, _('Sent')),
                      (STATUS_DELIVERED, _('Delivered')),(STATUS_READ, _('Read')),
                      (STATUS_FAILED, _('Failed')),]

    status = models.CharField(max_length=20,choices=STATUS_CHOICES,default=STATUS_PENDING,verbose_name=_('Status'))

    MEDIA_IMAGE = 'image'
    MEDIA_VIDEO = 'video'
    MEDIA_DOCUMENT = 'document'
    MEDIA_AUDIO = 'audio'
    MEDIA_CHOICES = [(MEDIA_IMAGE, _('Image')),(MEDIA_VIDEO, _('Video')),(MEDIA_DOCUMENT, _('Document')),(MEDIA_AUDIO, _('Audio')),]

    media_url = models.URLField(max_length=500,blank=True,null=True,verbose_name=_('Media URL'))
    media_type = models.CharField(max_length=20,choices=MEDIA_CHOICES,blank=True,null=True,verbose_name=_('Media Type'))

    provider_message_id = models.CharField(max_length=255,blank=True,null=True,verbose_name=_('Evolution Message ID'))
    error_message = models.TextField(blank=True,null=True,verbose_name=_('Error Message'))
    created_at = models.DateTimeField(default=timezone.now,verbose_name=_('Created At'),db_index=True)
    updated_at = models.DateTimeField(auto_now=True,verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('WhatsApp Message')
        verbose_name_plural = _('WhatsApp Messages')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
            models.Index(fields=['company', 'status', '-created_at']),
        ]

    def __str__(self):
        direction_icon = '→' if self.direction == self.DIRECTION_SENT else '←'
        preview = self.message[:50] + '...' if len(self.message) > 50 else self.message
        return f"{direction_icon} {self.phone}: {preview}"

    def has_media(self):
        return bool(self.media_url)

    def mark_as_sent(self, provider_message_id=None):
        self.status = self.STATUS_SENT
        if provider_message_id:
            self.provider_message_id = provider_message_id
        self.save(update_fields=['status', 'provider_message_id', 'updated_at'])

    def mark_as_failed(self, error_message):
        self.status = self.STATUS_FAILED
        self.error_message = error_message
        self.save(update_fields=['status', 'error_message', 'updated_at'])

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'phone': self.phone,
            'message': self.message,
            'direction': self.direction,
            'status': self.status,
            'media_url': self.media_url,
            'media_type': self.media_type,
            'error_message': self.error_message,
            'created_at': self.created_at.isoformat(),
        }


class WhatsAppCampaign(models.Model):

    company = models.ForeignKey(Company,on_delete=models.CASCADE,related_name='whatsapp_campaigns',verbose_name=_('Company'))
    name = models.CharField(max_length=200,verbose_name=_('Name'))
    message_template = models.TextField(verbose_name=_('Message Template'),help_text=_('Supports {nome}, {empresa} and {email}'))

    STATUS_DRAFT = 'draft'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_SENDING = 'sending'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [(STATUS_DRAFT, _('Draft')),(STATUS_SCHEDULED, _('Scheduled')),(STATUS_SENDING, _('Sending')),
                      (STATUS_COMPLETED, _('Completed')),(STATUS_CANCELLED, _('Cancelled')),]

    status = models.CharField(max_length=20,choices=STATUS_CHOICES,default=STATUS_DRAFT,db_index=True,verbose_name=_('Status'))
    delay_seconds = models.PositiveIntegerField(default=5,verbose_name=_('Delay'),help_text=_('Seconds between two messages (anti-spam)'))

    use_ai_personalization = models.BooleanField(default=False,verbose_name=_('AI Personalization'))
    ai_instructions = models.TextField(blank=True,verbose_name=_('AI Instructions'))

    total_recipients = models.PositiveIntegerField(default=0)
    sent_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    leads_responded = models.PositiveIntegerField(default=0)

    scheduled_at = models.DateTimeField(null=True,blank=True,verbose_name=_('Scheduled At'))
    started_at = models.DateTimeField(null=True,blank=True)
    completed_at = models.DateTimeField(null=True,blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL,on_delete=models.SET_NULL,null=True,blank=True,related_name='whatsapp_campaigns')
    created_at = models.DateTimeField(default=timezone.now,verbose_name=_('Created At'))

    class Meta:
        verbose_name = _('WhatsApp Campaign')
        verbose_name_plural = _('WhatsApp Campaigns')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"

    def add_recipients(self, leads, scheduled_at=None, stagger_seconds=0):
        """
        Queue leads with a phone; returns how many recipients were added

        With `stagger_seconds` the n-th recipient is scheduled n * stagger_seconds
        after `scheduled_at`.
        """
        existing = set(self.messages.values_list('lead_id', flat=True))
        leads = [lead for lead in leads if lead.phone and lead.id not in existing]
        rows = []
        for index, lead in enumerate(leads):
            when = scheduled_at
            if scheduled_at and stagger_seconds:
                when = scheduled_at + timedelta(seconds=index * stagger_seconds)
            rows.append(CampaignMessage(campaign=self, lead=lead, scheduled_at=when))
        CampaignMessage.objects.bulk_create(rows)
        self.total_recipients = self.messages.count()
        self.save(update_fields=['total_recipients'])
        return len(rows)

    def pending_messages(self):
        return self.messages.filter(status=CampaignMessage.STATUS_PENDING)

    def can_start(self):
        return self.status in (self.STATUS_DRAFT, self.STATUS_SCHEDULED)

    def mark_completed(self):
        self.status = self.STATUS_COMPLETED
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'completed_at'])

    def register_response(self):
        WhatsAppCampaign.objects.filter(pk=self.pk).update(leads_responded=F('leads_responded') + 1)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'message_template': self.message_template,
            'status': self.status,
            'delay_seconds': self.delay_seconds,
            'use_ai_personalization': self.use_ai_personalization,
            'total_recipients': self.total_recipients,
            'sent_count': self.sent_count,
            'failed_count': self.failed_count,
            'leads_responded': self.leads_responded,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class CampaignMessage(models.Model):

    campaign = models.ForeignKey(WhatsAppCampaign,on_delete=models.CASCADE,related_name='messages')
    lead = models.ForeignKey(Lead,on_delete=models.CASCADE,related_name='campaign_messages')

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'
    STATUS_SKIPPED = 'skipped'
    STATUS_CHOICES = [(STATUS_PENDING, _('Pending')),(STATUS_SENT, _('Sent')),(STATUS_FAILED, _('Failed')),(STATUS_SKIPPED, _('Skipped')),]

    status = models.CharField(max_length=20,choices=STATUS_CHOICES,default=STATUS_PENDING,db_index=True)
    scheduled_at = models.DateTimeField(null=True,blank=True,db_index=True)
    personalized_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True,blank=True)
    error_message = models.TextField(blank=True)
    whatsapp_message = models.ForeignKey(WhatsAppMessage,on_delete=models.SET_NULL,null=True,blank=True,related_name='+')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Campaign Message')
        verbose_name_plural = _('Campaign Messages')
        ordering = ['created_at', 'id']
        unique_together = [['campaign', 'lead']]

    def __str__(self):
        return f"{self.campaign.name} -> {self.lead.name} [{self.status}]"

    def mark_sent(self, whatsapp_message=None):
        self.status = self.STATUS_SENT
        self.sent_at = timezone.now()
        self.whatsapp_message = whatsapp_message
        self.error_message = ''
        self.save(update_fields=['status', 'sent_at', 'whatsapp_message', 'error_message'])

    def mark_failed(self, error, status=None):
        self.status = status or self.STATUS_FAILED
        self.error_message = str(error)[:1000]
        self.save(update_fields=['status', 'error_message'])

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'lead_name': self.lead.name,
            'status': self.status,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'error_message': self.error_message,
        }
