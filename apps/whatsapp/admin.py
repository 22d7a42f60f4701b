"""
This module provides admin interfaces for WhatsApp models:
- WhatsAppConfig: Evolution API connection per company
- WhatsAppMessage: View sent/received messages
- WhatsAppCampaign: Campaigns with their recipients
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from .models import CampaignMessage, WhatsAppCampaign, WhatsAppConfig, WhatsAppMessage


@admin.register(WhatsAppConfig)
class WhatsAppConfigAdmin(admin.ModelAdmin):
    list_display = ['company', 'instance_name', 'status_badge', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['company__name', 'instance_name']
    readonly_fields = ['webhook_secret', 'get_webhook_url_display', 'created_at', 'updated_at']

    fieldsets = (
        (_('Company Information'), {
            'fields': ('company',)
        }),
        (_('Evolution API'), {
            'fields': ('api_url', 'instance_name', 'api_key'),
            'description': _('Leave blank to use the global EVOLUTION_* settings')
        }),
        (_('Webhook Configuration'), {
            'fields': ('webhook_secret', 'get_webhook_url_display'),
        }),
        (_('Status'), {
            'fields': ('is_active',)
        }),
    )

    def status_badge(self, obj):
        color = '#28a745' if obj.is_active else '#dc3545'
        label = _('Active') if obj.is_active else _('Inactive')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; border-radius: 3px;">{}</span>',
            color, label
        )
    status_badge.short_description = _('Status')

    def get_webhook_url_display(self, obj):
        if not obj.pk:
            return '-'
        return format_html('<code>{}</code>', obj.get_webhook_url())
    get_webhook_url_display.short_description = _('Webhook URL')


@admin.register(WhatsAppMessage)
class WhatsAppMessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'company', 'phone', 'lead', 'direction', 'status', 'created_at']
    list_filter = ['direction', 'status', 'company']
    search_fields = ['phone', 'message', 'lead__name']
    readonly_fields = ['provider_message_id', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'


class CampaignMessageInline(admin.TabularInline):
    model = CampaignMessage
    extra = 0
    fields = ['lead', 'status', 'scheduled_at', 'sent_at', 'error_message']
    readonly_fields = ['sent_at', 'error_message']


@admin.register(WhatsAppCampaign)
class WhatsAppCampaignAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'company', 'status', 'total_recipients', 'sent_count', 'failed_count', 'leads_responded', 'scheduled_at']
    list_filter = ['status', 'use_ai_personalization']
    search_fields = ['name']
    readonly_fields = ['total_recipients', 'sent_count', 'failed_count', 'leads_responded', 'started_at', 'completed_at']
    inlines = [CampaignMessageInline]
