from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from .models import Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['company', 'plan_type', 'status_badge', 'user_limit', 'current_period_end', 'updated_at']
    list_filter = ['status', 'plan_type']
    search_fields = ['company__name', 'stripe_customer_id', 'stripe_subscription_id']
    readonly_fields = ['created_at', 'updated_at']

    def status_badge(self, obj):
        color = '#28a745' if obj.is_valid() else '#dc3545'
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
            color, obj.get_status_display()
        )

    status_badge.short_description = _('Status')
