from django.contrib import admin
from .models import GamificationEvent, GamificationSetting


@admin.register(GamificationEvent)
class GamificationEventAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'company', 'event_type', 'points', 'lead', 'created_at']
    list_filter = ['event_type', 'company']
    search_fields = ['user__email', 'lead__name']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at']


@admin.register(GamificationSetting)
class GamificationSettingAdmin(admin.ModelAdmin):
    list_display = ['company', 'event_type', 'points', 'updated_by', 'updated_at']
    list_filter = ['event_type']
