from django.contrib import admin
from django.utils.html import format_html
from .models import ApiToken, Company, IntegrationLog, RateLimitLog


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):

    list_display = [
        'name',
        'owner',
        'status_badge',
        'users_count',
        'created_at'
    ]
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'slug', 'owner__email']
    prepopulated_fields = {'slug': ('name',)}
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['owner']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'slug', 'logo', 'owner')
        }),
        ('White-label', {
            'fields': ('system_name', 'theme', 'timezone')
        }),
        ('Seats', {
            'fields': ('extra_user_limit',)
        }),
        ('Status', {
            'fields': ('is_active', 'daily_reports_enabled')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):

        if obj.is_active:
            return format_html(
                '<span style="background-color: #28a745; color: white; '
                'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
                'Active</span>'
            )
        return format_html(
            '<span style="background-color: #dc3545; color: white; '
            'padding: 3px 10px; border-radius: 3px; font-size: 11px;">'
            'Inactive</span>'
        )

    status_badge.short_description = 'Status'

    def users_count(self, obj):

        count = obj.get_active_users_count()
        return format_html(
            '<span style="color: #667eea; font-weight: bold;">{} users</span>',
            count
        )

    users_count.short_description = 'Users'


@admin.register(ApiToken)
class ApiTokenAdmin(admin.ModelAdmin):

    list_display = ['name', 'company', 'masked_token', 'is_active', 'last_used_at', 'created_at']
    list_filter = ['is_active', 'company']
    search_fields = ['name', 'company__name']
    readonly_fields = ['token', 'last_used_at', 'created_at']

    def masked_token(self, obj):
        return obj.masked()

    masked_token.short_description = 'Token'


@admin.register(IntegrationLog)
class IntegrationLogAdmin(admin.ModelAdmin):

    list_display = ['integration_type', 'action', 'company', 'status_badge', 'created_at']
    list_filter = ['integration_type', 'status', 'created_at']
    search_fields = ['action', 'error_message', 'company__name']
    readonly_fields = ['company', 'integration_type', 'action', 'status', 'request_data',
                       'response_data', 'error_message', 'created_at']

    def status_badge(self, obj):
        color = '#28a745' if obj.status == IntegrationLog.STATUS_SUCCESS else '#dc3545'
        return format_html(
            '<span style="color: {}; font-weight: bold;">● {}</span>',
            color,
            obj.get_status_display()
        )

    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False


@admin.register(RateLimitLog)
class RateLimitLogAdmin(admin.ModelAdmin):

    list_display = ['identifier', 'endpoint', 'created_at']
    list_filter = ['endpoint']
    search_fields = ['identifier']
