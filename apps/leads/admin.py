from django.contrib import admin
from django.db.models import Sum
from django.utils.html import format_html
from .models import Lead, LeadObservation, LeadValue, Activity

STATUS_COLORS = {
    Lead.STATUS_NEW: '#17a2b8',
    Lead.STATUS_CONTACTED: '#ffc107',
    Lead.STATUS_PROPOSAL: '#667eea',
    Lead.STATUS_NEGOTIATION: '#fd7e14',
    Lead.STATUS_WON: '#28a745',
    Lead.STATUS_LOST: '#dc3545',
}


class LeadValueInline(admin.TabularInline):
    model = LeadValue
    extra = 0
    fields = ['name', 'value_type', 'amount', 'notes', 'created_by']
    raw_id_fields = ['created_by']


class ObservationInline(admin.TabularInline):
    model = LeadObservation
    extra = 0
    fields = ['user', 'note_type', 'content', 'created_at']
    readonly_fields = ['created_at']
    raw_id_fields = ['user']
    classes = ['collapse']


class ActivityInline(admin.TabularInline):
    """Timeline written by the model operations; read-only here"""

    model = Activity
    extra = 0
    fields = ['created_at', 'user', 'activity_type', 'description']
    readonly_fields = fields
    classes = ['collapse']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ['name', 'company', 'status_badge', 'qualified', 'estimated_value', 'registered_value', 'seller', 'days_idle_display', 'created_at']
    list_filter = ['status', 'qualified', 'source', 'company']
    search_fields = ['name', 'company_name', 'phone', 'email', 'assigned_to__email']
    list_select_related = ['company', 'assigned_to']
    raw_id_fields = ['assigned_to', 'created_by']
    date_hierarchy = 'created_at'
    list_per_page = 50
    inlines = [LeadValueInline, ObservationInline, ActivityInline]

    fieldsets = [
        ('Contact', {'fields': ['company', 'name', 'company_name', 'phone', 'email', 'source', 'tags']}),
        ('Pipeline', {'fields': ['status', 'qualified', 'estimated_value', 'loss_reason']}),
        ('Ownership', {'fields': ['assigned_to', 'created_by']}),
        ('Timestamps', {'fields': ['created_at', 'updated_at'], 'classes': ['collapse']}),
    ]
    readonly_fields = ['updated_at']

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(values_total=Sum('lead_values__amount'))

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; border-radius: 3px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6c757d'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def registered_value(self, obj):
        return obj.values_total or '-'
    registered_value.short_description = 'Registered value'
    registered_value.admin_order_field = 'values_total'

    def seller(self, obj):
        if obj.assigned_to_id:
            return obj.assigned_to.get_full_name()
        return format_html('<span style="color: #999;">{}</span>', 'Unassigned')
    seller.admin_order_field = 'assigned_to__first_name'

    def days_idle_display(self, obj):
        if obj.is_closed():
            return '-'
        return obj.days_idle()
    days_idle_display.short_description = 'Idle days'


@admin.register(LeadValue)
class LeadValueAdmin(admin.ModelAdmin):
    list_display = ['name', 'lead', 'value_type', 'amount', 'created_at']
    list_filter = ['value_type', 'lead__company']
    search_fields = ['name', 'lead__name']
    list_select_related = ['lead']
    raw_id_fields = ['lead', 'created_by']


@admin.register(LeadObservation)
class LeadObservationAdmin(admin.ModelAdmin):
    list_display = ['lead', 'user', 'note_type', 'short_content', 'created_at']
    list_filter = ['note_type', 'lead__company']
    search_fields = ['content', 'lead__name']
    list_select_related = ['lead', 'user']
    raw_id_fields = ['lead', 'user']

    def short_content(self, obj):
        return obj.content[:80]
    short_content.short_description = 'Content'


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['lead', 'user', 'activity_type', 'description', 'created_at']
    list_filter = ['activity_type']
    search_fields = ['description', 'lead__name']
    list_select_related = ['lead', 'user']
    readonly_fields = ['lead', 'user', 'activity_type', 'description', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
