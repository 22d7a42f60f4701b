from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html
from .models import User, UserProfile


# USER PROFILE INLINE (Edit preferences inside user form)
class UserProfileInline(admin.StackedInline):

    model = UserProfile
    can_delete = False
    verbose_name = _('Preferences')
    verbose_name_plural = _('Preferences')

    fk_name = "user"
    extra = 0
    max_num = 1
    fields = ('email_notifications', 'theme', 'onboarding_completed')


ROLE_COLORS = {
    User.ROLE_OWNER: '#7c3aed',
    User.ROLE_MANAGER: '#28a745',
    User.ROLE_SELLER: '#007bff',
}


# CUSTOM USER ADMIN
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        'email',
        'get_full_name_display',
        'company',
        'role_badge',
        'is_active',
        'must_change_password',
        'date_joined',
    )
    list_display_links = ('email', 'get_full_name_display')
    list_filter = ('role', 'is_active', 'is_staff', 'must_change_password', 'company')
    search_fields = ('email', 'first_name', 'last_name', 'phone', 'company__name')
    ordering = ('-date_joined',)
    list_per_page = 25
    list_select_related = ('company', 'profile')

    fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password', 'must_change_password'),
            'classes': ('wide',),
        }),
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'phone', 'avatar'),
            'classes': ('wide',),
        }),
        (_('Company & Role'), {
            'fields': ('company', 'role'),
            'classes': ('wide',),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Activity Tracking'), {
            'fields': ('date_joined', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    # Fields shown when creating NEW user
    add_fieldsets = (
        (_('Login Credentials'), {
            'fields': ('email', 'password1', 'password2'),
            'classes': ('wide',),
        }),
        (_('Company & Role'), {
            'fields': ('first_name', 'last_name', 'company', 'role'),
            'classes': ('wide',),
        }),
    )

    readonly_fields = ('date_joined', 'last_login')
    inlines = [UserProfileInline]

    def get_full_name_display(self, obj):
        return obj.get_full_name()

    get_full_name_display.short_description = _('Full Name')
    get_full_name_display.admin_order_field = 'first_name'

    def role_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#6c757d'), obj.get_role_display()
        )

    role_badge.short_description = _('Role')
    role_badge.admin_order_field = 'role'

    def has_delete_permission(self, request, obj=None):
        if obj and obj == request.user:
            return False  # Cannot delete yourself
        return super().has_delete_permission(request, obj)


admin.site.site_header = _('WorkFlow360 Administration')
admin.site.site_title = _('WorkFlow360')
admin.site.index_title = _('WorkFlow360 Admin Panel')
