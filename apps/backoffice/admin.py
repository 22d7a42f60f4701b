from django.contrib import admin
from .models import AdminOTPCode, AdminSession


@admin.register(AdminOTPCode)
class AdminOTPCodeAdmin(admin.ModelAdmin):
    list_display = ['email', 'used', 'expires_at', 'created_at']
    list_filter = ['used']
    exclude = ['code']


@admin.register(AdminSession)
class AdminSessionAdmin(admin.ModelAdmin):
    list_display = ['email', 'revoked', 'expires_at', 'created_at']
    list_filter = ['revoked']
    exclude = ['token']
