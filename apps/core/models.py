import secrets

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.text import slugify
from django.utils.translation import gettext_lazy as _


class Company(models.Model):

    # Basic Information
    name = models.CharField(max_length=200,help_text="Company name (several tenants may share it)")
    slug = models.SlugField(max_length=220,unique=True,help_text="URL-friendly name (auto-generated)")
    logo = models.ImageField(upload_to='companies/logos/',null=True,blank=True,help_text="Company logo")
    owner = models.ForeignKey(settings.AUTH_USER_MODEL,on_delete=models.SET_NULL,null=True,blank=True,
                              related_name='owned_companies',help_text="Account owner (billing contact)")

    # White-label Settings
    system_name = models.CharField(max_length=100,blank=True,help_text="Name shown instead of WorkFlow360")
    theme = models.JSONField(default=dict,blank=True,help_text="Brand colors, e.g. {\"primary\": \"#2563eb\"}")
    timezone = models.CharField(max_length=50,default='America/Sao_Paulo',help_text="Company timezone")

    # Seats bought on top of the plan limit
    extra_user_limit = models.PositiveIntegerField(default=0,help_text="Additional users beyond the plan limit")

    # Status
    is_active = models.BooleanField(default=True,help_text="Is company active?")
    daily_reports_enabled = models.BooleanField(default=True,help_text="Email the daily performance reports")

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Company"
        verbose_name_plural = "Companies"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):

        if not self.slug:
            self.slug = self._unique_slug()
        super().save(*args, **kwargs)

    def _unique_slug(self):
        base = slugify(self.name) or 'company'
        slug = base
        suffix = 2
        while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def get_active_users_count(self):

        return self.users.filter(is_active=True).count()

    def get_total_leads_count(self):
        return self.leads.count()

    def get_subscription(self):
        from apps.billing.models import Subscription
        return Subscription.objects.filter(company=self).first()

    def seat_limit(self):
        """
        Maximum number of active users, or None when unlimited.

        Companies without a valid subscription get the free plan (1 user).
        Extra seats are added on top of the plan limit.
        """
        subscription = self.get_subscription()
        if subscription and subscription.is_valid():
            if subscription.user_limit < 0:
                return None
            base = subscription.user_limit
        else:
            base = 1
        return base + self.extra_user_limit

    def seats_available(self):
        limit = self.seat_limit()
        if limit is None:
            return None
        return max(0, limit - self.get_active_users_count())


class ApiToken(models.Model):
    """Bearer token used by external systems (forms, spreadsheets) to push leads"""

    company = models.ForeignKey(Company,on_delete=models.CASCADE,related_name='api_tokens',verbose_name=_('Company'))
    name = models.CharField(max_length=100,verbose_name=_('Name'),help_text=_('Where this token is used, e.g. "Google Sheets"'))
    token = models.CharField(max_length=64,unique=True,editable=False,verbose_name=_('Token'))
    is_active = models.BooleanField(default=True,verbose_name=_('Is Active'))
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL,on_delete=models.SET_NULL,null=True,blank=True,
                                   related_name='api_tokens',verbose_name=_('Created By'))
    last_used_at = models.DateTimeField(null=True,blank=True,verbose_name=_('Last Used At'))
    created_at = models.DateTimeField(auto_now_add=True,verbose_name=_('Created At'))

    class Meta:
        verbose_name = _('API Token')
        verbose_name_plural = _('API Tokens')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.company.name})"

    @staticmethod
    def generate_token():
        return secrets.token_urlsafe(32)

    def save(self, *args, **kwargs):
        if not self.token:
            self.token = self.generate_token()
        super().save(*args, **kwargs)

    def masked(self):
        return f"{self.token[:6]}..."

    def touch(self):
        self.last_used_at = timezone.now()
        self.save(update_fields=['last_used_at'])

    def revoke(self):
        self.is_active = False
        self.save(update_fields=['is_active'])


class IntegrationLog(models.Model):

    company = models.ForeignKey(Company,on_delete=models.CASCADE,related_name='integration_logs',verbose_name=_('Company'))

    TYPE_API = 'api'
    TYPE_STRIPE = 'stripe'
    TYPE_WHATSAPP = 'whatsapp'
    TYPE_CHOICES = [(TYPE_API, _('External API')),(TYPE_STRIPE, _('Stripe')),(TYPE_WHATSAPP, _('WhatsApp')),]

    integration_type = models.CharField(max_length=20,choices=TYPE_CHOICES,default=TYPE_API,verbose_name=_('Integration'))
    action = models.CharField(max_length=50,verbose_name=_('Action'),help_text=_('e.g. create_lead'))

    STATUS_SUCCESS = 'success'
    STATUS_ERROR = 'error'
    STATUS_CHOICES = [(STATUS_SUCCESS, _('Success')),(STATUS_ERROR, _('Error')),]

    status = models.CharField(max_length=10,choices=STATUS_CHOICES,verbose_name=_('Status'))
    request_data = models.JSONField(default=dict,blank=True,verbose_name=_('Request Data'))
    response_data = models.JSONField(default=dict,blank=True,verbose_name=_('Response Data'))
    error_message = models.TextField(blank=True,verbose_name=_('Error Message'))
    created_at = models.DateTimeField(auto_now_add=True,db_index=True,verbose_name=_('Created At'))

    class Meta:
        verbose_name = _('Integration Log')
        verbose_name_plural = _('Integration Logs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'integration_type', '-created_at']),
        ]

    def __str__(self):
        return f"{self.integration_type}:{self.action} [{self.status}]"


class RateLimitLog(models.Model):
    """One row per accepted request; counted inside a sliding window"""

    identifier = models.CharField(max_length=255,help_text=_('Client IP or user id'))
    endpoint = models.CharField(max_length=100)
    created_at = models.DateTimeField(default=timezone.now,db_index=True)

    class Meta:
        verbose_name = _('Rate Limit Log')
        verbose_name_plural = _('Rate Limit Logs')
        indexes = [
            models.Index(fields=['identifier', 'endpoint', 'created_at']),
        ]

    def __str__(self):
        return f"{self.identifier} -> {self.endpoint}"
