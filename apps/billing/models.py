from django.db import models
from django.utils.translation import gettext_lazy as _
from apps.core.models import Company


class Subscription(models.Model):

    company = models.OneToOneField(Company,on_delete=models.CASCADE,related_name='subscription',verbose_name=_('Company'))

    STATUS_ACTIVE = 'active'
    STATUS_TRIALING = 'trialing'
    STATUS_PAST_DUE = 'past_due'
    STATUS_CANCELED = 'canceled'
    STATUS_INACTIVE = 'inactive'
    STATUS_CHOICES = [(STATUS_ACTIVE, _('Active')),(STATUS_TRIALING, _('Trialing')),
                      (STATUS_PAST_DUE, _('Past due')),(STATUS_CANCELED, _('Canceled')),
                      (STATUS_INACTIVE, _('Inactive')),]
    VALID_STATUSES = (STATUS_ACTIVE, STATUS_TRIALING)

    status = models.CharField(max_length=20,choices=STATUS_CHOICES,default=STATUS_INACTIVE,db_index=True,verbose_name=_('Status'))

    PLAN_FREE = 'free'
    PLAN_INDIVIDUAL = 'individual'
    PLAN_TEAM = 'team'
    PLAN_ENTERPRISE = 'enterprise'
    PLAN_CHOICES = [(PLAN_FREE, _('Free')),(PLAN_INDIVIDUAL, _('Individual')),
                    (PLAN_TEAM, _('Team')),(PLAN_ENTERPRISE, _('Enterprise')),]

    plan_type = models.CharField(max_length=20,choices=PLAN_CHOICES,default=PLAN_FREE,verbose_name=_('Plan'))
    user_limit = models.IntegerField(default=1,verbose_name=_('User Limit'),help_text=_('Active users allowed by the plan; -1 means unlimited'))

    stripe_customer_id = models.CharField(max_length=255,blank=True,db_index=True,verbose_name=_('Stripe Customer ID'))
    stripe_subscription_id = models.CharField(max_length=255,blank=True,db_index=True,verbose_name=_('Stripe Subscription ID'))
    stripe_price_id = models.CharField(max_length=255,blank=True,verbose_name=_('Stripe Price ID'))

    current_period_start = models.DateTimeField(null=True,blank=True,verbose_name=_('Current Period Start'))
    current_period_end = models.DateTimeField(null=True,blank=True,verbose_name=_('Current Period End'))
    cancel_at_period_end = models.BooleanField(default=False,verbose_name=_('Cancel At Period End'))

    created_at = models.DateTimeField(auto_now_add=True,verbose_name=_('Created At'))
    updated_at = models.DateTimeField(auto_now=True,verbose_name=_('Updated At'))

    class Meta:
        verbose_name = _('Subscription')
        verbose_name_plural = _('Subscriptions')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.company.name} - {self.get_plan_type_display()} ({self.status})"

    def is_valid(self):
        return self.status in self.VALID_STATUSES

    def is_unlimited(self):
        return self.user_limit < 0

    def to_dict(self):
        return {
            'plan_type': self.plan_type,
            'status': self.status,
            'user_limit': self.user_limit,
            'subscribed': self.is_valid(),
            'subscription_end': self.current_period_end.isoformat() if self.current_period_end else None,
            'cancel_at_period_end': self.cancel_at_period_end,
        }
