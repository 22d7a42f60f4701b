import re
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Sum
from django.utils import timezone
from apps.core.models import Company
from taggit.managers import TaggableManager


class Lead(models.Model):

    # Pipeline columns, in kanban order
    STATUS_NEW = 'new'
    STATUS_CONTACTED = 'contacted'
    STATUS_PROPOSAL = 'proposal'
    STATUS_NEGOTIATION = 'negotiation'
    STATUS_WON = 'won'
    STATUS_LOST = 'lost'
    STATUS_CHOICES = [
        (STATUS_NEW, 'New'),
        (STATUS_CONTACTED, 'Contacted'),
        (STATUS_PROPOSAL, 'Proposal'),
        (STATUS_NEGOTIATION, 'Negotiation'),
        (STATUS_WON, 'Won'),
        (STATUS_LOST, 'Lost'),
    ]
    CLOSED_STATUSES = (STATUS_WON, STATUS_LOST)

    # Basic Information
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='leads', help_text='Which company owns this lead')
    name = models.CharField(max_length=200, help_text="Lead's full name")
    company_name = models.CharField(max_length=200, blank=True, help_text="Lead's own company (B2B prospects)")
    phone = models.CharField(max_length=20, blank=True, db_index=True, help_text='Phone number, digits only')
    email = models.EmailField(blank=True, null=True, help_text='Email address (optional)')
    source = models.CharField(max_length=100, blank=True, default='Manual', help_text='Where did this lead come from? (e.g. Instagram, API/Google Sheets)')

    # Pipeline
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW, db_index=True, help_text='Current pipeline column')
    qualified = models.BooleanField(default=False, help_text='Seller confirmed budget/need/authority')
    estimated_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, help_text='Expected deal value')
    loss_reason = models.TextField(blank=True, help_text='Why the deal was lost (required when status is lost)')

    # Assignment & Management
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_leads', db_index=True, help_text='Seller responsible for this lead')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_leads', help_text='Who registered this lead')

    tags = TaggableManager(blank=True)

    # Timestamps
    created_at = models.DateTimeField(default=timezone.now, db_index=True, help_text='When was this lead created')
    updated_at = models.DateTimeField(auto_now=True, db_index=True, help_text='When was this lead last updated')

    class Meta:
        verbose_name = 'Lead'
        verbose_name_plural = 'Leads'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'status']),
            models.Index(fields=['company', 'assigned_to']),
            models.Index(fields=['company', 'email']),
        ]

    def __str__(self):
        return f"{self.name} - {self.get_status_display()}"

    @staticmethod
    def normalize_phone(value):
        """Keep digits only: '+55 (11) 99999-0000' → '5511999990000'"""
        return re.sub(r'\D', '', value or '')

    def save(self, *args, **kwargs):
        self.phone = self.normalize_phone(self.phone)
        super().save(*args, **kwargs)

    def get_initials(self):
        """Returns first letters for avatar: 'Ana Souza' → 'AS'"""
        parts = self.name.split()
        if len(parts) >= 2:
            return f"{parts[0][0]}{parts[1][0]}".upper()
        elif len(parts) == 1:
            return parts[0][0].upper()
        return "?"

    def is_closed(self):
        return self.status in self.CLOSED_STATUSES

    def can_be_assigned(self):
        """Won and lost leads keep their seller"""
        return not self.is_closed()

    def assign_to(self, user, assigned_by=None):
        """
        Assign lead to a seller of the same company
        Returns False when the lead is closed or the user is not eligible
        """
        if not self.can_be_assigned():
            return False
        if user is not None and (user.company_id != self.company_id or not user.is_active):
            return False

        self.assigned_to = user
        self._changed_by = assigned_by
        self.save()

        Activity.objects.create(
            lead=self,
            user=assigned_by,
            activity_type=Activity.TYPE_ASSIGNED,
            description=f'Assigned to {user.get_full_name()}' if user else 'Assignment removed'
        )
        return True

    def change_status(self, new_status, user=None, loss_reason=None):
        """
        Move the lead to another pipeline column

        Raises:
            ValueError: unknown status, or lost without a reason
        """
        if new_status not in dict(self.STATUS_CHOICES):
            raise ValueError(f'Invalid status: {new_status}')

        old_status = self.status
        if old_status == new_status:
            return False

        if new_status == self.STATUS_LOST:
            reason = (loss_reason or '').strip()
            if not reason:
                raise ValueError('A loss reason is required to mark a lead as lost')
            self.loss_reason = reason

        self.status = new_status
        self._changed_by = user
        self.save()

        status_display = dict(self.STATUS_CHOICES).get(new_status, new_status)
        old_status_display = dict(self.STATUS_CHOICES).get(old_status, old_status)
        Activity.objects.create(
            lead=self,
            user=user,
            activity_type=Activity.TYPE_STATUS_CHANGED,
            description=f'Status changed from "{old_status_display}" to "{status_display}"'
        )
        return True

    def mark_qualified(self, user=None):
        if self.qualified:
            return False
        self.qualified = True
        self._changed_by = user
        self.save()

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type=Activity.TYPE_QUALIFIED,
            description='Lead qualified'
        )
        return True

    def add_observation(self, content, user, note_type=None):

        observation = LeadObservation.objects.create(
            lead=self,
            user=user,
            note_type=note_type or LeadObservation.TYPE_NOTE,
            content=content
        )

        Activity.objects.create(
            lead=self,
            user=user,
            activity_type=Activity.TYPE_NOTE_ADDED,
            description=f'Added a {observation.get_note_type_display().lower()}'
        )

        return observation

    def add_value(self, name, amount, user=None, value_type=None, notes=''):
        return LeadValue.objects.create(
            lead=self,
            name=name,
            amount=amount,
            value_type=value_type or LeadValue.TYPE_ONE_TIME,
            notes=notes,
            created_by=user
        )

    def total_value(self):
        """Sum of registered values, falling back to the estimate"""
        total = self.lead_values.aggregate(total=Sum('amount'))['total']
        if total is not None:
            return total
        return self.estimated_value or Decimal('0')

    def days_idle(self):
        return (timezone.now() - self.updated_at).days

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'initials': self.get_initials(),
            'company_name': self.company_name,
            'email': self.email,
            'phone': self.phone,
            'source': self.source,
            'status': self.status,
            'qualified': self.qualified,
            'estimated_value': str(self.estimated_value) if self.estimated_value is not None else None,
            'loss_reason': self.loss_reason,
            'assigned_to': {
                'id': self.assigned_to.id,
                'name': self.assigned_to.get_full_name()
            } if self.assigned_to else None,
            'tags': list(self.tags.names()),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class LeadObservation(models.Model):

    TYPE_NOTE = 'note'
    TYPE_CALL = 'call'
    TYPE_EMAIL = 'email'
    TYPE_MEETING = 'meeting'
    TYPE_WHATSAPP = 'whatsapp'
    TYPE_CHOICES = [
        (TYPE_NOTE, 'Note'),
        (TYPE_CALL, 'Call'),
        (TYPE_EMAIL, 'Email'),
        (TYPE_MEETING, 'Meeting'),
        (TYPE_WHATSAPP, 'WhatsApp'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='observations', help_text='Which lead this observation belongs to')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='lead_observations', help_text='Who wrote this observation')
    note_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_NOTE)
    content = models.TextField(help_text='Observation text')
    created_at = models.DateTimeField(default=timezone.now, help_text='When was this observation created')

    class Meta:
        verbose_name = 'Observation'
        verbose_name_plural = 'Observations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
        ]

    def __str__(self):
        preview = self.content[:50] + '...' if len(self.content) > 50 else self.content
        return f"{self.get_note_type_display()} by {self.user.get_full_name() if self.user else 'Unknown'}: {preview}"

    def to_dict(self):
        return {
            'id': self.id,
            'note_type': self.note_type,
            'content': self.content,
            'user': self.user.get_full_name() if self.user else None,
            'created_at': self.created_at.isoformat(),
        }


class LeadValue(models.Model):
    """A product/service line negotiated with the lead"""

    TYPE_ONE_TIME = 'one_time'
    TYPE_RECURRING = 'recurring'
    TYPE_CHOICES = [
        (TYPE_ONE_TIME, 'One-time'),
        (TYPE_RECURRING, 'Recurring'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='lead_values')
    name = models.CharField(max_length=200, help_text='Product or service, e.g. "Setup fee"')
    value_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_ONE_TIME)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='registered_lead_values')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = 'Lead Value'
        verbose_name_plural = 'Lead Values'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.name}: {self.amount} ({self.get_value_type_display()})"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'value_type': self.value_type,
            'amount': str(self.amount),
            'notes': self.notes,
            'created_at': self.created_at.isoformat(),
        }


class Activity(models.Model):

    TYPE_CREATED = 'created'
    TYPE_ASSIGNED = 'assigned'
    TYPE_STATUS_CHANGED = 'status_changed'
    TYPE_QUALIFIED = 'qualified'
    TYPE_NOTE_ADDED = 'note_added'
    TYPE_WHATSAPP = 'whatsapp'
    ACTIVITY_TYPE_CHOICES = [
        (TYPE_CREATED, 'Created'),
        (TYPE_ASSIGNED, 'Assigned'),
        (TYPE_STATUS_CHANGED, 'Status Changed'),
        (TYPE_QUALIFIED, 'Qualified'),
        (TYPE_NOTE_ADDED, 'Note Added'),
        (TYPE_WHATSAPP, 'WhatsApp'),
    ]

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='activities', help_text='Which lead this activity is for')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='activities', help_text='Who performed this action')
    activity_type = models.CharField(max_length=30, choices=ACTIVITY_TYPE_CHOICES, help_text='Type of activity/action')
    description = models.TextField(help_text='Human-readable description of what happened')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True, help_text='When did this activity occur')

    class Meta:
        verbose_name = 'Activity'
        verbose_name_plural = 'Activities'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['lead', '-created_at']),
            models.Index(fields=['user', '-created_at']),
        ]

    def __str__(self):
        user_name = self.user.get_full_name() if self.user else 'System'
        return f"{user_name}: {self.description}"

    def to_dict(self):
        return {
            'id': self.id,
            'activity_type': self.activity_type,
            'description': self.description,
            'user': self.user.get_full_name() if self.user else None,
            'created_at': self.created_at.isoformat(),
        }
