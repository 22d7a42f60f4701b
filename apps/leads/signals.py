from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver
from .models import Lead, Activity


@receiver(post_save, sender=Lead)
def create_lead_activity(sender, instance, created, **kwargs):
    if created:
        Activity.objects.create(
            lead=instance,
            user=instance.created_by,
            activity_type=Activity.TYPE_CREATED,
            description=f'Lead created (source: {instance.source or "Manual"})'
        )


@receiver(pre_save, sender=Lead)
def track_lead_changes(sender, instance, **kwargs):
    """
    Store the previous pipeline state on the instance

    post_save receivers (gamification) compare it with the new values.
    """
    instance._old_status = None
    instance._old_qualified = None

    if instance.pk:
        old_values = Lead.objects.filter(pk=instance.pk).values('status', 'qualified').first()
        if old_values:
            instance._old_status = old_values['status']
            instance._old_qualified = old_values['qualified']
