import logging

from django.db.models.signals import post_save
from django.dispatch import receiver
from django.contrib.auth import get_user_model
from .models import UserProfile

logger = logging.getLogger(__name__)

User = get_user_model()


# AUTO-CREATE USER PROFILE
@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    if created:
        profile, created_profile = UserProfile.objects.get_or_create(user=instance)
        if created_profile:
            logger.info(f"Profile created for user: {instance.email}")
