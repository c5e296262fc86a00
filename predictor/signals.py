from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Subscription


# Every user starts with an inactive subscription row
@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_subscription(sender, instance, created, **kwargs):
    if created:
        Subscription.objects.get_or_create(user=instance)
