# deals/signals.py
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Profile
from .services.notifications import send_welcome_email

User = get_user_model()
logger = logging.getLogger(__name__)


def _send_welcome(user_id, email):
    ok, err = send_welcome_email(to=email)
    if not ok:
        logger.info("welcome email not sent to user=%s: %s", user_id, err)


# 1) New user -> create Profile (+ welcome mail once the user row is committed)
@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    if not created:
        return

    role = Profile.ROLE_ADMIN if instance.is_staff else Profile.ROLE_CONSUMER
    Profile.objects.get_or_create(user=instance, defaults={"role": role})

    if instance.email:
        user_id, email = instance.pk, instance.email
        transaction.on_commit(lambda: _send_welcome(user_id, email))
