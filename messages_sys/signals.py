from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from automations import integrations

from .models import Message


@receiver(post_save, sender=Message)
def trigger_message_received(sender, instance, created, **kwargs):
    """Emit MESSAGE_RECEIVED for messages written by participants."""
    if not created or instance.message_type == Message.MessageType.SYSTEM:
        return
    transaction.on_commit(lambda: integrations.on_message_received(instance))
