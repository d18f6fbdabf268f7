import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from conversations.models import ChatMessage

from .fanin import MESSAGE_CREATED, group_name_for

logger = logging.getLogger(__name__)


def notify_message_created(message):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(
        group_name_for(message.conversation_id),
        {
            "type": MESSAGE_CREATED,
            "message_id": str(message.id),
            "conversation_id": str(message.conversation_id),
            "sender_id": message.sender_id,
        },
    )


@receiver(post_save, sender=ChatMessage)
def broadcast_message_insert(sender, instance: ChatMessage, created: bool, **kwargs):
    """
    Publish an insert notification for a new chat message.

    Sent once the surrounding transaction commits, so subscribers that
    re-fetch the row always find it. A publish failure is logged; the
    message itself is already stored.
    """
    if not created:
        return

    def publish():
        try:
            notify_message_created(instance)
        except Exception as e:
            logger.error(
                "Failed to publish message insert",
                extra={"message_id": str(instance.id), "error": str(e)},
            )

    transaction.on_commit(publish)
