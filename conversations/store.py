import logging

import bleach
from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q

from farah.exceptions import IdentityError
from users.models import Profile

from .exceptions import ChatValidationError, ConversationNotFound, SendFailed
from .models import ChatMessage, Conversation

logger = logging.getLogger(__name__)


def sanitize_message(content):
    """Strip every HTML tag from message text."""
    return bleach.clean(content, tags=[], attributes={}, strip=True)


def validate_content(text, images):
    """
    Reject a message that would carry nothing.

    Runs before any store call. Returns the trimmed text.
    """
    text = (text or '').strip()
    images = images or []
    if not text and not images:
        raise ChatValidationError("Message must have content or at least one image.")
    max_images = settings.CHAT_MAX_IMAGES_PER_MESSAGE
    if len(images) > max_images:
        raise ChatValidationError(f"A message can carry at most {max_images} images.")
    if any(not isinstance(url, str) or not url for url in images):
        raise ChatValidationError("Images must be uploaded image URLs.")
    return text


def attach_sender_profiles(messages):
    """Join sender display data onto each message as ``sender_profile``."""
    profiles = Profile.objects.display_for({m.sender_id for m in messages})
    for message in messages:
        message.sender_profile = profiles[message.sender_id]
    return messages


class MessageStore:
    """
    Append, list and read-flag operations on chat messages.
    """

    @staticmethod
    def history(conversation, viewer_id):
        """
        All messages of the conversation, oldest first.

        Fetching marks the returned counterpart messages read in one batch
        update. The viewer's own messages are never flipped.
        """
        if not viewer_id:
            raise IdentityError()
        if not conversation.has_participant(viewer_id):
            raise ConversationNotFound()

        messages = MessageStore.ordered(conversation)

        # Only the rows being returned are flagged; anything committed after
        # the read stays unread until it is seen.
        unread_ids = [m.id for m in messages if not m.is_read and m.sender_id != viewer_id]
        if unread_ids:
            marked = ChatMessage.objects.filter(id__in=unread_ids, is_read=False).update(is_read=True)
            for message in messages:
                if message.id in unread_ids:
                    message.is_read = True
            logger.debug(
                "Marked messages read",
                extra={'conversation_id': str(conversation.id), 'count': marked},
            )

        return attach_sender_profiles(messages)

    @staticmethod
    def ordered(conversation):
        return list(conversation.messages.order_by('created_at', 'id'))

    @staticmethod
    def send(conversation, sender_id, text, images=None):
        """
        Persist a message and return the stored row.

        Content is validated first; an invalid message never reaches the
        database. The returned row carries the server id and timestamp and is
        what callers append to their local list.
        """
        if not sender_id:
            raise IdentityError()
        images = list(images or [])
        validate_content(text, images)
        if not conversation.has_participant(sender_id):
            raise ConversationNotFound()

        content = sanitize_message((text or '').strip())
        validate_content(content, images)

        try:
            with transaction.atomic():
                message = ChatMessage.objects.create(
                    conversation=conversation,
                    sender_id=sender_id,
                    content=content,
                    images=images,
                    is_read=False,
                )
                Conversation.objects.filter(pk=conversation.pk).update(updated_at=message.created_at)
        except DatabaseError as e:
            logger.error(
                "Failed to save message",
                extra={'conversation_id': str(conversation.id), 'error': str(e)},
            )
            raise SendFailed()

        conversation.updated_at = message.created_at
        return attach_sender_profiles([message])[0]

    @staticmethod
    def fetch(message_id):
        """Re-fetch a full message row with its sender profile, or None."""
        message = ChatMessage.objects.select_related('conversation').filter(id=message_id).first()
        if message is None:
            return None
        return attach_sender_profiles([message])[0]

    @staticmethod
    def mark_read(message_id, reader_id):
        """Flip the read flag of one message the reader did not author."""
        return ChatMessage.objects.filter(
            Q(conversation__participant_1=reader_id) | Q(conversation__participant_2=reader_id),
            id=message_id,
            is_read=False,
        ).exclude(sender_id=reader_id).update(is_read=True)

    @staticmethod
    def last_message(conversation):
        return conversation.messages.order_by('-created_at', '-id').first()

    @staticmethod
    def unread_count(user_id):
        """Unread messages authored by others across all of the user's conversations."""
        if not user_id:
            raise IdentityError()
        return ChatMessage.objects.filter(
            Q(conversation__participant_1=user_id) | Q(conversation__participant_2=user_id),
            is_read=False,
        ).exclude(sender_id=user_id).count()

    @staticmethod
    def unread_count_for(conversation, user_id):
        return conversation.messages.filter(is_read=False).exclude(sender_id=user_id).count()
