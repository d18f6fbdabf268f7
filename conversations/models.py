import uuid

from django.db import models

from .context import NO_CONTEXT, ConversationContext


def make_pair_key(user_a, user_b):
    """Order-independent key for a participant pair."""
    low, high = sorted([str(user_a), str(user_b)])
    return f"{low}:{high}"


class Conversation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    participant_1 = models.CharField(max_length=100, db_index=True)
    participant_2 = models.CharField(max_length=100, db_index=True)
    pair_key = models.CharField(max_length=201, editable=False)

    # At most one listing context; plain ids so listing deletion never cascades here.
    provider_id = models.CharField(max_length=100, null=True, blank=True)
    hall_id = models.CharField(max_length=100, null=True, blank=True)
    dress_id = models.CharField(max_length=100, null=True, blank=True)
    context_key = models.CharField(max_length=120, default=NO_CONTEXT, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'conversations'
        ordering = ['-updated_at']
        constraints = [
            models.UniqueConstraint(
                fields=['pair_key', 'context_key'],
                name='unique_conversation_per_pair_and_context',
            ),
        ]

    def save(self, *args, **kwargs):
        self.pair_key = make_pair_key(self.participant_1, self.participant_2)
        self.context_key = self.context.key
        super().save(*args, **kwargs)

    @property
    def participants(self):
        return [self.participant_1, self.participant_2]

    @property
    def context(self):
        return ConversationContext(
            provider_id=self.provider_id,
            hall_id=self.hall_id,
            dress_id=self.dress_id,
        )

    def has_participant(self, user_id):
        return user_id in (self.participant_1, self.participant_2)

    def other_participant(self, user_id):
        return self.participant_2 if self.participant_1 == user_id else self.participant_1

    def __str__(self):
        return f"Conversation {self.id}"


class ChatMessage(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='messages')
    sender_id = models.CharField(max_length=100)
    content = models.TextField(blank=True, default='')
    images = models.JSONField(default=list, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'chat_messages'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['conversation', 'created_at'], name='chat_msg_conv_created_idx'),
            models.Index(fields=['sender_id', 'is_read'], name='chat_msg_sender_read_idx'),
        ]

    def __str__(self):
        return f"{self.sender_id}: {self.content[:50]}..."
