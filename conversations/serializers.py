from django.conf import settings
from rest_framework import serializers

from .context import ConversationContext
from .exceptions import ChatValidationError
from .models import ChatMessage, Conversation


class ChatMessageSerializer(serializers.ModelSerializer):
    conversation_id = serializers.UUIDField(read_only=True)
    sender_profile = serializers.SerializerMethodField()

    class Meta:
        model = ChatMessage
        fields = ['id', 'conversation_id', 'sender_id', 'content', 'images', 'is_read', 'created_at', 'sender_profile']
        read_only_fields = fields

    def get_sender_profile(self, obj):
        return getattr(obj, 'sender_profile', None)


class ConversationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Conversation
        fields = ['id', 'participant_1', 'participant_2', 'provider_id', 'hall_id', 'dress_id',
                  'created_at', 'updated_at']
        read_only_fields = fields


class InboxItemSerializer(ConversationSerializer):
    """A conversation row of the inbox, with the other side and a preview."""
    other_participant_id = serializers.CharField(read_only=True)
    other_participant = serializers.DictField(read_only=True)
    last_message = serializers.SerializerMethodField()
    has_messages = serializers.BooleanField(read_only=True)
    unread_count = serializers.IntegerField(read_only=True)

    class Meta(ConversationSerializer.Meta):
        fields = ConversationSerializer.Meta.fields + [
            'other_participant_id', 'other_participant', 'last_message', 'has_messages', 'unread_count',
        ]
        read_only_fields = fields

    def get_last_message(self, obj):
        preview = getattr(obj, 'last_message', None)
        if preview is None:
            return None
        return {
            'sender_id': preview['sender_id'],
            'content': preview['content'],
            'created_at': serializers.DateTimeField().to_representation(preview['created_at']),
            'is_read': preview['is_read'],
        }


class ConversationCreateSerializer(serializers.Serializer):
    other_user_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    provider_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    hall_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    dress_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        context = ConversationContext.from_data(attrs)
        if not attrs.get('other_user_id') and context.kind is None:
            raise ChatValidationError("Either other_user_id or a listing id is required.")
        attrs['context'] = context
        return attrs


class WhitespaceAllowedCharField(serializers.CharField):
    """CharField that keeps blank content; emptiness is judged with the images."""

    def __init__(self, **kwargs):
        kwargs.setdefault('allow_blank', True)
        kwargs.setdefault('trim_whitespace', False)
        super().__init__(**kwargs)


class MessageCreateSerializer(serializers.Serializer):
    content = WhitespaceAllowedCharField(required=False, default='')
    images = serializers.ListField(
        child=serializers.CharField(max_length=1000),
        required=False,
        default=list,
    )

    def validate_images(self, value):
        if len(value) > settings.CHAT_MAX_IMAGES_PER_MESSAGE:
            raise serializers.ValidationError(
                f"A message can carry at most {settings.CHAT_MAX_IMAGES_PER_MESSAGE} images."
            )
        return value
