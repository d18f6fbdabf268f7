from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from utils.uploads import ChatImageUploader

from .directory import ConversationDirectory
from .inbox import Inbox, UnreadBadge
from .serializers import (
    ChatMessageSerializer,
    ConversationCreateSerializer,
    ConversationSerializer,
    InboxItemSerializer,
    MessageCreateSerializer,
)
from .store import MessageStore


class ConversationListView(APIView):
    """List the caller's conversations, or get-or-create one"""

    def get(self, request):
        """Inbox: conversations with the other participant and a last message preview"""
        conversations = Inbox(request.user.user_id).load()
        serializer = InboxItemSerializer(conversations, many=True)

        return Response({
            'user_id': request.user.user_id,
            'results': serializer.data,
            'total_count': len(conversations),
        })

    def post(self, request):
        """Find the conversation for a user pair and listing context, creating it if absent"""
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        context = serializer.validated_data['context']
        other_user_id = serializer.validated_data.get('other_user_id')
        if not other_user_id:
            other_user_id = ConversationDirectory.resolve_counterpart(context)

        conversation, created = ConversationDirectory.get_or_create(
            request.user.user_id, other_user_id, context
        )

        return Response({
            'message': 'Conversation created successfully' if created else 'Conversation found',
            'conversation': ConversationSerializer(conversation).data,
            'is_new': created,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class ConversationMessagesView(APIView):
    """
    Message history of a conversation, and sending into it
    """

    def get(self, request, conversation_id):
        conversation = ConversationDirectory.get_for_participant(conversation_id, request.user.user_id)
        messages = MessageStore.history(conversation, request.user.user_id)

        return Response({
            'conversation_id': str(conversation.id),
            'messages': ChatMessageSerializer(messages, many=True).data,
            'total_messages': len(messages),
        })

    def post(self, request, conversation_id):
        conversation = ConversationDirectory.get_for_participant(conversation_id, request.user.user_id)

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageStore.send(
            conversation,
            request.user.user_id,
            serializer.validated_data['content'],
            serializer.validated_data['images'],
        )
        return Response(ChatMessageSerializer(message).data, status=status.HTTP_201_CREATED)


class ChatImageUploadView(APIView):
    """
    Upload up to four images for a message; each image succeeds or fails on its own
    """
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        files = request.FILES.getlist('images')
        if not files:
            return Response({'error': 'No images provided'}, status=status.HTTP_400_BAD_REQUEST)

        batch = ChatImageUploader(request.user.user_id).upload_many(files)

        if batch.complete:
            response_status = status.HTTP_201_CREATED
        elif batch.urls:
            response_status = status.HTTP_207_MULTI_STATUS
        else:
            response_status = status.HTTP_502_BAD_GATEWAY
        return Response(batch.as_dict(), status=response_status)


class UnreadCountView(APIView):
    """Unread messages authored by others, for the chat badge"""

    def get(self, request):
        badge = UnreadBadge(request.user.user_id)
        badge.refresh()
        return Response({
            'unread_count': badge.count,
            'label': badge.label,
        })
