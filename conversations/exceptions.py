from rest_framework import status
from rest_framework.exceptions import APIException


class ChatValidationError(APIException):
    """Rejected before any store call."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid chat request.'
    default_code = 'chat_invalid'


class ConversationNotFound(APIException):
    """Unknown conversation, or the caller is not one of its participants."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Conversation not found'
    default_code = 'conversation_not_found'


class SendFailed(APIException):
    """Persisting a message failed; nothing was appended locally."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Failed to send message'
    default_code = 'send_failed'


class UploadFailed(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Failed to upload image'
    default_code = 'upload_failed'
