from .directory import ConversationDirectory
from .store import MessageStore

PREVIEW_LENGTH = 100
IMAGE_PREVIEW = "[image]"


def preview_text(message):
    content = message.content or ""
    if not content and message.images:
        return IMAGE_PREVIEW
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


def badge_label(count):
    """Unread badge text: empty at zero, capped at "9+"."""
    if count <= 0:
        return ""
    if count > 9:
        return "9+"
    return str(count)


class Inbox:
    """
    The user's conversation list with a latest-message preview per row.

    No live subscription: it reloads when opened and on every transition
    from closed to open.
    """

    def __init__(self, user_id):
        self.user_id = user_id
        self.is_open = False
        self.items = []

    def load(self):
        conversations = ConversationDirectory.list(self.user_id)
        for conversation in conversations:
            last_message = MessageStore.last_message(conversation)
            conversation.has_messages = last_message is not None
            conversation.last_message = None
            if last_message is not None:
                conversation.last_message = {
                    "sender_id": last_message.sender_id,
                    "content": preview_text(last_message),
                    "created_at": last_message.created_at,
                    "is_read": last_message.is_read,
                }
            conversation.unread_count = MessageStore.unread_count_for(conversation, self.user_id)
        self.items = conversations
        return conversations

    def set_open(self, is_open):
        """Returns True when the transition triggered a reload."""
        was_open = self.is_open
        self.is_open = is_open
        if is_open and not was_open:
            self.load()
            return True
        return False


class UnreadBadge:
    """Unread aggregate for the badge, pulled on mount and then on an interval."""

    def __init__(self, user_id):
        self.user_id = user_id
        self.count = 0

    def refresh(self):
        self.count = MessageStore.unread_count(self.user_id)
        return self.count

    @property
    def label(self):
        return badge_label(self.count)
