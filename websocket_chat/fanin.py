"""
Realtime fan-in for an open message thread.

A thread subscribes to the channel-layer group of exactly one conversation.
Insert notifications arriving on that group are re-fetched from the store
and merged into the thread's local message list:

* a message authored by the local user is discarded, because the send path
  already appended the stored row it got back;
* any other message is appended unless a message with the same id is
  already held, and is then marked read since the thread is being viewed.

Appends go to the end of the list without re-sorting. Notifications are
at-least-once and not strictly ordered, so an older message arriving late
lands after newer ones.
"""

import asyncio
import logging
from enum import Enum

from channels.db import database_sync_to_async
from django.conf import settings

from conversations.store import MessageStore

logger = logging.getLogger(__name__)

MESSAGE_CREATED = "message.created"


class ThreadState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    SUBSCRIBED = "subscribed"


def group_name_for(conversation_id):
    return f"chat_{conversation_id}"


def merge_incoming(messages, incoming, local_user_id):
    """
    Merge one realtime message into a local list.

    Returns ``(messages, appended)``. The input list is never mutated.
    """
    if incoming is None:
        return messages, False
    if str(incoming.sender_id) == str(local_user_id):
        return messages, False
    if any(str(m.id) == str(incoming.id) for m in messages):
        return messages, False
    return list(messages) + [incoming], True


class ThreadChannel:
    """
    The realtime subscription owned by one open thread.

    CLOSED -> OPENING -> SUBSCRIBED -> CLOSED. Opening a different
    conversation closes the current subscription first, so events of two
    conversations never interleave in one thread.
    """

    def __init__(self, user_id, channel_layer, channel_name, max_retries=None, retry_delay=None):
        self.user_id = str(user_id)
        self.channel_layer = channel_layer
        self.channel_name = channel_name
        self.max_retries = max_retries if max_retries is not None else settings.CHAT_REALTIME_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.CHAT_REALTIME_RETRY_DELAY
        self.state = ThreadState.CLOSED
        self.conversation_id = None
        self.messages = []
        self.degraded = False

    @property
    def group_name(self):
        if self.conversation_id is None:
            return None
        return group_name_for(self.conversation_id)

    async def open(self, conversation_id, messages=()):
        """
        Subscribe to a conversation's inserts, seeded with its history.

        Joining the group is retried with a linear backoff. When every
        attempt fails the channel ends CLOSED with ``degraded`` set and the
        thread relies on reloading history when it is reopened.
        """
        if self.state != ThreadState.CLOSED:
            await self.close()

        conversation_id = str(conversation_id)
        self.state = ThreadState.OPENING
        self.conversation_id = conversation_id
        self.messages = list(messages)
        self.degraded = False
        group = self.group_name

        for attempt in range(1, self.max_retries + 1):
            try:
                await self.channel_layer.group_add(group, self.channel_name)
            except Exception as e:
                logger.warning(
                    "Realtime subscribe failed",
                    extra={"group": group, "attempt": attempt, "error": str(e)},
                )
                await asyncio.sleep(self.retry_delay * attempt)
                continue

            if self.state != ThreadState.OPENING or self.conversation_id != conversation_id:
                # Closed or switched while joining.
                await self.channel_layer.group_discard(group, self.channel_name)
                return False
            self.state = ThreadState.SUBSCRIBED
            return True

        logger.error("Realtime unavailable, falling back to refresh on reopen", extra={"group": group})
        self.degraded = True
        self.state = ThreadState.CLOSED
        return False

    async def close(self):
        if self.state == ThreadState.SUBSCRIBED:
            try:
                await self.channel_layer.group_discard(self.group_name, self.channel_name)
            except Exception as e:
                logger.warning("Realtime unsubscribe failed", extra={"group": self.group_name, "error": str(e)})
        self.state = ThreadState.CLOSED
        self.conversation_id = None
        self.messages = []

    def seed(self, history):
        """
        Put loaded history in front of anything received since subscribing.

        History is loaded after the group is joined, so an insert can show
        up both ways; it is kept once, in its history position.
        """
        history = list(history)
        held = {str(m.id) for m in history}
        self.messages = history + [m for m in self.messages if str(m.id) not in held]

    def append_local(self, message):
        """Optimistic append of a row the store just confirmed."""
        if any(str(m.id) == str(message.id) for m in self.messages):
            return False
        self.messages.append(message)
        return True

    async def receive(self, event):
        """
        Apply one insert notification. Returns the appended message or None.
        """
        if self.state != ThreadState.SUBSCRIBED:
            return None
        conversation_id = str(event.get("conversation_id"))
        if conversation_id != self.conversation_id:
            return None

        message = await self.fetch(event.get("message_id"))
        if message is None or self.conversation_id != conversation_id:
            return None

        self.messages, appended = merge_incoming(self.messages, message, self.user_id)
        if not appended:
            return None

        await self.mark_read(message.id)
        message.is_read = True
        return message

    @database_sync_to_async
    def fetch(self, message_id):
        return MessageStore.fetch(message_id)

    @database_sync_to_async
    def mark_read(self, message_id):
        return MessageStore.mark_read(message_id, self.user_id)
