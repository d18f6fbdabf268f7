import logging

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from django.conf import settings

from conversations.context import NO_LISTING
from conversations.directory import ConversationDirectory
from conversations.exceptions import ChatValidationError
from conversations.store import MessageStore, validate_content
from utils.uploads import ChatImageUploader

from .fanin import ThreadChannel

logger = logging.getLogger(__name__)


class MessageThread:
    """
    One open conversation as seen by one user.

    Keeps the compose state (draft text, staged images) and three busy
    flags that can overlap: ``loading``, ``sending`` and ``uploading``.
    Messages appear locally only after the store confirms them. Closing
    drops the realtime subscription but lets in-flight sends and uploads
    finish; their results are then discarded.
    """

    def __init__(self, user_id, channel: ThreadChannel, uploader=None):
        self.user_id = str(user_id)
        self.channel = channel
        self.uploader = uploader or ChatImageUploader(self.user_id)
        self.conversation = None
        self.loading = False
        self.sending = False
        self.uploading = False
        self.draft = ""
        self.staged_images = []
        self.upload_failures = []
        self._generation = 0

    @property
    def messages(self):
        return self.channel.messages

    @property
    def is_open(self):
        return self.conversation is not None

    @property
    def can_send(self):
        if not self.is_open or self.sending or self.uploading:
            return False
        return bool(self.draft.strip()) or bool(self.staged_images)

    async def open(self, other_user_id=None, context=None):
        """
        Resolve the conversation, subscribe and load its history.

        Without an explicit other user the listing owner is the counterpart.
        The group is joined before history is read so an insert committed in
        between arrives as an event; the channel keeps it once. Loading
        history marks the counterpart's messages read.
        """
        context = context or NO_LISTING
        if self.is_open:
            await self.close()
        generation = self._generation

        self.loading = True
        try:
            if not other_user_id:
                other_user_id = await database_sync_to_async(ConversationDirectory.resolve_counterpart)(context)
            conversation, created = await database_sync_to_async(ConversationDirectory.get_or_create)(
                self.user_id, other_user_id, context
            )
            if generation != self._generation:
                return None

            await self.channel.open(conversation.id)
            if generation != self._generation:
                return None
            try:
                history = await database_sync_to_async(MessageStore.history)(conversation, self.user_id)
            except Exception:
                await self.channel.close()
                raise
        finally:
            self.loading = False

        if generation != self._generation:
            return None

        self.channel.seed(history)
        self.conversation = conversation
        self.draft = ""
        self.staged_images = []
        self.upload_failures = []
        logger.debug(
            "Thread opened",
            extra={"conversation_id": str(conversation.id), "created": created, "realtime": not self.channel.degraded},
        )
        return conversation

    def stage(self, urls):
        """Stage already-uploaded image URLs for the next send."""
        urls = list(urls or [])
        max_images = settings.CHAT_MAX_IMAGES_PER_MESSAGE
        if len(self.staged_images) + len(urls) > max_images:
            raise ChatValidationError(f"A message can carry at most {max_images} images.")
        self.staged_images.extend(urls)

    def restage(self, urls):
        """Replace the staged images; a rejected list leaves them untouched."""
        urls = list(urls or [])
        max_images = settings.CHAT_MAX_IMAGES_PER_MESSAGE
        if len(urls) > max_images:
            raise ChatValidationError(f"A message can carry at most {max_images} images.")
        self.staged_images = urls

    async def attach(self, files):
        """
        Upload images for the next message.

        Failed images are kept in ``upload_failures``; the ones that
        succeeded are staged either way. The WebSocket protocol carries no
        files: socket clients upload through ``POST /conversations/images/``
        and pass the returned URLs with ``send_message``, which restages
        them. This is the path for callers driving a thread in-process.
        """
        files = list(files)
        max_images = settings.CHAT_MAX_IMAGES_PER_MESSAGE
        if len(self.staged_images) + len(files) > max_images:
            raise ChatValidationError(f"A message can carry at most {max_images} images.")
        generation = self._generation

        self.uploading = True
        try:
            batch = await sync_to_async(self.uploader.upload_many)(files)
        finally:
            self.uploading = False

        if generation != self._generation:
            return batch
        self.staged_images.extend(batch.urls)
        self.upload_failures = batch.failures
        return batch

    async def send(self, text=None):
        """
        Send the draft with the staged images.

        Validation runs before any store call. On failure the draft and
        staged images are kept and nothing is appended.
        """
        if text is not None:
            self.draft = text
        if not self.is_open:
            raise ChatValidationError("No conversation is open.")
        if self.uploading:
            raise ChatValidationError("Wait for image uploads to finish.")
        if self.sending:
            raise ChatValidationError("A message is already being sent.")
        validate_content(self.draft, self.staged_images)

        generation = self._generation
        conversation = self.conversation
        draft, images = self.draft, list(self.staged_images)

        self.sending = True
        try:
            message = await database_sync_to_async(MessageStore.send)(conversation, self.user_id, draft, images)
        finally:
            self.sending = False

        if generation != self._generation:
            return message
        self.channel.append_local(message)
        self.draft = ""
        self.staged_images = []
        self.upload_failures = []
        return message

    async def handle_event(self, event):
        return await self.channel.receive(event)

    async def close(self):
        self._generation += 1
        self.conversation = None
        self.draft = ""
        self.staged_images = []
        self.upload_failures = []
        await self.channel.close()
