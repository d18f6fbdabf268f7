import asyncio
import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from rest_framework.exceptions import APIException
from rest_framework.utils.encoders import JSONEncoder

from conversations.context import ConversationContext
from conversations.exceptions import SendFailed
from conversations.inbox import Inbox, UnreadBadge
from conversations.serializers import ChatMessageSerializer, ConversationSerializer, InboxItemSerializer

from .fanin import ThreadChannel
from .thread import MessageThread

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for one signed-in user's chat session.

    Holds at most one open message thread, whose realtime subscription it
    owns, plus the inbox and the unread badge. Failures are reported as
    ``error`` frames; the socket stays open.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = None
        self.thread = None
        self.inbox = None
        self.badge = None
        self.heartbeat_task = None
        self.unread_task = None

    async def connect(self):
        """Accept authenticated connections and start the background loops"""
        self.user_id = self.scope.get('user_id')
        if not self.user_id:
            await self.close(code=4001)
            return

        await self.accept()

        channel = ThreadChannel(self.user_id, self.channel_layer, self.channel_name)
        self.thread = MessageThread(self.user_id, channel)
        self.inbox = Inbox(self.user_id)
        self.badge = UnreadBadge(self.user_id)

        self.heartbeat_task = asyncio.create_task(self.heartbeat_loop())
        self.unread_task = asyncio.create_task(self.unread_loop())

    async def disconnect(self, code):
        """Stop the loops and drop the thread's realtime subscription"""
        tasks = [task for task in (self.heartbeat_task, self.unread_task) if task]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self.thread:
            await self.thread.close()

    async def receive(self, text_data=None, bytes_data=None):
        """Handle incoming WebSocket messages"""
        if text_data is None:
            await self.send_error("Binary frames are not supported")
            return

        try:
            if len(text_data) > settings.WEBSOCKET_MAX_MESSAGE_SIZE:
                await self.send_error("Message too large")
                return

            data = json.loads(text_data)
            message_type = data.get('type')

            if message_type == 'open_thread':
                await self.handle_open_thread(data)
            elif message_type == 'close_thread':
                await self.handle_close_thread()
            elif message_type == 'send_message':
                await self.handle_send_message(data)
            elif message_type == 'open_inbox':
                await self.handle_open_inbox()
            elif message_type == 'close_inbox':
                self.inbox.set_open(False)
            elif message_type == 'refresh_unread':
                await self.send_unread_count()
            elif message_type == 'heartbeat':
                await self.handle_heartbeat()
            else:
                await self.send_error("Unknown message type")

        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
        except SendFailed as e:
            await self.send_json({
                'type': 'error',
                'code': e.default_code,
                'message': str(e.detail),
                'draft': self.thread.draft,
            })
        except APIException as e:
            await self.send_error(str(e.detail), code=e.default_code)
        except Exception:
            logger.exception("Chat consumer failed", extra={'user_id': self.user_id})
            await self.send_error("Internal server error")

    async def handle_open_thread(self, data):
        """Open the thread for a user and/or listing, closing any thread already open"""
        context = ConversationContext.from_data(data)
        conversation = await self.thread.open(data.get('other_user_id'), context)
        if conversation is None:
            return

        await self.send_json({
            'type': 'thread_opened',
            'conversation': ConversationSerializer(conversation).data,
            'messages': ChatMessageSerializer(self.thread.messages, many=True).data,
            'realtime': not self.thread.channel.degraded,
        })
        if self.thread.channel.degraded:
            await self.send_json({
                'type': 'realtime_unavailable',
                'conversation_id': str(conversation.id),
            })

    async def handle_close_thread(self):
        await self.thread.close()
        await self.send_json({'type': 'thread_closed'})

    async def handle_send_message(self, data):
        """Send into the open thread; images are URLs returned by the upload endpoint"""
        if 'images' in data:
            self.thread.restage(data.get('images'))

        message = await self.thread.send(data.get('content', ''))

        await self.send_json({
            'type': 'message_sent',
            'client_id': data.get('client_id'),
            'message': ChatMessageSerializer(message).data,
        })

    async def handle_open_inbox(self):
        loaded = await database_sync_to_async(self.inbox.set_open)(True)
        if not loaded:
            return
        await self.send_json({
            'type': 'conversations',
            'results': InboxItemSerializer(self.inbox.items, many=True).data,
        })

    async def handle_heartbeat(self):
        await self.send_json({
            'type': 'heartbeat_response',
            'timestamp': asyncio.get_event_loop().time()
        })

    async def message_created(self, event):
        """Insert notification from the open conversation's group"""
        message = await self.thread.handle_event(event)
        if message is None:
            return
        await self.send_json({
            'type': 'message',
            'message': ChatMessageSerializer(message).data,
        })

    async def send_unread_count(self):
        count = await database_sync_to_async(self.badge.refresh)()
        await self.send_json({
            'type': 'unread_count',
            'count': count,
            'label': self.badge.label,
        })

    async def unread_loop(self):
        """Refresh the unread badge on connect and then on a fixed interval"""
        while True:
            try:
                await self.send_unread_count()
                await asyncio.sleep(settings.CHAT_UNREAD_REFRESH_INTERVAL)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning("Unread refresh failed", extra={'user_id': self.user_id, 'error': str(e)})
                await asyncio.sleep(settings.CHAT_UNREAD_REFRESH_INTERVAL)

    async def heartbeat_loop(self):
        """Send periodic heartbeat to keep connection alive"""
        while True:
            try:
                await asyncio.sleep(settings.WEBSOCKET_HEARTBEAT_INTERVAL)
                await self.send_json({
                    'type': 'heartbeat',
                    'timestamp': asyncio.get_event_loop().time()
                })
            except asyncio.CancelledError:
                break
            except Exception:
                break

    async def send_json(self, payload):
        await self.send(text_data=json.dumps(payload, cls=JSONEncoder))

    async def send_error(self, message, code=None):
        """Send error message to client"""
        payload = {'type': 'error', 'message': message}
        if code:
            payload['code'] = code
        await self.send_json(payload)
