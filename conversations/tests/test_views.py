import os
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from conversations.context import ConversationContext
from conversations.directory import ConversationDirectory
from conversations.models import ChatMessage, Conversation
from conversations.store import MessageStore
from farah.jwt_utils import generate_test_token
from listings.models import ServiceProvider

TEST_MEDIA_DIR = tempfile.mkdtemp(prefix="test_media_chat_")


class ChatAPITestCase(APITestCase):
    def setUp(self):
        self.user_id = "bride-1"
        self.vendor_id = "vendor-1"
        self.authenticate(self.user_id)

    def authenticate(self, user_id):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {generate_test_token(user_id)}")


class ConversationListViewTest(ChatAPITestCase):
    def test_requires_identity(self):
        """Test that requests without a token are rejected with 401"""
        self.client.credentials()
        response = self.client.get(reverse('conversations:conversation-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_invalid_token_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
        response = self.client.get(reverse('conversations:conversation-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_conversations(self):
        """Test listing conversations with previews"""
        conversation, _ = ConversationDirectory.get_or_create(self.user_id, self.vendor_id)
        MessageStore.send(conversation, self.vendor_id, "Hello from the vendor")
        ConversationDirectory.get_or_create("someone", "else")

        response = self.client.get(reverse('conversations:conversation-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_count'], 1)
        item = response.data['results'][0]
        self.assertEqual(item['id'], str(conversation.id))
        self.assertEqual(item['other_participant_id'], self.vendor_id)
        self.assertEqual(item['last_message']['content'], "Hello from the vendor")
        self.assertEqual(item['unread_count'], 1)

    def test_create_conversation(self):
        """Test get-or-create returns 201 then 200 for the same pair and context"""
        url = reverse('conversations:conversation-list')
        data = {'other_user_id': self.vendor_id, 'provider_id': 'p1'}

        first = self.client.post(url, data, format='json')
        second = self.client.post(url, data, format='json')

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertTrue(first.data['is_new'])
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertFalse(second.data['is_new'])
        self.assertEqual(first.data['conversation']['id'], second.data['conversation']['id'])

    def test_create_conversation_from_listing(self):
        """Test that the listing owner becomes the other participant"""
        provider = ServiceProvider.objects.create(owner_id=self.vendor_id, name="Noor Studio")

        response = self.client.post(
            reverse('conversations:conversation-list'),
            {'provider_id': str(provider.id)},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        conversation = Conversation.objects.get(id=response.data['conversation']['id'])
        self.assertEqual(conversation.other_participant(self.user_id), self.vendor_id)
        self.assertEqual(conversation.provider_id, str(provider.id))

    def test_create_requires_counterpart(self):
        response = self.client.post(reverse('conversations:conversation-list'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_create_rejects_two_contexts(self):
        response = self.client.post(
            reverse('conversations:conversation-list'),
            {'other_user_id': self.vendor_id, 'provider_id': 'p1', 'hall_id': 'h1'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_with_self_rejected(self):
        response = self.client.post(
            reverse('conversations:conversation-list'),
            {'other_user_id': self.user_id},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ConversationMessagesViewTest(ChatAPITestCase):
    def setUp(self):
        super().setUp()
        self.conversation, _ = ConversationDirectory.get_or_create(
            self.user_id, self.vendor_id, ConversationContext(hall_id="h1")
        )
        self.url = reverse('conversations:conversation-messages', kwargs={'conversation_id': self.conversation.id})

    def test_send_message(self):
        """Test sending returns the stored message"""
        response = self.client.post(self.url, {'content': 'Is the hall free on June 12?'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], 'Is the hall free on June 12?')
        self.assertEqual(response.data['sender_id'], self.user_id)
        self.assertFalse(response.data['is_read'])

    def test_send_empty_message_rejected(self):
        """Test that an empty message without images is a 400 and stores nothing"""
        response = self.client.post(self.url, {'content': '', 'images': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ChatMessage.objects.count(), 0)

    def test_send_too_many_images_rejected(self):
        images = [f"https://cdn.example.com/{i}.png" for i in range(5)]
        response = self.client.post(self.url, {'content': 'look', 'images': images}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history_marks_counterpart_messages_read(self):
        """Test that the recipient fetching history reads the sender's messages"""
        message = MessageStore.send(self.conversation, self.user_id, "hello")

        self.authenticate(self.vendor_id)
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_messages'], 1)
        self.assertEqual(response.data['messages'][0]['id'], str(message.id))
        message.refresh_from_db()
        self.assertTrue(message.is_read)

    def test_sender_history_keeps_own_message_unread(self):
        message = MessageStore.send(self.conversation, self.user_id, "hello")

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        message.refresh_from_db()
        self.assertFalse(message.is_read)

    def test_outsider_gets_404(self):
        self.authenticate("stranger")
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class UnreadCountViewTest(ChatAPITestCase):
    def test_unread_count(self):
        conversation, _ = ConversationDirectory.get_or_create(self.user_id, self.vendor_id)
        for i in range(11):
            MessageStore.send(conversation, self.vendor_id, f"message {i}")

        response = self.client.get(reverse('conversations:unread-count'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unread_count'], 11)
        self.assertEqual(response.data['label'], "9+")


@override_settings(MEDIA_ROOT=TEST_MEDIA_DIR)
class ChatImageUploadViewTest(ChatAPITestCase):
    def setUp(self):
        super().setUp()
        os.makedirs(TEST_MEDIA_DIR, exist_ok=True)

    def tearDown(self):
        if os.path.exists(TEST_MEDIA_DIR):
            shutil.rmtree(TEST_MEDIA_DIR)

    def _get_image(self, name="test_image.png"):
        # A 1x1 transparent PNG
        return SimpleUploadedFile(
            name,
            b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4\x00\x00\x00\x00IEND\xaeB`\x82",
            "image/png",
        )

    def test_upload_images(self):
        """Test that uploaded images land under the uploader's namespace"""
        response = self.client.post(
            reverse('conversations:image-upload'),
            {'images': [self._get_image("a.png"), self._get_image("b.png")]},
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['urls']), 2)
        for url in response.data['urls']:
            self.assertIn(f"chat-images/{self.user_id}/", url)
        self.assertEqual(response.data['failures'], [])

    def test_partial_failure_keeps_siblings(self):
        """Test that a rejected file does not stop the other images"""
        not_an_image = SimpleUploadedFile("notes.txt", b"plain text", "text/plain")
        response = self.client.post(
            reverse('conversations:image-upload'),
            {'images': [self._get_image(), not_an_image]},
            format='multipart',
        )

        self.assertEqual(response.status_code, status.HTTP_207_MULTI_STATUS)
        self.assertEqual(len(response.data['urls']), 1)
        self.assertEqual(response.data['failures'][0]['filename'], "notes.txt")

    def test_more_than_four_images_rejected(self):
        images = [self._get_image(f"{i}.png") for i in range(5)]
        response = self.client.post(reverse('conversations:image-upload'), {'images': images}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_no_images(self):
        response = self.client.post(reverse('conversations:image-upload'), {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
