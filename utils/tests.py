from unittest.mock import MagicMock

from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings

from conversations.exceptions import ChatValidationError, UploadFailed
from farah.exceptions import IdentityError

from .uploads import ChatImageUploader, get_chat_image_path


def image(name="photo.png", content=b"\x89PNG\r\n\x1a\nfake"):
    return SimpleUploadedFile(name, content, "image/png")


class ChatImagePathTest(SimpleTestCase):
    def test_path_is_namespaced_by_user(self):
        path = get_chat_image_path("bride-1", "Photo.JPG")

        bucket, user_id, filename = path.split("/")
        self.assertEqual(bucket, "chat-images")
        self.assertEqual(user_id, "bride-1")
        self.assertTrue(filename.endswith(".jpg"))

    def test_paths_are_unique(self):
        self.assertNotEqual(
            get_chat_image_path("bride-1", "a.png"),
            get_chat_image_path("bride-1", "a.png"),
        )


class ChatImageUploaderTest(SimpleTestCase):
    def setUp(self):
        self.storage = InMemoryStorage(base_url="https://cdn.example.com/")
        self.uploader = ChatImageUploader("bride-1", storage=self.storage)

    def test_requires_identity(self):
        with self.assertRaises(IdentityError):
            ChatImageUploader(None)

    def test_upload_returns_public_url(self):
        url = self.uploader.upload(image())
        self.assertTrue(url.startswith("https://cdn.example.com/chat-images/bride-1/"))

    def test_rejects_non_images(self):
        with self.assertRaises(UploadFailed):
            self.uploader.upload(SimpleUploadedFile("notes.txt", b"text", "text/plain"))

    @override_settings(CHAT_IMAGE_MAX_BYTES=4)
    def test_rejects_large_images(self):
        with self.assertRaises(UploadFailed):
            self.uploader.upload(image())

    def test_storage_failure_becomes_upload_failed(self):
        storage = MagicMock()
        storage.save.side_effect = OSError("bucket unavailable")
        uploader = ChatImageUploader("bride-1", storage=storage)

        with self.assertLogs('utils.uploads', level='ERROR'):
            with self.assertRaises(UploadFailed):
                uploader.upload(image())

    def test_upload_many_keeps_successful_siblings(self):
        """Test that one failed image does not block the others"""
        storage = MagicMock()
        storage.save.side_effect = ["chat-images/bride-1/a.png", OSError("timeout"), "chat-images/bride-1/c.png"]
        storage.url.side_effect = lambda path: f"https://cdn.example.com/{path}"
        uploader = ChatImageUploader("bride-1", storage=storage)

        batch = uploader.upload_many([image("a.png"), image("b.png"), image("c.png")])

        self.assertEqual(batch.urls, [
            "https://cdn.example.com/chat-images/bride-1/a.png",
            "https://cdn.example.com/chat-images/bride-1/c.png",
        ])
        self.assertEqual(batch.failures, [{"filename": "b.png", "error": "Failed to upload b.png"}])
        self.assertFalse(batch.complete)

    def test_upload_many_limit(self):
        with self.assertRaises(ChatValidationError):
            self.uploader.upload_many([image(f"{i}.png") for i in range(5)])
