import logging
import os
import time
import uuid
from dataclasses import dataclass, field

from django.conf import settings
from django.core.files.storage import default_storage

from conversations.exceptions import ChatValidationError, UploadFailed
from farah.exceptions import IdentityError

logger = logging.getLogger(__name__)


def get_chat_image_path(user_id, filename):
    """Per-user path under the chat image bucket; unique per upload."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}.{ext}"
    return os.path.join(settings.CHAT_IMAGE_BUCKET, str(user_id), filename)


def is_image(file_obj):
    content_type = (getattr(file_obj, "content_type", None) or "").lower()
    return content_type.startswith("image/")


@dataclass
class UploadBatch:
    urls: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def complete(self):
        return not self.failures

    def as_dict(self):
        return {"urls": self.urls, "failures": self.failures}


class ChatImageUploader:
    """
    Stores chat images and hands back public URLs for message bodies.
    """

    def __init__(self, user_id, storage=None):
        if not user_id:
            raise IdentityError()
        self.user_id = str(user_id)
        self.storage = storage or default_storage

    def upload(self, file_obj):
        """Store one image and return its public URL. Raises UploadFailed."""
        name = getattr(file_obj, "name", "") or "image"
        if not is_image(file_obj):
            raise UploadFailed("Only image files can be attached.")
        size = getattr(file_obj, "size", None)
        if size is not None and size > settings.CHAT_IMAGE_MAX_BYTES:
            max_mb = settings.CHAT_IMAGE_MAX_BYTES // (1024 * 1024)
            raise UploadFailed(f"Image too large. Maximum size is {max_mb}MB")

        path = get_chat_image_path(self.user_id, name)
        try:
            saved_path = self.storage.save(path, file_obj)
            return self.storage.url(saved_path)
        except Exception as e:
            logger.error(
                "Failed to upload chat image",
                extra={"user_id": self.user_id, "filename": name, "error": str(e)},
            )
            raise UploadFailed(f"Failed to upload {name}")

    def upload_many(self, files):
        """
        Upload each file independently.

        A failed image is recorded and its siblings still upload; the caller
        decides whether to send with fewer images.
        """
        files = list(files)
        max_images = settings.CHAT_MAX_IMAGES_PER_MESSAGE
        if len(files) > max_images:
            raise ChatValidationError(f"A message can carry at most {max_images} images.")

        batch = UploadBatch()
        for file_obj in files:
            try:
                batch.urls.append(self.upload(file_obj))
            except UploadFailed as e:
                batch.failures.append({
                    "filename": getattr(file_obj, "name", ""),
                    "error": str(e.detail),
                })
        return batch
