import logging
import os
import uuid
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel

from classroom.core.config.settings import get_settings
from classroom.core.errors import InvalidInput, StorageError
from classroom.utils.helpers import sanitize_filename

logger = logging.getLogger(__name__)


class FileUpload(BaseModel):
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class FileStorage:
    """
    Blob store backed by a local directory.

    Objects are written under a generated key and addressed by a URL made of
    the configured base URL and that key.
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        base_url: Optional[str] = None,
        allowed_extensions: Optional[set] = None,
        max_upload_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.base_url = (base_url or settings.UPLOAD_BASE_URL).rstrip("/")
        self.allowed_extensions = allowed_extensions or settings.ALLOWED_EXTENSIONS
        self.max_upload_size = max_upload_size or settings.MAX_UPLOAD_SIZE

        # Create upload directory if it doesn't exist
        os.makedirs(self.upload_dir, exist_ok=True)

    def _get_file_extension(self, filename: str) -> str:
        return os.path.splitext(filename)[1].lower()

    def is_allowed_file(self, filename: str) -> bool:
        return self._get_file_extension(filename) in self.allowed_extensions

    def validate(self, file: FileUpload) -> None:
        """Reject a payload before anything is written."""
        if not self.is_allowed_file(file.filename):
            raise InvalidInput(f"File type not allowed: {file.filename}")
        if len(file.content) > self.max_upload_size:
            raise InvalidInput(f"File exceeds the maximum size of {self.max_upload_size} bytes")

    def generate_key(self, filename: str) -> str:
        return f"{uuid.uuid4()}-{sanitize_filename(filename)}"

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def key_for(self, url: str) -> str:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            raise StorageError(f"URL is not managed by this store: {url}")
        key = url[len(prefix):]
        if not key or os.path.basename(key) != key:
            raise StorageError(f"Invalid object key in URL: {url}")
        return key

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Write an object and return its retrieval URL

        Args:
            key: Object key, unique per upload
            data: Raw bytes of the object
            content_type: MIME type reported by the uploader

        Returns:
            URL of the stored object
        """
        file_path = os.path.join(self.upload_dir, key)
        try:
            with open(file_path, "wb") as buffer:
                buffer.write(data)
        except OSError as e:
            raise StorageError(f"Failed to store file: {str(e)}") from e
        logger.info(f"Stored object {key} ({content_type}, {len(data)} bytes)")
        return self.url_for(key)

    def upload(self, file: FileUpload) -> str:
        return self.put(self.generate_key(file.filename), file.content, file.content_type)

    def delete(self, url: str) -> bool:
        """
        Delete the object behind a URL

        Returns:
            True if the object was removed, False if it was already gone
        """
        file_path = os.path.join(self.upload_dir, self.key_for(url))
        try:
            os.remove(file_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete file: {str(e)}") from e
        return True


@lru_cache()
def get_file_storage() -> FileStorage:
    return FileStorage()
