"""
Cloud storage boundary for article media.

``upload`` returns the permanent URL or ``None``; ``None`` means "use the
local fallback" and is never an error for the caller.
"""

import logging
import mimetypes
from typing import Optional
from urllib.parse import unquote, urlparse

from journal.config import settings
from journal.services.file_service import unique_filename
from journal.services.firebase_service import FirebaseService, firebase_service

logger = logging.getLogger(__name__)

PUBLIC_STORAGE_HOST = "storage.googleapis.com"


class StorageService:
    def __init__(
        self,
        firebase: FirebaseService,
        bucket: Optional[str] = None,
        root_folder: Optional[str] = None,
    ):
        self._firebase = firebase
        self.bucket = settings.FIREBASE_STORAGE_BUCKET if bucket is None else bucket
        self.root_folder = settings.STORAGE_ROOT_FOLDER if root_folder is None else root_folder

    @property
    def configured(self) -> bool:
        return bool(self.bucket)

    def object_path(self, original_name: str, folder: str) -> str:
        return "/".join(p for p in (self.root_folder, folder, unique_filename(original_name)) if p)

    async def upload(self, content: bytes, original_name: str, folder: str = "articles") -> Optional[str]:
        if not self.configured:
            return None
        path = self.object_path(original_name, folder)
        content_type = mimetypes.guess_type(original_name)[0] or "application/octet-stream"
        try:
            url = await self._firebase.upload_file(path, content, content_type)
        except Exception as e:
            logger.warning("Cloud upload of %s failed, falling back to local storage: %s",
                           original_name, e)
            return None
        logger.info("Uploaded %s to cloud storage", path)
        return url

    def path_from_url(self, url: str) -> Optional[str]:
        """Object path inside our bucket for a URL this service produced."""
        if not url or not self.bucket:
            return None
        parsed = urlparse(url)
        if parsed.scheme == "gs" and parsed.netloc == self.bucket:
            return unquote(parsed.path.lstrip("/")) or None
        if parsed.scheme in ("http", "https") and parsed.netloc == PUBLIC_STORAGE_HOST:
            prefix = f"/{self.bucket}/"
            if parsed.path.startswith(prefix):
                return unquote(parsed.path[len(prefix):]) or None
        return None

    async def delete(self, url: str) -> bool:
        path = self.path_from_url(url)
        if path is None:
            return False
        try:
            await self._firebase.delete_file(path)
            return True
        except Exception as e:
            # Deletion failures never break the calling flow
            logger.warning("Could not delete %s from cloud storage: %s", path, e)
            return False


storage_service = StorageService(firebase_service)
