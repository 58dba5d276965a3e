import asyncio
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Optional

from journal.config import settings

logger = logging.getLogger(__name__)

# Public prefix under which UPLOAD_DIR is served (see journal.main)
UPLOADS_URL_PREFIX = "/uploads/"


def unique_filename(original_name: str) -> str:
    """Timestamped, collision-free file name that keeps the original extension."""
    name = Path(original_name or "upload").name
    safe = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._") or "upload"
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe}"


class FileService:
    """Local-disk media store used when cloud storage is unavailable."""

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)

    async def save_upload(self, content: bytes, original_name: str, folder: str = "articles") -> str:
        """Write bytes under UPLOAD_DIR/<folder>/ and return the public relative URL."""
        target_dir = self.upload_dir / folder
        file_name = unique_filename(original_name)

        def _write():
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / file_name).write_bytes(content)

        await asyncio.to_thread(_write)
        return f"{UPLOADS_URL_PREFIX}{folder}/{file_name}"

    def get_file_path(self, url: str) -> Optional[Path]:
        """Map a /uploads/... URL back to its file on disk."""
        if not url or not url.startswith(UPLOADS_URL_PREFIX):
            return None
        relative = url[len(UPLOADS_URL_PREFIX):]
        path = (self.upload_dir / relative).resolve()
        if self.upload_dir.resolve() not in path.parents:
            return None
        return path

    async def delete(self, url: str) -> bool:
        path = self.get_file_path(url)
        if path is None or not path.exists():
            return False
        try:
            await asyncio.to_thread(path.unlink)
            return True
        except OSError as e:
            logger.warning("Could not delete local file %s: %s", path, e)
            return False


file_service = FileService()
