"""
app/services/media_service.py

Purpose: Transient storage for inbound attachments

- Downloads a WhatsApp attachment into MEDIA_TEMP_DIR
- Optionally uploads it for a durable URL (failure is non-fatal)
- The local file exists only inside acquire(); it is removed on every exit path
"""

import mimetypes
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import CollaboratorError
from app.core.logging import get_logger
from app.models.attachment import Attachment
from app.services.upload_service import UploadService

logger = get_logger(__name__)


class MediaFetcher(Protocol):
    async def download_media(self, media_url: str) -> bytes:
        ...


class TransientMediaStore:
    def __init__(
        self,
        fetcher: MediaFetcher,
        uploader: Optional[UploadService] = None,
        temp_dir: Optional[str] = None,
    ):
        self.fetcher = fetcher
        self.uploader = uploader
        self.temp_dir = temp_dir or settings.MEDIA_TEMP_DIR

    def _local_path(self, media_type: str) -> str:
        extension = mimetypes.guess_extension(media_type or "") or ".bin"
        if extension == ".jpe":
            extension = ".jpg"
        return os.path.join(self.temp_dir, f"{uuid.uuid4().hex}{extension}")

    @asynccontextmanager
    async def acquire(
        self,
        media_url: str,
        media_type: str,
        folder: str = "uploads",
        upload: bool = True,
    ) -> AsyncIterator[Attachment]:
        """
        Downloads an attachment for the duration of the block.

        Usage:
            async with media_store.acquire(url, "image/jpeg", folder="receipts") as attachment:
                await pipeline.process(attachment.path)

        Raises:
            CollaboratorError: download failed (nothing is left on disk)
        """
        os.makedirs(self.temp_dir, exist_ok=True)
        path = self._local_path(media_type)

        try:
            content = await self.fetcher.download_media(media_url)
            with open(path, "wb") as fh:
                fh.write(content)
            logger.debug(f"📥 Stored attachment at {path} ({len(content)} bytes)")

            attachment = Attachment(path=path, media_type=media_type, source_url=media_url)

            if upload and self.uploader is not None and self.uploader.is_configured():
                try:
                    attachment.durable_url = await self.uploader.upload(
                        path, {"folder": folder, "content_type": media_type}
                    )
                except CollaboratorError as e:
                    logger.warning(f"⚠️ Upload failed, continuing without durable URL: {e.message}")

            yield attachment
        finally:
            self._remove(path)

    def _remove(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"❌ Could not delete temp file {path}: {e}")

    def purge_stale(self, max_age_seconds: Optional[int] = None) -> int:
        """
        Deletes leftover files older than max_age_seconds (e.g. after a crash).

        Returns:
            Number of files removed
        """
        max_age = max_age_seconds if max_age_seconds is not None else settings.MEDIA_RETENTION_SECONDS
        if not os.path.isdir(self.temp_dir):
            return 0

        cutoff = time.time() - max_age
        removed = 0
        for entry in os.scandir(self.temp_dir):
            if entry.is_file() and entry.stat().st_mtime < cutoff:
                self._remove(entry.path)
                removed += 1

        if removed:
            logger.info(f"🧹 Purged {removed} stale temp file(s)")
        return removed
