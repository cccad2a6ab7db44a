"""
app/services/upload_service.py

Purpose: Durable media upload

- Posts a local file to the blob endpoint (multipart) and returns its public URL
- Callers treat failures as non-fatal
"""

import os
import httpx
from typing import Dict, Optional

from app.core.config import settings
from app.core.exceptions import CollaboratorError, CollaboratorTimeout
from app.core.logging import get_logger

logger = get_logger(__name__)


class UploadService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.UPLOAD_URL
        self.api_key = settings.UPLOAD_API_KEY
        self.timeout = settings.UPLOAD_TIMEOUT_SECONDS
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.url)

    async def upload(self, local_path: str, meta: Optional[Dict[str, str]] = None) -> str:
        """
        Uploads a file.

        Args:
            local_path: File to upload
            meta: Extra form fields (folder, content type, owner)

        Returns:
            Public URL of the stored blob

        Raises:
            CollaboratorError: not configured, rejected, or malformed response
            CollaboratorTimeout: endpoint did not answer in time
        """
        if not self.is_configured():
            raise CollaboratorError("Upload endpoint not configured")

        meta = meta or {}
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        content_type = meta.get("content_type", "application/octet-stream")

        try:
            with open(local_path, "rb") as fh:
                files = {"file": (os.path.basename(local_path), fh, content_type)}
                async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                    response = await client.post(self.url, files=files, data=meta, headers=headers)
                    response.raise_for_status()
                    payload = response.json()
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout("Upload timed out") from e
        except (httpx.HTTPError, OSError, ValueError) as e:
            raise CollaboratorError(f"Upload failed: {e}") from e

        if not isinstance(payload, dict):
            raise CollaboratorError("Upload response was not a JSON object", details={"response": payload})

        url = payload.get("url") or payload.get("secure_url")
        if not url:
            raise CollaboratorError("Upload response did not include a URL", details=payload)

        logger.info(f"☁️ Uploaded {os.path.basename(local_path)}")
        return url
