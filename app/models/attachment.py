"""
app/models/attachment.py

Purpose: A downloaded inbound media file

- Local path is only valid inside TransientMediaStore.acquire()
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Attachment:
    path: str
    media_type: str
    source_url: str
    durable_url: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")
