"""
app/services/qr_service.py

Purpose: Machine-readable code extraction from receipt photos

- Decodes the first QR code in an image with OpenCV
- Returns None when no code is found, the image cannot be read, or OpenCV fails
- Runs in worker threads; every call builds its own detector
"""

from typing import Optional

import cv2

from app.core.logging import get_logger

logger = get_logger(__name__)


class QRCodeDecoder:
    def decode(self, image_path: str) -> Optional[str]:
        """
        Args:
            image_path: Local image file

        Returns:
            Decoded payload (usually a URL) or None
        """
        image = cv2.imread(image_path)
        if image is None:
            logger.warning(f"⚠️ Could not read image for QR detection: {image_path}")
            return None

        detector = cv2.QRCodeDetector()
        try:
            data, _, _ = detector.detectAndDecode(image)
            if not data:
                # Phone photos of receipts are often low contrast
                gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
                data, _, _ = detector.detectAndDecode(gray)
        except cv2.error as e:
            logger.warning(f"⚠️ QR detection failed: {e}")
            return None

        if data:
            logger.info(f"✅ QR code detected: {data[:80]}")
            return data.strip()

        logger.info("ℹ️ No QR code found in image")
        return None
