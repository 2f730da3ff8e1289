# ============================================================================
# src/labsync/extractors/ocr_extractor.py
# ============================================================================
"""
OCR for uploaded report images (Tesseract through pytesseract).

The image is opened with Pillow inside a with block so it is closed on every
path. Failures are raised as TextExtractionError; callers decide on a
fallback.
"""

import io
import logging
import shutil
from typing import Optional

import pytesseract
from PIL import Image

from ..utils.exceptions import TextExtractionError


class OCRExtractor:
    """Single-pass Tesseract OCR, no retries."""

    def __init__(self, language: str = "eng"):
        self.language = language
        self.logger = logging.getLogger(__name__)
        self._tesseract_available: Optional[bool] = None

    @property
    def tesseract_available(self) -> bool:
        """Check if Tesseract is installed."""
        if self._tesseract_available is None:
            self._tesseract_available = shutil.which('tesseract') is not None
            if not self._tesseract_available:
                self.logger.info("Tesseract OCR not found")
        return self._tesseract_available

    def extract(self, data: bytes) -> str:
        """
        Recognize text in an image.

        Raises:
            TextExtractionError: engine missing, unreadable image or OCR failure
        """
        if not self.tesseract_available:
            raise TextExtractionError("Tesseract OCR is not installed")

        try:
            with Image.open(io.BytesIO(data)) as image:
                if image.mode not in ("RGB", "L"):
                    image = image.convert("RGB")
                text = pytesseract.image_to_string(image, lang=self.language)
        except Exception as e:
            raise TextExtractionError(f"OCR failed: {e}", details={"engine": "tesseract"}) from e

        self.logger.debug(f"Tesseract recognized {len(text)} chars")
        return text.strip()
