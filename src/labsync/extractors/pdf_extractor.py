# ============================================================================
# src/labsync/extractors/pdf_extractor.py
# ============================================================================
"""
Text extraction from PDF bytes.

Extraction cascade (in order of preference):
1. pypdfium2: Fast, good Unicode support, best for modern PDFs
2. PyPDF2: Fallback, widely compatible
3. pdfplumber: Layout-aware, slowest

A backend that raises or returns only whitespace hands over to the next one.
Page texts are joined with a single newline.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import pdfplumber
import pypdfium2
import PyPDF2


@dataclass
class PdfTextResult:
    """Text extracted from a PDF plus how it was obtained."""
    text: str = ""
    method: str = "none"
    page_count: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class PdfTextExtractor:
    """pypdfium2, then PyPDF2, then pdfplumber."""

    def __init__(self, password: Optional[str] = None):
        self.password = password
        self.logger = logging.getLogger(__name__)

    def extract(self, data: bytes) -> PdfTextResult:
        result = PdfTextResult()

        for method, backend in (
            ("pypdfium2", self._extract_with_pypdfium2),
            ("pypdf2", self._extract_with_pypdf2),
            ("pdfplumber", self._extract_with_pdfplumber),
        ):
            try:
                pages = backend(data)
            except Exception as e:
                self.logger.warning(f"{method} failed: {e}")
                result.warnings.append(f"{method} failed: {e}")
                continue

            text = "\n".join(pages)
            if not text.strip():
                result.warnings.append(f"{method} returned no text")
                continue

            result.text = text
            result.method = method
            result.page_count = len(pages)
            self.logger.debug(f"{method} extracted {len(text)} chars from {len(pages)} pages")
            return result

        self.logger.warning("No text layer found in PDF")
        return result

    def _extract_with_pypdfium2(self, data: bytes) -> List[str]:
        pdf = pypdfium2.PdfDocument(data, password=self.password)
        pages = []
        try:
            for page_num in range(len(pdf)):
                page = pdf[page_num]
                textpage = page.get_textpage()
                text = textpage.get_text_range()
                pages.append(text.strip() if text else "")
        finally:
            pdf.close()
        return pages

    def _extract_with_pypdf2(self, data: bytes) -> List[str]:
        reader = PyPDF2.PdfReader(io.BytesIO(data))

        if reader.is_encrypted:
            if not reader.decrypt(self.password or ""):
                raise RuntimeError("PDF is encrypted and requires a password")

        return [(page.extract_text() or "").strip() for page in reader.pages]

    def _extract_with_pdfplumber(self, data: bytes) -> List[str]:
        with pdfplumber.open(io.BytesIO(data), password=self.password) as pdf:
            return [(page.extract_text() or "").strip() for page in pdf.pages]
