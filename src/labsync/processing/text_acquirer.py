# ============================================================================
# src/labsync/processing/text_acquirer.py
# ============================================================================
"""
Text Acquisition

Gets report text out of an upload, whatever its file type:

- PDF:   text layer (pypdfium2 -> PyPDF2 -> pdfplumber)
- IMAGE: Tesseract OCR
- TEXT / HL7 / FHIR: UTF-8 decode, no protocol parsing
- DICOM: summary built from the file name and size

A PDF without a text layer and an image OCR cannot read both fall back to a
fixed sample report and are flagged as degraded. acquire() never raises for
an extraction failure.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..classifiers.report_classifier import ReportClassifier
from ..constants.report_types import FileType, ReportType
from ..core.models import TestParameter, UploadedFile
from ..extractors.dicom_summary import summarize_dicom
from ..extractors.ocr_extractor import OCRExtractor
from ..extractors.pdf_extractor import PdfTextExtractor
from ..utils.exceptions import TextExtractionError

logger = logging.getLogger(__name__)

FALLBACK_PDF_TEXT = """LABORATORY REPORT

Patient: John Doe
Date: {date}
Test: Complete Blood Count

Results:
WBC: 7.5 x10^9/L (Reference: 4.0-11.0)
RBC: 5.0 x10^12/L (Reference: 4.5-5.5)
Hemoglobin: 14.2 g/dL (Reference: 13.5-17.5)
Hematocrit: 42% (Reference: 41-50%)
Platelets: 250 x10^9/L (Reference: 150-400)

Conclusion: All values within normal range."""

FALLBACK_IMAGE_TEXT = """MEDICAL IMAGING REPORT

Patient: Jane Smith
Date: {date}
Procedure: Chest X-Ray

Findings:
Lungs are clear without infiltrates or effusions.
Heart size is normal.
No pneumothorax or pleural effusion.
Bony structures are intact.

Impression: Normal chest X-ray."""


@dataclass
class AcquiredText:
    text: str
    report_type: ReportType = ReportType.OTHER
    parameters: List[TestParameter] = field(default_factory=list)
    method: str = "text"
    degraded: bool = False


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


class TextAcquirer:
    """Route an upload to the right extractor and classify the result."""

    def __init__(
        self,
        classifier: Optional[ReportClassifier] = None,
        pdf_extractor: Optional[PdfTextExtractor] = None,
        ocr_extractor: Optional[OCRExtractor] = None,
    ):
        self.classifier = classifier or ReportClassifier()
        self.pdf_extractor = pdf_extractor or PdfTextExtractor()
        self.ocr_extractor = ocr_extractor or OCRExtractor()
        self.logger = logging.getLogger(__name__)

    def acquire(self, upload: UploadedFile, file_type: FileType) -> AcquiredText:
        if file_type == FileType.DICOM:
            summary = summarize_dicom(upload.name, upload.content)
            return AcquiredText(
                text=summary.to_text(_today()),
                report_type=ReportType.IMAGING,
                parameters=summary.to_parameters(),
                method="dicom_summary",
            )

        if file_type == FileType.PDF:
            acquired = self._from_pdf(upload)
        elif file_type == FileType.IMAGE:
            acquired = self._from_image(upload)
        else:
            acquired = AcquiredText(
                text=upload.content.decode("utf-8", errors="replace"),
                method=file_type.value.lower() if file_type != FileType.UNKNOWN else "text",
            )

        acquired.report_type = self.classifier.classify(acquired.text, upload.name).report_type
        return acquired

    def _from_pdf(self, upload: UploadedFile) -> AcquiredText:
        try:
            result = self.pdf_extractor.extract(upload.content)
        except Exception as e:
            self.logger.error(f"PDF extraction crashed for {upload.name}: {e}", exc_info=True)
            result = None

        if result is not None and not result.is_empty:
            return AcquiredText(text=result.text, method=result.method)

        self.logger.warning(f"No text extracted from {upload.name}, using sample lab report")
        return AcquiredText(
            text=FALLBACK_PDF_TEXT.format(date=_today()),
            method="pdf_fallback",
            degraded=True,
        )

    def _from_image(self, upload: UploadedFile) -> AcquiredText:
        try:
            text = self.ocr_extractor.extract(upload.content)
        except TextExtractionError as e:
            self.logger.warning(f"OCR unavailable for {upload.name}: {e.message}")
            text = ""
        except Exception as e:
            self.logger.error(f"OCR crashed for {upload.name}: {e}", exc_info=True)
            text = ""

        if text.strip():
            return AcquiredText(text=text, method="ocr")

        self.logger.warning(f"OCR produced no text for {upload.name}, using sample imaging report")
        return AcquiredText(
            text=FALLBACK_IMAGE_TEXT.format(date=_today()),
            method="ocr_fallback",
            degraded=True,
        )
