"""
Content extractors for uploaded files: PDF text, image OCR, DICOM summary.
"""

from .pdf_extractor import PdfTextExtractor, PdfTextResult
from .ocr_extractor import OCRExtractor
from .dicom_summary import DicomSummary, summarize_dicom

__all__ = [
    'PdfTextExtractor',
    'PdfTextResult',
    'OCRExtractor',
    'DicomSummary',
    'summarize_dicom',
]
