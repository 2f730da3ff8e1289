# ============================================================================
# src/labsync/processing/file_type.py
# ============================================================================
"""
File type detection from file name and MIME type.
"""

from pathlib import Path
from typing import Dict, Tuple

from ..constants.report_types import FileType

# Checked in order; FHIR comes before TEXT so "patient-fhir.json" is FHIR
EXTENSION_MAP: Tuple[Tuple[FileType, Tuple[str, ...]], ...] = (
    (FileType.PDF, ('pdf',)),
    (FileType.IMAGE, ('jpg', 'jpeg', 'png', 'gif', 'bmp', 'tiff', 'webp')),
    (FileType.DICOM, ('dicom', 'dcm')),
    (FileType.HL7, ('hl7', 'h7')),
    (FileType.FHIR, ('fhir',)),
    (FileType.TEXT, ('txt', 'csv', 'json', 'xml', 'html')),
)

MIME_PREFIXES: Dict[str, FileType] = {
    'application/pdf': FileType.PDF,
    'image/': FileType.IMAGE,
    'text/': FileType.TEXT,
}


def detect_file_type(file_name: str, mime_type: str = "") -> FileType:
    """
    Map an upload onto a FileType.

    Extension first, then MIME type. UNKNOWN when neither matches.
    """
    name = (file_name or "").lower()
    extension = Path(name).suffix.lstrip('.')

    if extension == 'json' and 'fhir' in name:
        return FileType.FHIR

    for file_type, extensions in EXTENSION_MAP:
        if extension in extensions:
            return file_type

    mime = (mime_type or "").lower()
    for prefix, file_type in MIME_PREFIXES.items():
        if mime.startswith(prefix):
            return file_type
    if 'dicom' in mime:
        return FileType.DICOM

    return FileType.UNKNOWN
