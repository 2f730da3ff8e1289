# ============================================================================
# src/labsync/extractors/dicom_summary.py
# ============================================================================
"""
DICOM upload summary.

Pixel data and tags are not decoded. Modality and body part are read from
the file name and reported together with the file size.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import List

from ..constants.report_types import ParameterStatus
from ..core.models import TestParameter

MODALITY_PATTERN = re.compile(r'(MRI|CT|XR|US|MG|PT)', re.IGNORECASE)
BODY_PART_PATTERN = re.compile(r'(BRAIN|CHEST|ABDOMEN|PELVIS|SPINE|KNEE|SHOULDER)', re.IGNORECASE)

UNKNOWN = "Unknown"


@dataclass
class DicomSummary:
    file_name: str
    size_bytes: int
    modality: str = UNKNOWN
    body_part: str = UNKNOWN

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024

    def to_text(self, date: str = None) -> str:
        date = date or datetime.now().strftime("%Y-%m-%d")
        return (
            "DICOM FILE ANALYSIS\n\n"
            f"Filename: {self.file_name}\n"
            f"File Size: {self.size_kb:.2f} KB\n"
            f"Date: {date}\n\n"
            f"Detected Modality: {self.modality}\n"
            f"Detected Body Part: {self.body_part}\n\n"
            "Note: This is a DICOM medical imaging file. Full analysis requires "
            "specialized DICOM viewing software."
        )

    def to_parameters(self) -> List[TestParameter]:
        return [
            TestParameter(name="Modality", value=self.modality, status=ParameterStatus.NORMAL),
            TestParameter(name="Body Part", value=self.body_part, status=ParameterStatus.NORMAL),
            TestParameter(
                name="File Size",
                value=f"{self.size_kb:.2f}",
                unit="KB",
                status=ParameterStatus.NORMAL,
            ),
        ]


def summarize_dicom(file_name: str, content: bytes) -> DicomSummary:
    modality = MODALITY_PATTERN.search(file_name or "")
    body_part = BODY_PART_PATTERN.search(file_name or "")
    return DicomSummary(
        file_name=file_name,
        size_bytes=len(content or b""),
        modality=modality.group(1).upper() if modality else UNKNOWN,
        body_part=body_part.group(1).upper() if body_part else UNKNOWN,
    )
