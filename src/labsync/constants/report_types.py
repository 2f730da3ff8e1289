# ============================================================================
# src/labsync/constants/report_types.py
# ============================================================================
"""
File Types, Report Types and Parameter Statuses
- Upload file types recognised by the detector
- Report categories assigned by the classifier
- Status vocabulary for extracted parameters
"""

from enum import Enum
from typing import Optional


class FileType(str, Enum):
    """Kinds of uploaded file, derived from extension and MIME type."""
    PDF = "PDF"
    IMAGE = "IMAGE"
    TEXT = "TEXT"
    DICOM = "DICOM"
    HL7 = "HL7"
    FHIR = "FHIR"
    UNKNOWN = "UNKNOWN"


class ReportType(str, Enum):
    """
    Coarse medical category of a report.

    ECG and microbiology documents are deliberately filed under OTHER.
    """
    CBC = "CBC"
    LIPID_PANEL = "LIPID_PANEL"
    METABOLIC_PANEL = "METABOLIC_PANEL"
    URINALYSIS = "URINALYSIS"
    THYROID_PANEL = "THYROID_PANEL"
    IMAGING = "IMAGING"
    PATHOLOGY = "PATHOLOGY"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return REPORT_TYPE_DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ReportType"]:
        """
        Parse caller supplied text ("Lipid Panel", "lipid_panel", "CBC").

        Returns None for empty or unrecognised input.
        """
        if not value:
            return None
        normalized = "_".join(value.strip().upper().replace("-", " ").split())
        try:
            return cls(normalized)
        except ValueError:
            return None


class ParameterStatus(str, Enum):
    """Status of one extracted lab parameter."""
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    CRITICAL_LOW = "critical-low"
    CRITICAL_HIGH = "critical-high"
    BORDERLINE = "borderline"
    NOT_AVAILABLE = "not available"
    UNPARSEABLE = "unparseable"

    @property
    def is_abnormal(self) -> bool:
        return self in ABNORMAL_STATUSES


ABNORMAL_STATUSES = frozenset({
    ParameterStatus.LOW,
    ParameterStatus.HIGH,
    ParameterStatus.CRITICAL_LOW,
    ParameterStatus.CRITICAL_HIGH,
})


REPORT_TYPE_DISPLAY_NAMES = {
    ReportType.CBC: "Complete Blood Count",
    ReportType.LIPID_PANEL: "Lipid Panel",
    ReportType.METABOLIC_PANEL: "Metabolic Panel",
    ReportType.URINALYSIS: "Urinalysis",
    ReportType.THYROID_PANEL: "Thyroid Panel",
    ReportType.IMAGING: "Imaging",
    ReportType.PATHOLOGY: "Pathology",
    ReportType.OTHER: "Other",
}
