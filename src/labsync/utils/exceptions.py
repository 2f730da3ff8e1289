# ============================================================================
# src/labsync/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for LabSync.

Every exception carries an HTTP status so the API layer can turn it into the
standard error envelope without a lookup table.
"""

from typing import Any, Dict, Optional


class LabSyncError(Exception):
    """Base exception for all LabSync errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"error": self.__class__.__name__, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(LabSyncError):
    """Missing or malformed request input."""
    status_code = 400


class FileProcessingError(LabSyncError):
    """Error while turning an upload into report text."""
    status_code = 400


class UnsupportedFileTypeError(FileProcessingError):
    """Upload whose extension and MIME type match no supported file type."""

    def __init__(self, file_name: str, mime_type: str = ""):
        super().__init__(
            "Unsupported file type",
            details={"file_name": file_name, "mime_type": mime_type},
        )
        self.file_name = file_name
        self.mime_type = mime_type


class TextExtractionError(FileProcessingError):
    """Error extracting text from a PDF or image."""
    status_code = 500


class ExtractionError(LabSyncError):
    """Error extracting parameters from report text."""


class ClassificationError(LabSyncError):
    """Error classifying report type."""


class AIServiceError(LabSyncError):
    """External AI completion call failed."""
    status_code = 502


class AITimeoutError(AIServiceError):
    """External AI completion call exceeded its timeout."""
    status_code = 504


class InvalidAIResponseError(AIServiceError):
    """AI response could not be parsed into the expected structure."""


class StorageError(LabSyncError):
    """Report store read or write failed."""


class ReportNotFoundError(LabSyncError):
    """Requested report id does not exist."""
    status_code = 404

    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}", details={"report_id": report_id})
        self.report_id = report_id


class InsufficientDataError(ValidationError):
    """Not enough data points for the requested computation."""

    def __init__(self, message: str, required: int, available: int):
        super().__init__(message, details={"required": required, "available": available})
        self.required = required
        self.available = available


class ConfigurationError(LabSyncError):
    """Invalid configuration."""
