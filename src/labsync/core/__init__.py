# ============================================================================
# src/labsync/core/__init__.py
# ============================================================================
"""
Core data model and server configuration.
"""

from .config import Config, get_config
from .models import (
    UploadedFile,
    ReferenceRange,
    TestParameter,
    StandardizedReport,
    PossibleCondition,
    ReportAnalysis,
    MedicalReport,
    ReportStatus,
)
