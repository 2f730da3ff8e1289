# ============================================================================
# src/labsync/constants/__init__.py
# ============================================================================
"""
Shared enumerations.
"""

from .report_types import (
    FileType,
    ReportType,
    ParameterStatus,
    ABNORMAL_STATUSES,
    REPORT_TYPE_DISPLAY_NAMES,
)
