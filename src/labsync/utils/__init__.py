# ============================================================================
# src/labsync/utils/__init__.py
# ============================================================================
"""
Shared logging and exception utilities.
"""

from .logging import setup_logging, report_context, log_performance
from .exceptions import LabSyncError
