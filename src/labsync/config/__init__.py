# ============================================================================
# src/labsync/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings, BaseSettingsConfig
from .thresholds_config import threshold_settings, ThresholdSettings
from .ai_config import ai_settings, AISettings
from .logging_config import logging_settings, LoggingSettings
