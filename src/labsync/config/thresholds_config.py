# ============================================================================
# src/labsync/config/thresholds_config.py
# ============================================================================
"""
Extraction Thresholds
- Critical status band
- Reference range search windows
- Structured table detection
- Classifier acceptance
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class ThresholdSettings(BaseSettings):
    CRITICAL_THRESHOLD_PERCENT: float = Field(
        default=25.0,
        ge=0.0,
        description="Percent beyond a reference bound at which low/high becomes critical-low/critical-high"
    )
    CBC_RANGE_CONTEXT_CHARS: int = Field(
        default=100,
        ge=0,
        description="Characters searched either side of a CBC value for its reference range"
    )
    DEFAULT_RANGE_CONTEXT_CHARS: int = Field(
        default=50,
        ge=0,
        description="Characters searched either side of a non-CBC value for its reference range"
    )
    STRUCTURED_TABLE_SCAN_LINES: int = Field(
        default=10,
        ge=1,
        description="Lines scanned below a detected table header"
    )
    MIN_HEADER_MATCHES: int = Field(
        default=2,
        ge=1,
        description="Known parameter tokens a line needs to count as a table header"
    )
    MIN_CLASSIFICATION_SCORE: float = Field(
        default=1.0,
        ge=0.0,
        description="Keyword score below which the classifier falls back to the filename heuristic"
    )


threshold_settings = ThresholdSettings()
