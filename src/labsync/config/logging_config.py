# ============================================================================
# src/labsync/config/logging_config.py
# ============================================================================
"""
Logging Settings
- Log level
- Optional log file
- JSON output
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FILE: Optional[Path] = Field(
        default=None,
        description="Also write logs to this file"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit one JSON object per log record"
    )


logging_settings = LoggingSettings()
