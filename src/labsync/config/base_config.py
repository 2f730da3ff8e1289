# ============================================================================
# src/labsync/config/base_config.py
# ============================================================================
"""
Base Configuration
- Report store database
- Upload limits
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings


class BaseSettingsConfig(BaseSettings):
    # Reports, health plans and recommendations; parent directory is created on first use
    REPORTS_DB_PATH: Path = Field(
        default=Path("data/reports.db"),
        description="SQLite database backing the report store"
    )

    UPLOAD_MAX_BYTES: int = Field(
        default=20 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload in bytes"
    )


# Global instance
base_settings = BaseSettingsConfig()
