# ============================================================================
# src/labsync/core/config.py
# ============================================================================
"""
Server Configuration

Loads API server configuration from environment variables (.env file) with
sensible defaults. Pipeline tunables live in labsync.config; this module only
covers how the HTTP service itself is run.

Usage:
    from labsync.core.config import get_config

    cfg = get_config()
    print(cfg.port)
"""

import os
from pathlib import Path
from typing import Any, Dict, List
from dataclasses import dataclass, field, asdict
from functools import lru_cache

from dotenv import load_dotenv


def _load_dotenv() -> bool:
    """Load .env file from the project root or the working directory."""
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False


def _get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')


def _get_int(key: str, default: int = 0) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_list(key: str, default: str) -> List[str]:
    """Get comma separated list from environment variable."""
    raw = os.getenv(key, default)
    return [item.strip() for item in raw.split(',') if item.strip()]


@dataclass
class Config:
    """
    Configuration container with attribute access.

    All values are loaded from environment variables with defaults.
    """

    host: str = field(default_factory=lambda: os.getenv('HOST', '0.0.0.0'))
    port: int = field(default_factory=lambda: _get_int('PORT', 8000))
    reload: bool = field(default_factory=lambda: _get_bool('RELOAD', False))
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    # CORS for the web frontend
    cors_origins: List[str] = field(
        default_factory=lambda: _get_list(
            'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000'
        )
    )

    # Default owner for reports uploaded without a user context
    default_user_id: str = field(default_factory=lambda: os.getenv('DEFAULT_USER_ID', 'anonymous'))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load .env once and return the shared server configuration."""
    _load_dotenv()
    return Config()
