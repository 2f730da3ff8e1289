# ============================================================================
# FILE: tests/unit/test_configuration.py
# ============================================================================
"""
Tests for settings, server configuration and the exception hierarchy
"""

import pytest

from labsync.config import AISettings, ThresholdSettings
from labsync.core.config import Config, get_config
from labsync.utils.exceptions import (
    AITimeoutError,
    InsufficientDataError,
    LabSyncError,
    ReportNotFoundError,
    StorageError,
    TextExtractionError,
    UnsupportedFileTypeError,
    ValidationError,
)


def test_threshold_defaults():
    settings = ThresholdSettings()
    assert settings.CRITICAL_THRESHOLD_PERCENT == 25.0
    assert settings.CBC_RANGE_CONTEXT_CHARS == 100
    assert settings.DEFAULT_RANGE_CONTEXT_CHARS == 50
    assert settings.STRUCTURED_TABLE_SCAN_LINES == 10


def test_ai_settings_from_environment(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    assert not AISettings().configured

    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    monkeypatch.setenv("AI_REQUEST_TIMEOUT", "5")
    settings = AISettings()
    assert settings.configured
    assert settings.AI_REQUEST_TIMEOUT == 5.0


def test_server_config_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("RELOAD", "yes")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")

    config = Config()
    assert config.port == 9000
    assert config.reload is True
    assert config.cors_origins == ["http://a.test", "http://b.test"]
    assert config.to_dict()["port"] == 9000


def test_server_config_ignores_bad_port(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    assert Config().port == 8000


def test_get_config_is_cached():
    assert get_config() is get_config()


# ============================================================================
# EXCEPTIONS
# ============================================================================

@pytest.mark.parametrize("exc,status", [
    (ValidationError("bad"), 400),
    (UnsupportedFileTypeError("a.zip", "application/zip"), 400),
    (TextExtractionError("ocr failed"), 500),
    (InsufficientDataError("need more", required=2, available=1), 400),
    (ReportNotFoundError("rep_x"), 404),
    (StorageError("disk full"), 500),
    (AITimeoutError("slow"), 504),
])
def test_status_codes(exc, status):
    assert isinstance(exc, LabSyncError)
    assert exc.status_code == status


def test_to_dict():
    exc = ReportNotFoundError("rep_123")
    assert exc.to_dict() == {
        "error": "ReportNotFoundError",
        "message": "Report not found: rep_123",
        "details": {"report_id": "rep_123"},
    }
    assert ValidationError("bad").to_dict() == {"error": "ValidationError", "message": "bad"}
