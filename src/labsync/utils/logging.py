# ============================================================================
# src/labsync/utils/logging.py
# ============================================================================
"""
Logging setup for LabSync.

Records emitted while a report is being processed carry that report's
upload fields (file name, file type) so concurrent uploads can be told
apart in the log. The fields live in a ContextVar, which keeps them
per request under asyncio.
"""

import functools
import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

_report_fields: ContextVar[Dict[str, Any]] = ContextVar("labsync_report_fields", default={})

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s%(report_suffix)s'


class ReportContextFilter(logging.Filter):
    """Copies the current report fields onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = _report_fields.get()
        record.report = dict(fields)
        record.report_suffix = (
            " [" + " ".join(f"{k}={v}" for k, v in fields.items()) + "]" if fields else ""
        )
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'line': record.lineno,
        }
        report = getattr(record, 'report', None)
        if report:
            log_data['report'] = report
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_file: Also write to this file, creating its directory
        format_json: Emit JSON lines instead of plain text
    """
    if format_json:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    context_filter = ReportContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True
    )


@contextmanager
def report_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """Attach fields to every record logged inside the block."""
    merged = {**_report_fields.get(), **fields}
    token = _report_fields.set(merged)
    try:
        yield merged
    finally:
        _report_fields.reset(token)


def current_report_fields() -> Dict[str, Any]:
    return dict(_report_fields.get())


def log_performance(logger: logging.Logger, operation: str):
    """
    Log how long an async operation took, or how long it ran before failing.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            logger.info(f"{operation} completed in {time.perf_counter() - started:.3f}s")
            return result

        return wrapper
    return decorator
