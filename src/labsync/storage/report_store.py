# ============================================================================
# src/labsync/storage/report_store.py
# ============================================================================
"""
Report Store

Persists reports, health plans and recommendations to SQLite.
Raw sqlite3 with one connection per operation; the full record is kept as a
JSON payload and the filterable fields are copied into indexed columns.
"""

import json
import logging
import re
import secrets
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..config import base_settings
from ..core.models import MedicalReport, utc_now_iso
from ..utils.exceptions import StorageError

logger = logging.getLogger(__name__)

REPORT_ID_PREFIX = "rep_"
REPORT_ID_PATTERN = re.compile(r'^rep_[0-9a-f]{24}$')
DEFAULT_PAGE_SIZE = 10


def new_report_id() -> str:
    return REPORT_ID_PREFIX + secrets.token_hex(12)


def is_valid_report_id(report_id: str) -> bool:
    return bool(report_id) and REPORT_ID_PATTERN.match(report_id) is not None


def _split(value: Optional[str]) -> List[str]:
    """"a,b" -> ["a", "b"]; filters accept comma separated alternatives."""
    if not value:
        return []
    return [v.strip() for v in value.split(',') if v.strip()]


@dataclass
class ReportFilters:
    """Optional filters for list(); empty fields are ignored."""
    type: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    search: Optional[str] = None
    user_id: Optional[str] = None
    patient_name: Optional[str] = None


class ReportStore:
    """
    SQLite-backed store for medical reports.

    Tables:
        reports          one row per MedicalReport, payload is to_dict()
        health_plans     latest generated plan per report
        recommendations  latest generated recommendations per report
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or base_settings.REPORTS_DB_PATH)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open report store: {e}", details={"db_path": str(self.db_path)})
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Report store operation failed: {e}", exc_info=True)
            raise StorageError(f"Report store operation failed: {e}")
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    id            TEXT PRIMARY KEY,
                    user_id       TEXT,
                    type          TEXT NOT NULL,
                    status        TEXT NOT NULL,
                    title         TEXT,
                    patient_name  TEXT,
                    provider      TEXT,
                    file_name     TEXT,
                    upload_date   TEXT NOT NULL,
                    report_data   TEXT NOT NULL
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS health_plans (
                    report_id     TEXT PRIMARY KEY,
                    created_at    TEXT NOT NULL,
                    plan_data     TEXT NOT NULL
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS recommendations (
                    report_id     TEXT PRIMARY KEY,
                    created_at    TEXT NOT NULL,
                    data          TEXT NOT NULL
                )
            """)
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reports_user ON reports (user_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reports_type ON reports (type)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reports_status ON reports (status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_reports_upload ON reports (upload_date DESC)")
        logger.info(f"Report store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def save(self, report: MedicalReport) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO reports
                    (id, user_id, type, status, title, patient_name,
                     provider, file_name, upload_date, report_data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                report.id,
                report.user_id,
                report.type.value,
                report.status,
                report.title,
                report.patient_name,
                report.provider,
                report.file_name,
                report.upload_date,
                json.dumps(report.to_dict(), default=str),
            ))
        logger.info(f"Saved report {report.id} ({report.type.value}, {report.status})")

    def get(self, report_id: str) -> Optional[MedicalReport]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT report_data FROM reports WHERE id = ?", (report_id,)
            ).fetchone()
        if row:
            return MedicalReport.from_dict(json.loads(row[0]))
        return None

    def delete(self, report_id: str) -> bool:
        """Delete a report with its plan and recommendations. True if a report row was removed."""
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM reports WHERE id = ?", (report_id,))
            deleted = cur.rowcount > 0
            conn.execute("DELETE FROM health_plans WHERE report_id = ?", (report_id,))
            conn.execute("DELETE FROM recommendations WHERE report_id = ?", (report_id,))
        if deleted:
            logger.info(f"Deleted report {report_id}")
        return deleted

    @staticmethod
    def _where(filters: Optional[ReportFilters]) -> Tuple[str, list]:
        clause = " WHERE 1=1"
        params: list = []
        if not filters:
            return clause, params

        if filters.user_id:
            clause += " AND user_id = ?"
            params.append(filters.user_id)
        for column, value in (('type', filters.type), ('status', filters.status)):
            values = _split(value)
            if values:
                clause += f" AND {column} IN ({', '.join('?' * len(values))})"
                params.extend(values)
        if filters.start_date:
            clause += " AND upload_date >= ?"
            params.append(filters.start_date)
        if filters.end_date:
            end_date = filters.end_date
            # Date-only bounds include the whole day
            if len(end_date) == 10:
                end_date += "T23:59:59.999999"
            clause += " AND upload_date <= ?"
            params.append(end_date)
        if filters.patient_name:
            clause += " AND LOWER(patient_name) = LOWER(?)"
            params.append(filters.patient_name)
        if filters.search:
            clause += " AND (title LIKE ? OR patient_name LIKE ? OR provider LIKE ? OR file_name LIKE ?)"
            pattern = f"%{filters.search}%"
            params.extend([pattern] * 4)
        return clause, params

    def list(
        self,
        filters: Optional[ReportFilters] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[MedicalReport], int]:
        """
        One page of reports, newest upload first.

        Returns:
            (reports on this page, total matching reports)
        """
        page = max(page, 1)
        limit = max(limit, 1)
        clause, params = self._where(filters)

        with self._connect() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM reports{clause}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT report_data FROM reports{clause} ORDER BY upload_date DESC LIMIT ? OFFSET ?",
                params + [limit, (page - 1) * limit],
            ).fetchall()

        return [MedicalReport.from_dict(json.loads(r[0])) for r in rows], total

    def count(self, filters: Optional[ReportFilters] = None) -> int:
        clause, params = self._where(filters)
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM reports{clause}", params).fetchone()[0]

    # ------------------------------------------------------------------
    # Health plans and recommendations
    # ------------------------------------------------------------------
    def save_health_plan(self, report_id: str, plan: Dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO health_plans (report_id, created_at, plan_data) VALUES (?, ?, ?)",
                (report_id, utc_now_iso(), json.dumps(plan, default=str)),
            )

    def get_health_plan(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT plan_data FROM health_plans WHERE report_id = ?", (report_id,)
            ).fetchone()
        return json.loads(row[0]) if row else None

    def save_recommendations(self, report_id: str, recommendations: Dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO recommendations (report_id, created_at, data) VALUES (?, ?, ?)",
                (report_id, utc_now_iso(), json.dumps(recommendations, default=str)),
            )

    def get_recommendations(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM recommendations WHERE report_id = ?", (report_id,)
            ).fetchone()
        return json.loads(row[0]) if row else None
