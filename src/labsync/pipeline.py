# ============================================================================
# src/labsync/pipeline.py
# ============================================================================
"""
Report Processing Pipeline

Pipeline Flow:
    Upload → Detect file type → Acquire text → Classify (or caller override)
           → Standardize → Analyze → Persist

1. File type from extension and MIME type; UNKNOWN is rejected
2. Text from PDF backends, OCR, DICOM summary or UTF-8 decoding
3. Report type from the classifier unless the caller names one
4. Parameters through the extraction cascade (DICOM metadata is used as-is)
5. AI analysis, or the deterministic fallback when the AI call fails
6. Report saved with status completed / completed_with_errors
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

from .ai.analysis import AnalysisOrchestrator
from .constants.report_types import FileType, ReportType
from .core.models import MedicalReport, ReportStatus, UploadedFile
from .processing.file_type import detect_file_type
from .processing.text_acquirer import TextAcquirer
from .standardization.standardizer import ReportStandardizer
from .storage.report_store import ReportStore, new_report_id
from .utils.exceptions import UnsupportedFileTypeError, ValidationError
from .utils.logging import log_performance, report_context

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "anonymous"


@dataclass
class ReportMetadata:
    """Caller supplied fields sent alongside an upload."""
    patient_name: str = ""
    patient_dob: str = ""
    provider: str = ""
    report_date: str = ""
    notes: str = ""
    report_type: str = ""
    title: str = ""
    user_id: str = DEFAULT_USER_ID


class ReportPipeline:
    """Runs an upload through extraction and analysis and stores the result."""

    def __init__(
        self,
        acquirer: Optional[TextAcquirer] = None,
        standardizer: Optional[ReportStandardizer] = None,
        orchestrator: Optional[AnalysisOrchestrator] = None,
        store: Optional[ReportStore] = None,
    ):
        self.acquirer = acquirer or TextAcquirer()
        self.standardizer = standardizer or ReportStandardizer()
        self.orchestrator = orchestrator or AnalysisOrchestrator()
        self.store = store

    @log_performance(logger, "Report processing")
    async def process(self, upload: UploadedFile, metadata: Optional[ReportMetadata] = None) -> MedicalReport:
        """
        Process one upload end to end.

        Raises:
            ValidationError: empty upload
            UnsupportedFileTypeError: extension and MIME type both unrecognised
        """
        metadata = metadata or ReportMetadata()
        if not upload.content:
            raise ValidationError("Uploaded file is empty", details={"file_name": upload.name})

        file_type = detect_file_type(upload.name, upload.mime_type)
        if file_type == FileType.UNKNOWN:
            raise UnsupportedFileTypeError(upload.name, upload.mime_type)

        with report_context(file_name=upload.name, file_type=file_type.value):
            acquired = await asyncio.to_thread(self.acquirer.acquire, upload, file_type)
            if acquired.degraded:
                logger.warning(f"Text acquisition degraded ({acquired.method}) for {upload.name}")

            report_type = ReportType.parse(metadata.report_type) or acquired.report_type
            standardized = self.standardizer.standardize(
                acquired.text,
                report_type=report_type,
                file_name=upload.name,
                file_type=file_type,
                parameters=acquired.parameters,
            )

            report = MedicalReport(
                id=new_report_id(),
                user_id=metadata.user_id or DEFAULT_USER_ID,
                type=report_type,
                title=metadata.title or PurePath(upload.name).stem,
                status=ReportStatus.PROCESSING,
                file_name=upload.name,
                file_type=file_type,
                patient_name=metadata.patient_name,
                patient_dob=metadata.patient_dob,
                provider=metadata.provider,
                report_date=metadata.report_date,
                notes=metadata.notes,
                results=list(standardized.results),
                raw_text=standardized.text,
            )
            logger.info(
                f"Report {report.id}: {report_type.value} via {acquired.method}, "
                f"{len(report.results)} parameters"
            )

            image_bytes = upload.content if file_type == FileType.IMAGE else None
            outcome = await self.orchestrator.analyze_outcome(standardized, image_bytes=image_bytes)
            report.analysis = outcome.analysis
            report.status = (
                ReportStatus.COMPLETED_WITH_ERRORS if outcome.error else ReportStatus.COMPLETED
            )
            if outcome.error:
                logger.warning(f"Report {report.id} analysed with fallback: {outcome.error}")
            report.touch()

            if self.store is not None:
                self.store.save(report)

        return report
