# ============================================================================
# src/labsync/standardization/standardizer.py
# ============================================================================
"""
Report Standardizer

Turns raw report text into a StandardizedReport:
- caller-supplied parameters are kept as they are
- otherwise the extraction cascade runs for the report type
- panels with a known parameter set get "not available" placeholders

Extraction errors never propagate; they are logged and the report comes
back with no results.
"""

import logging
from typing import List, Optional, Sequence

from ..constants.report_types import FileType, ReportType
from ..core.models import StandardizedReport, TestParameter
from ..extraction.parameter_extractor import ParameterExtractor
from ..extraction.placeholders import add_missing_parameters


class ReportStandardizer:

    def __init__(self, extractor: Optional[ParameterExtractor] = None):
        self.extractor = extractor or ParameterExtractor()
        self.logger = logging.getLogger(__name__)

    def standardize(
        self,
        text: str,
        report_type: ReportType = ReportType.OTHER,
        file_name: str = "",
        file_type: Optional[FileType] = None,
        parameters: Optional[Sequence[TestParameter]] = None,
    ) -> StandardizedReport:
        if parameters:
            results = list(parameters)
        else:
            results = self._extract(text, report_type)

        return StandardizedReport(
            results=results,
            text=text or "",
            file_name=file_name,
            file_type=file_type,
            report_type=report_type,
        )

    def _extract(self, text: str, report_type: ReportType) -> List[TestParameter]:
        try:
            extracted = self.extractor.extract(text or "", report_type)
        except Exception as e:
            self.logger.error(f"Parameter extraction failed for {report_type.value}: {e}", exc_info=True)
            return []

        return add_missing_parameters(extracted, report_type)
