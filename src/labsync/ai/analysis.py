# ============================================================================
# src/labsync/ai/analysis.py
# ============================================================================
"""
Report Analysis

Asks the LLM for a structured analysis of a standardized report:

1. Build the prompt (report type, standardized data, results, raw text excerpt)
2. generate() under a hard timeout
3. Extract JSON (fences, surrounding prose, json_repair for malformed objects)
4. Validate: summary is a string, findings and recommendations are lists
5. Attach personalized recommendations

Any failure along the way (no client, network error, timeout, bad JSON,
missing fields) returns the canned analysis for the report type instead.
analyze() never raises.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import ai_settings
from ..constants.report_types import ReportType
from ..core.models import ReportAnalysis, StandardizedReport
from ..extractors.ocr_extractor import OCRExtractor
from ..utils.exceptions import AITimeoutError, InvalidAIResponseError
from .client import LLMClient
from .fallbacks import fallback_analysis, fallback_image_analysis, minimal_analysis
from .prompts import IMAGE_CONFIDENCE, build_analysis_prompt, build_image_prompt
from .recommendations import personalized_recommendations


@dataclass
class AnalysisOutcome:
    """Analysis plus whether it came from the fallback path."""
    analysis: ReportAnalysis
    used_fallback: bool
    error: Optional[str] = None


def is_valid_analysis(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("summary"), str)
        and isinstance(data.get("findings"), list)
        and isinstance(data.get("recommendations"), list)
    )


class AnalysisOrchestrator:
    """Runs report and image analysis against an injected LLM client."""

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        timeout: Optional[float] = None,
        ocr_extractor: Optional[OCRExtractor] = None,
    ):
        self.client = client
        self.timeout = timeout or ai_settings.AI_REQUEST_TIMEOUT
        self.ocr_extractor = ocr_extractor or OCRExtractor()
        self.logger = logging.getLogger(__name__)

    async def analyze(self, report: StandardizedReport, image_bytes: Optional[bytes] = None) -> ReportAnalysis:
        outcome = await self.analyze_outcome(report, image_bytes)
        return outcome.analysis

    async def analyze_outcome(
        self,
        report: StandardizedReport,
        image_bytes: Optional[bytes] = None,
    ) -> AnalysisOutcome:
        try:
            outcome = await self._analyze_report(report)
        except Exception as e:
            self.logger.error(f"Report analysis failed unexpectedly: {e}", exc_info=True)
            outcome = AnalysisOutcome(minimal_analysis(), used_fallback=True, error=str(e))

        if report.report_type == ReportType.IMAGING and image_bytes:
            image_result = await self.analyze_image(image_bytes, report.report_type, report.text)
            outcome.analysis.image_analysis = image_result
            outcome.analysis.multi_modal_confidence_score = self._combined_confidence(
                outcome.analysis.ai_confidence_score, image_result
            )

        return outcome

    async def _analyze_report(self, report: StandardizedReport) -> AnalysisOutcome:
        if self.client is None:
            self.logger.warning("No AI client configured, using fallback analysis")
            return AnalysisOutcome(
                fallback_analysis(report.report_type, report.results),
                used_fallback=True,
            )

        prompt = build_analysis_prompt(report)
        try:
            data = await self._generate_json(prompt)
            analysis = ReportAnalysis.from_dict(data)
        except Exception as e:
            self.logger.warning(f"AI analysis unavailable for {report.report_type.value}, using fallback: {e}")
            return AnalysisOutcome(
                fallback_analysis(report.report_type, report.results),
                used_fallback=True,
                error=str(e),
            )

        analysis.source = "ai"
        analysis.test_results = list(report.results)
        analysis.personalized_recommendations = personalized_recommendations(
            report.report_type, report.results
        )
        self.logger.info(f"AI analysis completed for {report.report_type.value} report")
        return AnalysisOutcome(analysis, used_fallback=False)

    async def _generate_json(self, prompt: str) -> Dict[str, Any]:
        """Call the client and return a validated analysis dict."""
        try:
            response = await asyncio.wait_for(self.client.generate(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise AITimeoutError(f"AI request timed out after {self.timeout}s")

        text = (response or {}).get("text", "")
        data = self.client.extract_json(text)
        if not is_valid_analysis(data):
            raise InvalidAIResponseError(
                "AI response missing summary, findings or recommendations",
                details={"response": (text or "")[:200]},
            )
        return data

    async def analyze_image(
        self,
        image_bytes: bytes,
        report_type: ReportType = ReportType.IMAGING,
        extracted_text: str = "",
        analysis_type: str = "standard",
    ) -> Dict[str, Any]:
        """
        Analyze an image through its OCR text. Returns the fallback dict on
        any failure.
        """
        if not image_bytes:
            return fallback_image_analysis(report_type)

        if not extracted_text:
            try:
                extracted_text = await asyncio.to_thread(self.ocr_extractor.extract, image_bytes)
            except Exception as e:
                self.logger.warning(f"OCR failed during image analysis: {e}")
                extracted_text = ""

        if self.client is None:
            return fallback_image_analysis(report_type, extracted_text)

        prompt = build_image_prompt(report_type, extracted_text, analysis_type)
        response_text = ""
        try:
            response = await asyncio.wait_for(self.client.generate(prompt), timeout=self.timeout)
            response_text = (response or {}).get("text", "")
            data = self.client.extract_json(response_text)
        except Exception as e:
            self.logger.warning(f"AI image analysis failed, using fallback: {e}")
            return fallback_image_analysis(report_type, extracted_text)

        if not is_valid_analysis(data):
            self.logger.warning("Invalid image analysis structure, using fallback")
            return fallback_image_analysis(report_type, extracted_text, response_text)

        data.setdefault("aiConfidenceScore", IMAGE_CONFIDENCE.get(analysis_type, IMAGE_CONFIDENCE["standard"]))
        data["reportType"] = report_type.value
        data["source"] = "ai"
        return data

    @staticmethod
    def _combined_confidence(report_confidence: float, image_result: Dict[str, Any]) -> float:
        try:
            image_confidence = float(image_result.get("aiConfidenceScore", report_confidence))
        except (TypeError, ValueError):
            image_confidence = report_confidence
        return round((report_confidence + image_confidence) / 2, 3)
