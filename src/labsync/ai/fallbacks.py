# ============================================================================
# src/labsync/ai/fallbacks.py
# ============================================================================
"""
Canned analyses used whenever the AI service is unavailable or its output
cannot be used. Output depends only on the report type and its results.
"""

import logging
import re
from typing import Optional, Sequence

from ..constants.report_types import ReportType
from ..core.models import ReportAnalysis, TestParameter
from .prompts import report_type_label
from .recommendations import fallback_recommendations, personalized_recommendations

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.7
MINIMAL_CONFIDENCE = 0.5


def fallback_analysis(
    report_type: ReportType,
    results: Optional[Sequence[TestParameter]] = None,
) -> ReportAnalysis:
    """Report-type-aware analysis built without the AI service."""
    try:
        results = list(results or [])
        analysis = ReportAnalysis(
            summary=f"Analysis of {report_type_label(report_type)} report completed.",
            findings=[
                f"Report type: {report_type.value}",
                "Analysis performed with limited AI capabilities",
            ],
            recommendations=[
                "Please consult with your healthcare provider for a complete interpretation of these results",
                "Consider scheduling a follow-up appointment to discuss these findings",
            ],
            possible_conditions=[],
            follow_up_recommended=True,
            follow_up_timeframe="As advised by your healthcare provider",
            ai_confidence_score=FALLBACK_CONFIDENCE,
            test_results=results,
            source="fallback",
        )
        abnormal = [p for p in results if p.status.is_abnormal]
        if abnormal:
            analysis.findings.append(
                "Results outside the reference range: "
                + ", ".join(f"{p.name} ({p.status.value})" for p in abnormal)
            )
        analysis.personalized_recommendations = personalized_recommendations(report_type, results)
        return analysis
    except Exception as e:
        logger.error(f"Fallback analysis failed: {e}", exc_info=True)
        return minimal_analysis()


def minimal_analysis() -> ReportAnalysis:
    """Last resort when even the report-type fallback cannot be built."""
    return ReportAnalysis(
        summary="Basic analysis of medical report.",
        findings=["Report analysis completed with limited capabilities"],
        recommendations=["Please consult with your healthcare provider"],
        possible_conditions=[],
        follow_up_recommended=True,
        follow_up_timeframe="As soon as possible",
        ai_confidence_score=MINIMAL_CONFIDENCE,
        personalized_recommendations=fallback_recommendations(),
        source="fallback",
    )


def fallback_image_analysis(
    report_type: ReportType,
    extracted_text: str = "",
    response_text: str = "",
) -> dict:
    """Image analysis dict used when the AI service cannot analyze an image."""
    analysis = {
        "summary": f"Analysis of {report_type_label(report_type)} image completed.",
        "findings": [
            f"Image type: {report_type.value}",
            "Analysis performed with limited AI capabilities",
        ],
        "recommendations": [
            "Please consult with your healthcare provider for a complete interpretation of this image",
            "Consider scheduling a follow-up appointment to discuss these findings",
        ],
        "aiConfidenceScore": FALLBACK_CONFIDENCE,
        "reportType": report_type.value,
        "source": "fallback",
    }

    if extracted_text and extracted_text.strip():
        analysis["findings"].append("Text extracted from image:")
        analysis["findings"].append(extracted_text[:200] + ("..." if len(extracted_text) > 200 else ""))

    # Salvage a findings paragraph from an unparseable reply
    if response_text:
        match = re.search(r'findings?:?\s*(.*?)(?:recommendation|$)', response_text, re.IGNORECASE | re.DOTALL)
        if match and match.group(1).strip():
            findings_text = match.group(1).strip()
            analysis["findings"].append("Potential finding from analysis:")
            analysis["findings"].append(findings_text[:200] + ("..." if len(findings_text) > 200 else ""))

    return analysis
