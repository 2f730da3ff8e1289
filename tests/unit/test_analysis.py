# ============================================================================
# FILE: tests/unit/test_analysis.py
# ============================================================================
"""
Unit tests for AI report analysis and its fallbacks
"""

import asyncio
import json

import pytest

from labsync.ai.analysis import AnalysisOrchestrator, is_valid_analysis
from labsync.ai.fallbacks import FALLBACK_CONFIDENCE, fallback_analysis, fallback_image_analysis
from labsync.constants.report_types import ReportType
from labsync.core.models import ReportAnalysis
from labsync.standardization.standardizer import ReportStandardizer

from conftest import VALID_ANALYSIS, FakeLLMClient


class SlowLLMClient(FakeLLMClient):
    async def generate(self, prompt, max_tokens=None, temperature=None, system_prompt=None):
        await asyncio.sleep(1)
        return await super().generate(prompt)


class NoOCR:
    def extract(self, data):
        return ""


@pytest.fixture
def cbc_report(sample_cbc_text):
    return ReportStandardizer().standardize(sample_cbc_text, ReportType.CBC)


def assert_usable(analysis):
    """Every analysis, AI or fallback, has the fields the UI relies on"""
    assert isinstance(analysis.summary, str) and analysis.summary
    assert isinstance(analysis.findings, list)
    assert isinstance(analysis.recommendations, list)
    assert set(analysis.personalized_recommendations) == {"dietary", "exercise", "lifestyle"}


# ============================================================================
# AI PATH
# ============================================================================

@pytest.mark.asyncio
async def test_analysis_from_ai(fake_client, cbc_report):
    orchestrator = AnalysisOrchestrator(client=fake_client, ocr_extractor=NoOCR())
    outcome = await orchestrator.analyze_outcome(cbc_report)

    assert not outcome.used_fallback
    assert outcome.error is None
    analysis = outcome.analysis
    assert analysis.source == "ai"
    assert analysis.summary == VALID_ANALYSIS["summary"]
    assert analysis.possible_conditions[0].name == "Infection"
    assert analysis.test_results == cbc_report.results
    assert_usable(analysis)

    prompt = fake_client.prompts[0]
    assert "complete blood count" in prompt.lower() or "cbc" in prompt.lower()
    assert "White Blood Cell Count (high)" in prompt


@pytest.mark.asyncio
async def test_fenced_json_is_accepted(cbc_report):
    client = FakeLLMClient(["Here you go:\n```json\n" + json.dumps(VALID_ANALYSIS) + "\n```"])
    analysis = await AnalysisOrchestrator(client=client, ocr_extractor=NoOCR()).analyze(cbc_report)
    assert analysis.source == "ai"


# ============================================================================
# FALLBACK PATH
# ============================================================================

@pytest.mark.asyncio
async def test_no_client_uses_fallback_without_error(cbc_report):
    outcome = await AnalysisOrchestrator(client=None, ocr_extractor=NoOCR()).analyze_outcome(cbc_report)

    assert outcome.used_fallback
    assert outcome.error is None
    assert outcome.analysis.is_fallback
    assert outcome.analysis.ai_confidence_score == FALLBACK_CONFIDENCE
    assert_usable(outcome.analysis)


@pytest.mark.asyncio
async def test_failing_client_falls_back(failing_client, cbc_report):
    outcome = await AnalysisOrchestrator(client=failing_client, ocr_extractor=NoOCR()).analyze_outcome(cbc_report)

    assert failing_client.calls == 1
    assert outcome.used_fallback
    assert "connection refused" in outcome.error
    assert outcome.analysis.summary == "Analysis of cbc report completed."


@pytest.mark.asyncio
async def test_timeout_falls_back(cbc_report):
    orchestrator = AnalysisOrchestrator(client=SlowLLMClient(), timeout=0.05, ocr_extractor=NoOCR())
    outcome = await orchestrator.analyze_outcome(cbc_report)

    assert outcome.used_fallback
    assert "timed out" in outcome.error


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    "I cannot help with that.",
    json.dumps({"summary": "Only a summary"}),
    json.dumps({"summary": 3, "findings": [], "recommendations": []}),
])
async def test_unusable_reply_falls_back(cbc_report, reply):
    outcome = await AnalysisOrchestrator(client=FakeLLMClient([reply]), ocr_extractor=NoOCR()).analyze_outcome(
        cbc_report
    )
    assert outcome.used_fallback
    assert_usable(outcome.analysis)


@pytest.mark.asyncio
async def test_loosely_shaped_reply_is_kept(cbc_report):
    """Wrongly typed optional fields are dropped, the narrative is kept"""
    reply = dict(
        VALID_ANALYSIS,
        findings=[{"finding": "WBC above reference range"}, "Other values normal"],
        testResults=["WBC high"],
        personalizedRecommendations=["eat well"],
    )
    outcome = await AnalysisOrchestrator(
        client=FakeLLMClient([json.dumps(reply)]), ocr_extractor=NoOCR()
    ).analyze_outcome(cbc_report)

    assert not outcome.used_fallback
    assert outcome.analysis.findings == ["WBC above reference range", "Other values normal"]
    assert outcome.analysis.test_results == cbc_report.results
    assert_usable(outcome.analysis)


@pytest.mark.asyncio
async def test_reply_that_cannot_be_read_uses_report_fallback(cbc_report, monkeypatch):
    def broken(data):
        raise ValueError("bad field")

    monkeypatch.setattr(ReportAnalysis, "from_dict", staticmethod(broken))
    outcome = await AnalysisOrchestrator(client=FakeLLMClient(), ocr_extractor=NoOCR()).analyze_outcome(cbc_report)

    assert outcome.used_fallback
    assert "bad field" in outcome.error
    assert outcome.analysis.summary == "Analysis of cbc report completed."
    assert outcome.analysis.test_results == cbc_report.results


def test_fallback_lists_abnormal_results(cbc_report):
    analysis = fallback_analysis(ReportType.CBC, cbc_report.results)

    assert analysis.findings[0] == "Report type: CBC"
    assert "White Blood Cell Count (high)" in analysis.findings[-1]
    assert analysis.personalized_recommendations["dietary"]


def test_is_valid_analysis():
    assert is_valid_analysis(VALID_ANALYSIS)
    assert not is_valid_analysis(None)
    assert not is_valid_analysis({"summary": "x", "findings": "a", "recommendations": []})


# ============================================================================
# IMAGE ANALYSIS
# ============================================================================

@pytest.mark.asyncio
async def test_imaging_upload_gets_image_analysis(fake_client, sample_imaging_text):
    report = ReportStandardizer().standardize(sample_imaging_text, ReportType.IMAGING)
    orchestrator = AnalysisOrchestrator(client=fake_client, ocr_extractor=NoOCR())

    analysis = await orchestrator.analyze(report, image_bytes=b"\x89PNG")

    assert analysis.image_analysis["source"] == "ai"
    assert analysis.image_analysis["reportType"] == "IMAGING"
    assert analysis.multi_modal_confidence_score == 0.9


@pytest.mark.asyncio
async def test_image_analysis_without_client():
    orchestrator = AnalysisOrchestrator(client=None, ocr_extractor=NoOCR())
    result = await orchestrator.analyze_image(b"\x89PNG", ReportType.IMAGING, "Impression: normal")

    assert result["source"] == "fallback"
    assert "Impression: normal" in result["findings"]


def test_fallback_image_salvages_findings():
    result = fallback_image_analysis(
        ReportType.IMAGING, response_text="Findings: small nodule in the left lung. Recommendation: CT"
    )
    assert "small nodule in the left lung." in result["findings"][-1]
