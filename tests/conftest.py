# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from labsync.ai.client import LLMClient
from labsync.constants.report_types import ParameterStatus, ReportType
from labsync.core.models import MedicalReport, ReferenceRange, TestParameter
from labsync.storage.report_store import ReportStore, new_report_id


VALID_ANALYSIS = {
    "summary": "White cell count is mildly elevated.",
    "findings": ["WBC above reference range", "Other values normal"],
    "recommendations": ["Repeat CBC in 2 weeks"],
    "possibleConditions": [
        {"name": "Infection", "probability": "moderate", "description": "Common cause of leukocytosis"}
    ],
    "followUpRecommended": True,
    "followUpTimeframe": "2 weeks",
    "aiConfidenceScore": 0.9,
}


class FakeLLMClient(LLMClient):
    """Returns canned responses in order and records every prompt."""

    def __init__(self, responses: Optional[List[str]] = None):
        super().__init__()
        self.responses = list(responses or [json.dumps(VALID_ANALYSIS)])
        self.prompts: List[str] = []

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def generate(self, prompt, max_tokens=None, temperature=None, system_prompt=None) -> Dict[str, Any]:
        self.prompts.append(prompt)
        text = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return {"text": text, "model": self.model_name, "inference_time": 0.0}

    async def health_check(self) -> Dict[str, Any]:
        return {"healthy": True, "model": self.model_name, "details": "fake"}


class FailingLLMClient(LLMClient):
    """Every call raises."""

    def __init__(self, error: Exception = None):
        super().__init__()
        self.error = error or RuntimeError("connection refused")
        self.calls = 0

    @property
    def model_name(self) -> str:
        return "failing-model"

    async def generate(self, prompt, max_tokens=None, temperature=None, system_prompt=None) -> Dict[str, Any]:
        self.calls += 1
        raise self.error

    async def health_check(self) -> Dict[str, Any]:
        return {"healthy": False, "model": self.model_name, "details": str(self.error)}


@pytest.fixture
def sample_cbc_text():
    """CBC report with one high value"""
    return """
    COMPLETE BLOOD COUNT (CBC)

    Patient: Jane Doe
    Date: 2024-03-02

    WBC: 12.5 x10^9/L (4.0-11.0)
    RBC: 4.8 x10^12/L (4.2-5.9)
    Hemoglobin: 14.2 g/dL (13.5-17.5)
    Hematocrit: 42.1 % (38.8-50.0)
    Platelets: 250 x10^9/L (150-400)
    """


@pytest.fixture
def sample_lipid_text():
    """Lipid panel with elevated LDL"""
    return """
    LIPID PANEL

    Total Cholesterol: 245 mg/dL (Reference: 125-200)
    HDL Cholesterol: 52 mg/dL (Reference: 40-60)
    LDL Cholesterol: 165 mg/dL (Reference: 0-100)
    Triglycerides: 140 mg/dL (Reference: 0-150)
    """


@pytest.fixture
def sample_metabolic_text():
    """Basic metabolic panel"""
    return """
    COMPREHENSIVE METABOLIC PANEL

    Glucose: 130 mg/dL (70-99)
    Sodium: 140 mmol/L (135-145)
    Potassium: 3.2 mmol/L (3.5-5.1)
    Calcium: 9.5 mg/dL (8.5-10.5)
    Albumin: 4.1 g/dL (3.5-5.0)
    """


@pytest.fixture
def sample_thyroid_text():
    """Thyroid panel"""
    return """
    THYROID FUNCTION PANEL

    TSH: 6.8 mIU/L (0.4-4.0)
    Free T4: 0.9 ng/dL (0.8-1.8)
    """


@pytest.fixture
def sample_urinalysis_text():
    """Urinalysis with categorical results"""
    return """
    URINALYSIS

    Color: Yellow
    Appearance: Clear
    Protein: Negative
    Glucose: Trace
    Nitrite: Positive
    """


@pytest.fixture
def sample_imaging_text():
    """Radiology report text"""
    return """
    RADIOLOGY REPORT

    Examination: Chest X-Ray PA and Lateral

    FINDINGS:
    The lungs are clear without focal consolidation.

    IMPRESSION:
    Normal chest radiograph.
    """


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def failing_client():
    return FailingLLMClient()


@pytest.fixture
def report_store(tmp_path):
    """Report store backed by a throwaway database"""
    return ReportStore(tmp_path / "reports.db")


@pytest.fixture
def make_report():
    """Factory for stored-report fixtures"""
    def _make(
        report_type: ReportType = ReportType.CBC,
        results: Optional[List[TestParameter]] = None,
        **fields,
    ) -> MedicalReport:
        if results is None:
            results = [
                TestParameter(
                    name="White Blood Cell Count",
                    value=12.5,
                    unit="x10^9/L",
                    status=ParameterStatus.HIGH,
                    reference_range=ReferenceRange(4.0, 11.0),
                ),
                TestParameter(
                    name="Hemoglobin",
                    value=14.2,
                    unit="g/dL",
                    status=ParameterStatus.NORMAL,
                    reference_range=ReferenceRange(13.5, 17.5),
                ),
            ]
        defaults = dict(
            id=new_report_id(),
            user_id="anonymous",
            type=report_type,
            title="Blood work",
            status="completed",
            file_name="blood_work.txt",
            patient_name="Jane Doe",
            results=results,
            raw_text="WBC: 12.5 x10^9/L (4.0-11.0)",
        )
        defaults.update(fields)
        return MedicalReport(**defaults)

    return _make


@pytest.fixture
def client_factory():
    """FakeLLMClient class, for tests that need custom responses"""
    return FakeLLMClient
