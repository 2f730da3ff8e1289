# ============================================================================
# FILE: tests/unit/test_report_classifier.py
# ============================================================================
"""
Unit tests for report classification
"""

import pytest

from labsync.classifiers.report_classifier import (
    MICROBIOLOGY,
    ReportClassifier,
    guess_report_type,
)
from labsync.constants.report_types import ReportType


@pytest.fixture
def classifier():
    return ReportClassifier()


def test_cbc_report(classifier, sample_cbc_text):
    result = classifier.classify(sample_cbc_text)

    assert result.report_type == ReportType.CBC
    assert result.method == "keyword_score"
    # complete blood count + cbc + wbc + rbc + hemoglobin/hematocrit/platelets bonus
    assert result.scores[ReportType.CBC.value] == 9.0
    assert result.confidence > 0.5


def test_ldl_and_hdl_mean_lipid_panel(classifier):
    result = classifier.classify("LDL 130 mg/dL\nHDL 45 mg/dL")
    assert result.report_type == ReportType.LIPID_PANEL
    assert result.scores[ReportType.LIPID_PANEL.value] == 3.0


@pytest.mark.parametrize("fixture_name,expected", [
    ("sample_lipid_text", ReportType.LIPID_PANEL),
    ("sample_metabolic_text", ReportType.METABOLIC_PANEL),
    ("sample_thyroid_text", ReportType.THYROID_PANEL),
    ("sample_urinalysis_text", ReportType.URINALYSIS),
    ("sample_imaging_text", ReportType.IMAGING),
])
def test_sample_reports(classifier, request, fixture_name, expected):
    text = request.getfixturevalue(fixture_name)
    assert classifier.classify(text).report_type == expected


def test_urinalysis_beats_cell_counts(classifier):
    """WBC/RBC lines inside a urinalysis do not make it a CBC"""
    text = "URINALYSIS\nWBC 2-5 /hpf\nRBC 0-2 /hpf"
    result = classifier.classify(text)
    assert result.report_type == ReportType.URINALYSIS


def test_ties_follow_priority(classifier):
    """CBC and thyroid both score 2; CBC is listed first"""
    result = classifier.classify("cbc and thyroid")
    assert result.scores[ReportType.CBC.value] == result.scores[ReportType.THYROID_PANEL.value]
    assert result.report_type == ReportType.CBC


def test_microbiology_maps_to_other(classifier):
    result = classifier.classify("MICROBIOLOGY REPORT\nCulture and sensitivity: no growth")
    assert result.category == MICROBIOLOGY
    assert result.report_type == ReportType.OTHER


def test_file_name_contributes_to_score(classifier):
    result = classifier.classify("Findings: unremarkable", file_name="knee-mri.txt")
    assert result.report_type == ReportType.IMAGING


def test_heuristic_fallback_when_nothing_scores(classifier):
    result = classifier.classify("random notes without keywords", file_name="lipid_results.pdf")

    assert result.report_type == ReportType.LIPID_PANEL
    assert result.method == "heuristic"
    assert result.confidence == 0.0


def test_default_is_other(classifier):
    result = classifier.classify("hello world")
    assert result.report_type == ReportType.OTHER


def test_guess_report_type_order():
    assert guess_report_type("patient_ecg.pdf") == ReportType.OTHER
    assert guess_report_type("", "chemistry results") == ReportType.METABOLIC_PANEL
    assert guess_report_type("", "the tsh was measured") == ReportType.THYROID_PANEL
    assert guess_report_type("", "") == ReportType.OTHER


def test_to_dict_shape(classifier, sample_cbc_text):
    data = classifier.classify(sample_cbc_text).to_dict()
    assert data["reportType"] == "CBC"
    assert data["method"] == "keyword_score"
    assert set(data["scores"]) >= {"CBC", "LIPID_PANEL", MICROBIOLOGY}
