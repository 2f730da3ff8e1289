# ============================================================================
# FILE: tests/integration/test_api.py
# ============================================================================
"""
End-to-end tests through the HTTP API
"""

import pytest
from fastapi.testclient import TestClient

from labsync.api.dependencies import get_llm_client, get_store
from labsync.api.main import app
from labsync.storage import new_report_id

from conftest import FailingLLMClient, FakeLLMClient

pytestmark = pytest.mark.integration

CBC_UPLOAD = b"COMPLETE BLOOD COUNT\nWBC: 12.5 x10^9/L (4.0-11.0)\nHemoglobin: 14.2 g/dL (13.5-17.5)\n"


@pytest.fixture
def llm():
    """Client used by the app; tests may swap it"""
    return {"client": None}


@pytest.fixture
def api(report_store, llm):
    app.dependency_overrides[get_store] = lambda: report_store
    app.dependency_overrides[get_llm_client] = lambda: llm["client"]
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(api, content=CBC_UPLOAD, name="blood_work.txt", mime="text/plain", **form):
    return api.post("/api/reports", files={"file": (name, content, mime)}, data=form)


# ============================================================================
# HEALTH / ENVELOPE
# ============================================================================

def test_health(api):
    response = api.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "healthy"
    assert body["data"]["ai"] == {"configured": False, "model": None}


def test_health_reports_model(api, llm):
    llm["client"] = FakeLLMClient()
    assert api.get("/api/health").json()["data"]["ai"]["model"] == "fake-model"


def test_unknown_route_uses_envelope(api):
    response = api.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False


# ============================================================================
# REPORTS
# ============================================================================

def test_upload_plain_text_cbc(api):
    """Test the full pipeline from multipart upload to stored report"""
    response = upload(api, patientName="Jane Doe", reportDate="2024-03-02")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Report uploaded and processed successfully"

    report = body["data"]
    assert report["status"] in ("completed", "completed_with_errors")
    assert report["type"] == "CBC"
    assert report["patientName"] == "Jane Doe"
    assert report["userId"] == "anonymous"
    wbc = next(r for r in report["results"] if r["name"] == "White Blood Cell Count")
    assert wbc["value"] == 12.5
    assert wbc["status"] == "high"
    assert report["analysis"]["source"] == "fallback"

    fetched = api.get(f"/api/reports/{report['id']}").json()["data"]
    assert fetched["id"] == report["id"]
    assert fetched["results"] == report["results"]


def test_upload_with_failing_ai(api, llm):
    llm["client"] = FailingLLMClient()
    report = upload(api).json()["data"]
    assert report["status"] == "completed_with_errors"


def test_upload_with_ai(api, llm):
    llm["client"] = FakeLLMClient()
    report = upload(api).json()["data"]

    assert report["status"] == "completed"
    assert report["analysis"]["source"] == "ai"


def test_upload_report_type_override(api):
    report = upload(api, reportType="LIPID_PANEL").json()["data"]
    assert report["type"] == "LIPID_PANEL"


def test_upload_unsupported_file(api):
    response = upload(api, content=b"PK\x03\x04", name="archive.zip", mime="application/zip")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Unsupported file type"
    assert body["error"] == "UnsupportedFileTypeError"


def test_upload_empty_file(api):
    response = upload(api, content=b"")
    assert response.status_code == 400


def test_upload_without_file(api):
    response = api.post("/api/reports", data={"patientName": "x"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request"


def test_list_reports(api):
    upload(api, name="first.txt")
    upload(api, name="second.txt", reportType="LIPID_PANEL")

    data = api.get("/api/reports", params={"limit": 1}).json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert len(data["reports"]) == 1

    filtered = api.get("/api/reports", params={"type": "LIPID_PANEL"}).json()["data"]
    assert [r["fileName"] for r in filtered["reports"]] == ["second.txt"]

    searched = api.get("/api/reports", params={"search": "first"}).json()["data"]
    assert searched["pagination"]["total"] == 1


def test_get_report_invalid_id(api):
    response = api.get("/api/reports/not-an-id")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid report ID"


def test_get_report_missing(api):
    response = api.get(f"/api/reports/{new_report_id()}")
    assert response.status_code == 404
    assert response.json()["error"] == "ReportNotFoundError"


def test_delete_report(api):
    report_id = upload(api).json()["data"]["id"]

    response = api.delete(f"/api/reports/{report_id}")
    assert response.status_code == 200
    assert response.json()["data"] == {"id": report_id}

    assert api.get(f"/api/reports/{report_id}").status_code == 404
    assert api.delete(f"/api/reports/{report_id}").status_code == 404


# ============================================================================
# CLASSIFY / STANDARDIZE
# ============================================================================

def test_classify(api, sample_lipid_text):
    data = api.post("/api/classify", json={"text": sample_lipid_text}).json()["data"]
    assert data["reportType"] == "LIPID_PANEL"


def test_classify_requires_text(api):
    response = api.post("/api/classify", json={"text": "   "})
    assert response.status_code == 400
    assert response.json()["message"] == "Text is required"


def test_standardize_classifies_when_type_missing(api, sample_thyroid_text):
    data = api.post("/api/standardize", json={"text": sample_thyroid_text}).json()["data"]

    assert data["reportType"] == "THYROID_PANEL"
    assert [r["name"] for r in data["results"]] == ["TSH", "Free T4"]
    assert data["parameters"] == data["results"]


def test_standardize_with_supplied_parameters(api):
    body = {
        "text": "anything",
        "reportType": "CBC",
        "parameters": [{"name": "Hemoglobin", "value": 9.1, "unit": "g/dL", "status": "low"}],
    }
    data = api.post("/api/standardize", json=body).json()["data"]

    assert data["results"] == [
        {"name": "Hemoglobin", "value": 9.1, "unit": "g/dL", "status": "low", "referenceRange": None}
    ]


# ============================================================================
# IMAGE ANALYSIS
# ============================================================================

def test_image_analysis_rejects_non_images(api):
    response = api.post("/api/image-analysis", files={"image": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400


def test_image_analysis_falls_back_without_ai(api):
    response = api.post("/api/image-analysis", files={"image": ("chest.png", b"not really png", "image/png")})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["source"] == "fallback"
    assert data["reportType"] == "IMAGING"


# ============================================================================
# RECOMMENDATIONS / HEALTH PLAN
# ============================================================================

def test_recommendations_from_results(api):
    body = {
        "reportType": "LIPID_PANEL",
        "results": [{"name": "LDL Cholesterol", "value": 165, "status": "high"}],
        "patientDOB": "1970-05-01",
        "medications": ["atorvastatin"],
    }
    data = api.post("/api/recommendations", json=body).json()["data"]

    recs = data["recommendations"]
    assert any("cholesterol-lowering" in n for n in recs["medicationNotes"])
    assert recs["followUpSchedule"].startswith("Schedule a follow-up lipid panel")


def test_recommendations_require_type_and_results(api):
    response = api.post("/api/recommendations", json={"reportType": "CBC"})
    assert response.status_code == 400


def test_recommendations_saved_for_report(api):
    report_id = upload(api).json()["data"]["id"]

    created = api.post("/api/recommendations", json={"reportId": report_id}).json()["data"]
    fetched = api.get("/api/recommendations", params={"reportId": report_id}).json()["data"]

    assert fetched["recommendations"] == created["recommendations"]


@pytest.mark.parametrize("report_id,status", [
    ("../etc/passwd", 400),
    (new_report_id(), 404),
])
def test_recommendations_with_results_need_known_report(api, report_store, report_id, status):
    body = {
        "reportId": report_id,
        "reportType": "CBC",
        "results": [{"name": "Hemoglobin", "value": 14.2, "status": "normal"}],
    }
    response = api.post("/api/recommendations", json=body)

    assert response.status_code == status
    assert response.json()["success"] is False
    assert report_store.get_recommendations(report_id) is None


def test_health_plan(api, llm):
    report_id = upload(api).json()["data"]["id"]
    llm["client"] = FakeLLMClient(["Keep an eye on your white cell count."])

    plan = api.post("/api/health-plan", json={"reportId": report_id}).json()["data"]["healthPlan"]
    assert plan["summary"] == "Keep an eye on your white cell count."

    stored = api.get("/api/health-plan", params={"reportId": report_id}).json()["data"]["healthPlan"]
    assert stored == plan


def test_health_plan_generated_on_first_get(api):
    report_id = upload(api).json()["data"]["id"]
    data = api.get("/api/health-plan", params={"reportId": report_id}).json()["data"]
    assert data["healthPlan"]["goals"]


def test_health_plan_missing_report(api):
    response = api.post("/api/health-plan", json={"reportId": new_report_id()})
    assert response.status_code == 404


# ============================================================================
# TRENDS
# ============================================================================

def test_trends(api):
    upload(api, CBC_UPLOAD, reportDate="2024-01-01", patientName="Jane Doe")
    upload(
        api, CBC_UPLOAD.replace(b"12.5", b"9.5"), reportDate="2024-04-01", patientName="Jane Doe"
    )

    data = api.get(
        "/api/trends", params={"testName": "White Blood Cell Count", "patientName": "Jane Doe"}
    ).json()["data"]

    assert data["dataPoints"] == 2
    assert data["statistics"]["direction"] == "decreasing"
    assert data["statistics"]["percentChange"] == "-24.00%"


def test_trends_insufficient_data(api):
    upload(api)
    response = api.get("/api/trends", params={"testName": "White Blood Cell Count"})

    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient data for trend analysis"


def test_trends_requires_test_name(api):
    assert api.get("/api/trends").status_code == 400


# ============================================================================
# VOICE / Q&A
# ============================================================================

def test_voice_short_audio(api):
    data = api.post("/api/voice", files={"audio": ("a.webm", b"\x00" * 10, "audio/webm")}).json()["data"]
    assert data["confidence"] == 0.0
    assert "response" not in data


def test_voice_with_report(api, llm):
    report_id = upload(api).json()["data"]["id"]
    llm["client"] = FakeLLMClient(["Your results look mostly normal."])

    data = api.post(
        "/api/voice",
        files={"audio": ("a.webm", b"\x00" * 2000, "audio/webm")},
        data={"reportId": report_id},
    ).json()["data"]

    assert data["confidence"] == 0.92
    assert data["response"]["answer"] == "Your results look mostly normal."


def test_ask_question(api, llm):
    report_id = upload(api).json()["data"]["id"]
    client = FakeLLMClient(["WBC is slightly high.\n\nFollow-up Questions:\n1. Should I retest?"])
    llm["client"] = client

    data = api.post("/api/ai", json={"question": "Is my WBC ok?", "reportId": report_id}).json()["data"]

    assert data["answer"] == "WBC is slightly high."
    assert data["suggestedFollowUps"] == ["Should I retest?"]
    assert "White Blood Cell Count" in client.prompts[-1]


def test_ask_without_ai(api):
    data = api.post("/api/ai", json={"question": "What is TSH?"}).json()["data"]
    assert data["confidence"] == 0.5


def test_ask_requires_question(api):
    assert api.post("/api/ai", json={"question": " "}).status_code == 400
