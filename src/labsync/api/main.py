# ============================================================================
# src/labsync/api/main.py
# ============================================================================
"""
FastAPI Backend for LabSync

REST API for report upload and retrieval, classification, standardization,
AI analysis, recommendations, health plans, trends, Q&A and voice input.

Every endpoint answers with the envelope {success, data, message, error}.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..ai.analysis import AnalysisOrchestrator
from ..ai.assistant import QuestionAssistant
from ..ai.client import LLMClient, create_client
from ..ai.recommendations import HealthPlanService
from ..ai.trends import collect_points, compute_trend
from ..ai.voice import transcribe
from ..classifiers.report_classifier import ReportClassifier
from ..config import base_settings, logging_settings
from ..constants.report_types import FileType, ReportType
from ..core.config import get_config
from ..core.models import MedicalReport, ReportStatus, TestParameter, UploadedFile
from ..pipeline import ReportMetadata, ReportPipeline
from ..processing.file_type import detect_file_type
from ..standardization.standardizer import ReportStandardizer
from ..storage.report_store import ReportFilters, ReportStore, is_valid_report_id
from ..utils.exceptions import LabSyncError, ReportNotFoundError, ValidationError
from ..utils.logging import setup_logging
from .dependencies import (
    get_assistant,
    get_classifier,
    get_health_plan_service,
    get_llm_client,
    get_orchestrator,
    get_pipeline,
    get_standardizer,
    get_store,
)
from .schemas import (
    ApiResponse,
    ClassifyRequest,
    HealthPlanRequest,
    QuestionRequest,
    RecommendationsRequest,
    StandardizeRequest,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and open the LLM client for the lifetime of the app."""
    setup_logging(
        level=logging_settings.LOG_LEVEL,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_JSON,
    )
    app.state.llm_client = create_client()
    if app.state.llm_client is None:
        logger.warning("GROQ_API_KEY not set, AI analysis will use deterministic fallbacks")
    try:
        yield
    finally:
        if app.state.llm_client is not None:
            await app.state.llm_client.close()


app = FastAPI(
    title="LabSync API",
    description="Medical lab report ingestion, standardization and AI analysis",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Envelope and error handlers
# ============================================================================

def envelope(body: ApiResponse) -> Dict[str, Any]:
    # Unset envelope fields are dropped, nulls inside data are kept
    return {key: value for key, value in body.model_dump().items() if value is not None}


def ok(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body = ApiResponse(success=True, data=data, message=message)
    return JSONResponse(status_code=status_code, content=envelope(body))


def fail(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    body = ApiResponse(success=False, message=message, error=error)
    return JSONResponse(status_code=status_code, content=envelope(body))


@app.exception_handler(LabSyncError)
async def labsync_error_handler(request: Request, exc: LabSyncError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.to_dict()}")
    return fail(exc.status_code, exc.message, exc.__class__.__name__)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}"
        for e in exc.errors()
    ]
    return fail(400, "Invalid request", "; ".join(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return fail(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return fail(500, "Internal server error", exc.__class__.__name__)


# ============================================================================
# Helpers
# ============================================================================

def load_report(store: ReportStore, report_id: str) -> MedicalReport:
    """
    Raises:
        ValidationError: malformed id
        ReportNotFoundError: no report with this id
    """
    if not is_valid_report_id(report_id):
        raise ValidationError("Invalid report ID", details={"report_id": report_id})
    report = store.get(report_id)
    if report is None:
        raise ReportNotFoundError(report_id)
    return report


def calculate_age(dob: str) -> Optional[int]:
    try:
        born = date.fromisoformat(dob[:10])
    except (TypeError, ValueError):
        return None
    today = date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


async def read_upload(upload: UploadFile) -> UploadedFile:
    content = await upload.read()
    if len(content) > base_settings.UPLOAD_MAX_BYTES:
        raise ValidationError(
            "File too large",
            details={"size": len(content), "max_bytes": base_settings.UPLOAD_MAX_BYTES},
        )
    return UploadedFile(
        name=upload.filename or "upload",
        mime_type=upload.content_type or "",
        content=content,
    )


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/api/health")
async def health(client: Optional[LLMClient] = Depends(get_llm_client)):
    """Liveness plus whether an AI client is configured."""
    return ok({
        "status": "healthy",
        "service": "LabSync API",
        "version": __version__,
        "ai": {
            "configured": client is not None,
            "model": client.model_name if client is not None else None,
        },
    })


@app.post("/api/reports", status_code=201)
async def upload_report(
    file: UploadFile = File(...),
    patient_name: str = Form("", alias="patientName"),
    patient_dob: str = Form("", alias="patientDob"),
    provider: str = Form(""),
    report_date: str = Form("", alias="reportDate"),
    notes: str = Form(""),
    report_type: str = Form("", alias="reportType"),
    pipeline: ReportPipeline = Depends(get_pipeline),
):
    """Upload a report file; it is processed and stored before the response."""
    upload = await read_upload(file)
    metadata = ReportMetadata(
        patient_name=patient_name,
        patient_dob=patient_dob,
        provider=provider,
        report_date=report_date,
        notes=notes,
        report_type=report_type,
        user_id=get_config().default_user_id,
    )
    report = await pipeline.process(upload, metadata)
    return ok(report.to_dict(), "Report uploaded and processed successfully", status_code=201)


@app.get("/api/reports")
async def list_reports(
    type: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    store: ReportStore = Depends(get_store),
):
    filters = ReportFilters(
        type=type,
        status=status,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    reports, total = store.list(filters, page=page, limit=limit)
    return ok({
        "reports": [r.to_dict() for r in reports],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    })


@app.get("/api/reports/{report_id}")
async def get_report(report_id: str, store: ReportStore = Depends(get_store)):
    return ok(load_report(store, report_id).to_dict())


@app.delete("/api/reports/{report_id}")
async def delete_report(report_id: str, store: ReportStore = Depends(get_store)):
    if not is_valid_report_id(report_id):
        raise ValidationError("Invalid report ID", details={"report_id": report_id})
    if not store.delete(report_id):
        raise ReportNotFoundError(report_id)
    return ok({"id": report_id}, "Report deleted successfully")


@app.post("/api/classify")
async def classify(body: ClassifyRequest, classifier: ReportClassifier = Depends(get_classifier)):
    if not body.text.strip():
        raise ValidationError("Text is required")
    return ok(classifier.classify(body.text, body.file_name).to_dict())


@app.post("/api/standardize")
async def standardize(
    body: StandardizeRequest,
    classifier: ReportClassifier = Depends(get_classifier),
    standardizer: ReportStandardizer = Depends(get_standardizer),
):
    if not body.text.strip():
        raise ValidationError("Text is required")

    report_type = ReportType.parse(body.report_type)
    if report_type is None:
        report_type = classifier.classify(body.text, body.file_name).report_type
    parameters = [TestParameter.from_dict(p) for p in body.parameters or []]

    report = standardizer.standardize(
        body.text,
        report_type=report_type,
        file_name=body.file_name,
        file_type=detect_file_type(body.file_name) if body.file_name else FileType.TEXT,
        parameters=parameters,
    )
    return ok(report.to_dict())


@app.post("/api/image-analysis")
async def image_analysis(
    image: UploadFile = File(...),
    report_type: str = Form("IMAGING", alias="reportType"),
    analysis_type: str = Form("standard", alias="analysisType"),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Analyze a medical image. Falls back to the canned analysis on any AI failure."""
    upload = await read_upload(image)
    if detect_file_type(upload.name, upload.mime_type) != FileType.IMAGE:
        raise ValidationError("An image file is required", details={"file_name": upload.name})

    result = await orchestrator.analyze_image(
        upload.content,
        ReportType.parse(report_type) or ReportType.IMAGING,
        analysis_type=analysis_type,
    )
    return ok(result)


def _recommendation_report(body: RecommendationsRequest, store: ReportStore) -> MedicalReport:
    # Supplied results are only saved against a report that exists
    stored = load_report(store, body.report_id) if body.report_id else None
    if stored is not None and not body.results:
        return stored

    report_type = ReportType.parse(body.report_type)
    if report_type is None or body.results is None:
        raise ValidationError("Report type and results array are required")
    return MedicalReport(
        id=body.report_id or "",
        user_id=get_config().default_user_id,
        type=report_type,
        title=f"{report_type.display_name} Report",
        status=ReportStatus.COMPLETED,
        patient_name=body.patient_name or "",
        results=[TestParameter.from_dict(r) for r in body.results],
    )


@app.post("/api/recommendations")
async def create_recommendations(
    body: RecommendationsRequest,
    store: ReportStore = Depends(get_store),
    service: HealthPlanService = Depends(get_health_plan_service),
):
    report = _recommendation_report(body, store)
    patient_history: Dict[str, Any] = {
        "age": calculate_age(body.patient_dob) if body.patient_dob else None,
        "conditions": body.previous_conditions,
        "medications": body.medications,
        "lifestyle": body.lifestyle,
    }
    recommendations = await service.generate_health_plan(report, patient_history)
    if body.report_id:
        store.save_recommendations(body.report_id, recommendations)
    return ok({"recommendations": recommendations, "reportId": body.report_id})


@app.get("/api/recommendations")
async def get_recommendations(
    report_id: Optional[str] = Query(None, alias="reportId"),
    store: ReportStore = Depends(get_store),
):
    if not report_id:
        raise ValidationError("Report ID is required")
    recommendations = store.get_recommendations(report_id)
    if recommendations is None:
        raise ReportNotFoundError(report_id)
    return ok({"recommendations": recommendations, "reportId": report_id})


@app.post("/api/health-plan")
async def create_health_plan(
    body: HealthPlanRequest,
    store: ReportStore = Depends(get_store),
    service: HealthPlanService = Depends(get_health_plan_service),
):
    report = load_report(store, body.report_id)
    patient_data = dict(body.patient_data or {})
    if "age" not in patient_data and report.patient_dob:
        patient_data["age"] = calculate_age(report.patient_dob)

    plan = await service.generate_health_plan(report, patient_data)
    store.save_health_plan(report.id, plan)
    return ok({"healthPlan": plan, "reportId": report.id})


@app.get("/api/health-plan")
async def get_health_plan(
    report_id: Optional[str] = Query(None, alias="reportId"),
    store: ReportStore = Depends(get_store),
    service: HealthPlanService = Depends(get_health_plan_service),
):
    """Stored plan for the report, generated on first request."""
    if not report_id:
        raise ValidationError("Report ID is required")
    plan = store.get_health_plan(report_id)
    if plan is None:
        report = load_report(store, report_id)
        plan = await service.generate_health_plan(report, {})
        store.save_health_plan(report.id, plan)
    return ok({"healthPlan": plan, "reportId": report_id})


@app.get("/api/trends")
async def trends(
    test_name: Optional[str] = Query(None, alias="testName"),
    patient_name: Optional[str] = Query(None, alias="patientName"),
    store: ReportStore = Depends(get_store),
):
    if not test_name:
        raise ValidationError("Test name is required")

    filters = ReportFilters(patient_name=patient_name)
    reports, _ = store.list(filters, page=1, limit=max(store.count(filters), 1))
    points = collect_points(reports, test_name)
    return ok(compute_trend(points, metric=test_name).to_dict())


@app.post("/api/voice")
async def voice(
    audio: UploadFile = File(...),
    report_id: Optional[str] = Form(None, alias="reportId"),
    store: ReportStore = Depends(get_store),
    assistant: QuestionAssistant = Depends(get_assistant),
):
    """Transcribe audio; with a report id the transcription is answered as a question."""
    content = await audio.read()
    transcription = transcribe(content)
    data = transcription.to_dict()

    if report_id and transcription.recognized:
        report = load_report(store, report_id)
        data["response"] = await assistant.answer_question(transcription.text, report)
    return ok(data)


@app.post("/api/ai")
async def ask(
    body: QuestionRequest,
    store: ReportStore = Depends(get_store),
    assistant: QuestionAssistant = Depends(get_assistant),
):
    if not body.question.strip():
        raise ValidationError("Question is required")

    report = load_report(store, body.report_id) if body.report_id else None
    answer = await assistant.answer_question(
        body.question,
        report=report,
        history=body.history,
        patient_context=body.patient_context,
        detailed=body.detailed,
    )
    return ok(answer)


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "labsync.api.main:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
