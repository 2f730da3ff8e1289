# ============================================================================
# src/labsync/api/dependencies.py
# ============================================================================
"""
FastAPI dependencies.

The LLM client is created in the app lifespan and kept on app.state; every
service that needs it receives it here. Tests replace any of these through
app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from ..ai.analysis import AnalysisOrchestrator
from ..ai.assistant import QuestionAssistant
from ..ai.client import LLMClient
from ..ai.recommendations import HealthPlanService
from ..classifiers.report_classifier import ReportClassifier
from ..pipeline import ReportPipeline
from ..processing.text_acquirer import TextAcquirer
from ..standardization.standardizer import ReportStandardizer
from ..storage.report_store import ReportStore


def get_llm_client(request: Request) -> Optional[LLMClient]:
    return getattr(request.app.state, "llm_client", None)


@lru_cache(maxsize=1)
def get_store() -> ReportStore:
    return ReportStore()


@lru_cache(maxsize=1)
def get_classifier() -> ReportClassifier:
    return ReportClassifier()


@lru_cache(maxsize=1)
def get_standardizer() -> ReportStandardizer:
    return ReportStandardizer()


def get_orchestrator(client: Optional[LLMClient] = Depends(get_llm_client)) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(client=client)


def get_health_plan_service(client: Optional[LLMClient] = Depends(get_llm_client)) -> HealthPlanService:
    return HealthPlanService(client=client)


def get_assistant(client: Optional[LLMClient] = Depends(get_llm_client)) -> QuestionAssistant:
    return QuestionAssistant(client=client)


def get_pipeline(
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    store: ReportStore = Depends(get_store),
    classifier: ReportClassifier = Depends(get_classifier),
    standardizer: ReportStandardizer = Depends(get_standardizer),
) -> ReportPipeline:
    return ReportPipeline(
        acquirer=TextAcquirer(classifier=classifier, ocr_extractor=orchestrator.ocr_extractor),
        standardizer=standardizer,
        orchestrator=orchestrator,
        store=store,
    )
