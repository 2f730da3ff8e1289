# ============================================================================
# src/labsync/api/schemas.py
# ============================================================================
"""
Request and response models for the HTTP API.

Field names follow the camelCase JSON the web client sends; Python code
reads them through the snake_case attributes.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel):
    """Envelope returned by every endpoint."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None


class ClassifyRequest(CamelModel):
    text: str
    file_name: str = ""


class StandardizeRequest(CamelModel):
    text: str
    report_type: Optional[str] = None
    file_name: str = ""
    parameters: Optional[List[Dict[str, Any]]] = None


class RecommendationsRequest(CamelModel):
    report_id: Optional[str] = None
    report_type: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
    patient_name: Optional[str] = None
    patient_dob: Optional[str] = Field(default=None, alias="patientDOB")
    previous_conditions: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    lifestyle: Dict[str, Any] = Field(default_factory=dict)


class HealthPlanRequest(CamelModel):
    report_id: str
    patient_data: Optional[Dict[str, Any]] = None


class QuestionRequest(CamelModel):
    question: str
    report_id: Optional[str] = None
    history: List[Dict[str, str]] = Field(default_factory=list)
    patient_context: Optional[Dict[str, Any]] = None
    detailed: bool = True
