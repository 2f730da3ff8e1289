# ============================================================================
# src/labsync/core/models.py
# ============================================================================
"""
Report data model
- Uploaded file (request scoped)
- Test parameter with reference range and status
- Standardized report (single canonical results list)
- AI analysis attached to a report
- Persisted medical report

Dataclasses use snake_case attributes; to_dict()/from_dict() speak the
camelCase JSON shape served by the HTTP API.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Union

from ..constants.report_types import FileType, ParameterStatus, ReportType


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _item_text(item: Any) -> str:
    """Text of a findings/recommendations entry; the LLM sometimes sends objects."""
    if isinstance(item, dict):
        for key in ("finding", "description", "text", "recommendation"):
            if item.get(key):
                return str(item[key]).strip()
        return ""
    if item is None:
        return ""
    return str(item).strip()


@dataclass
class UploadedFile:
    """File received in one request. Never persisted."""
    name: str
    mime_type: str
    content: bytes

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lower().lstrip(".")

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ReferenceRange:
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return self.min is not None and self.max is not None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ReferenceRange"]:
        if not isinstance(data, dict):
            return None
        low = _optional_float(data.get("min"))
        high = _optional_float(data.get("max"))
        if low is None and high is None:
            return None
        return cls(min=low, max=high)


@dataclass
class TestParameter:
    """One named lab measurement."""
    __test__ = False  # not a pytest test class

    name: str
    value: Union[str, float]
    unit: str = ""
    status: ParameterStatus = ParameterStatus.NORMAL
    reference_range: Optional[ReferenceRange] = None

    @property
    def numeric_value(self) -> Optional[float]:
        if isinstance(self.value, bool):
            return None
        return _optional_float(self.value)

    @property
    def is_placeholder(self) -> bool:
        return self.status == ParameterStatus.NOT_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "status": self.status.value,
            "referenceRange": self.reference_range.to_dict() if self.reference_range else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestParameter":
        try:
            status = ParameterStatus(data.get("status") or ParameterStatus.NORMAL.value)
        except ValueError:
            status = ParameterStatus.UNPARSEABLE
        value = data.get("value", "")
        return cls(
            name=str(data.get("name", "")).strip(),
            value=value if value is not None else "",
            unit=str(data.get("unit") or ""),
            status=status,
            reference_range=ReferenceRange.from_dict(data.get("referenceRange")),
        )


@dataclass
class StandardizedReport:
    """
    Normalized output of the extraction pipeline.

    results is the only stored list; parameters is kept as a read-only alias
    for consumers that still expect that key.
    """
    results: List[TestParameter] = field(default_factory=list)
    text: str = ""
    file_name: str = ""
    file_type: Optional[FileType] = None
    report_type: ReportType = ReportType.OTHER
    extracted_date: str = field(default_factory=utc_now_iso)

    @property
    def parameters(self) -> List[TestParameter]:
        return self.results

    @property
    def abnormal_results(self) -> List[TestParameter]:
        return [r for r in self.results if r.status.is_abnormal]

    def to_dict(self, include_text: bool = True) -> Dict[str, Any]:
        results = [r.to_dict() for r in self.results]
        data = {
            "results": results,
            "parameters": results,
            "fileName": self.file_name,
            "fileType": self.file_type.value if self.file_type else None,
            "reportType": self.report_type.value,
            "extractedDate": self.extracted_date,
        }
        if include_text:
            data["text"] = self.text
        return data


@dataclass
class PossibleCondition:
    name: str
    probability: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "probability": self.probability, "description": self.description}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PossibleCondition"]:
        if isinstance(data, str) and data.strip():
            return cls(name=data.strip())
        if not isinstance(data, dict) or not data.get("name"):
            return None
        return cls(
            name=str(data["name"]),
            probability=str(data.get("probability", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class ReportAnalysis:
    """Narrative analysis produced by the AI service or its fallback."""
    summary: str
    findings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    possible_conditions: List[PossibleCondition] = field(default_factory=list)
    follow_up_recommended: bool = True
    follow_up_timeframe: str = "As advised by your healthcare provider"
    ai_confidence_score: float = 0.5
    personalized_recommendations: Dict[str, List[str]] = field(default_factory=dict)
    test_results: List[TestParameter] = field(default_factory=list)
    image_analysis: Optional[Dict[str, Any]] = None
    multi_modal_confidence_score: Optional[float] = None
    source: str = "ai"  # "ai" or "fallback"
    generated_at: str = field(default_factory=utc_now_iso)

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "summary": self.summary,
            "findings": list(self.findings),
            "recommendations": list(self.recommendations),
            "possibleConditions": [c.to_dict() for c in self.possible_conditions],
            "followUpRecommended": self.follow_up_recommended,
            "followUpTimeframe": self.follow_up_timeframe,
            "aiConfidenceScore": self.ai_confidence_score,
            "personalizedRecommendations": dict(self.personalized_recommendations),
            "testResults": [r.to_dict() for r in self.test_results],
            "source": self.source,
            "generatedAt": self.generated_at,
        }
        if self.image_analysis is not None:
            data["imageAnalysis"] = self.image_analysis
        if self.multi_modal_confidence_score is not None:
            data["multiModalConfidenceScore"] = self.multi_modal_confidence_score
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportAnalysis":
        conditions = [PossibleCondition.from_dict(c) for c in _as_list(data.get("possibleConditions"))]
        personalized = data.get("personalizedRecommendations")
        confidence = _optional_float(data.get("aiConfidenceScore"))
        return cls(
            summary=str(data.get("summary", "")),
            findings=[t for t in (_item_text(f) for f in _as_list(data.get("findings"))) if t],
            recommendations=[t for t in (_item_text(r) for r in _as_list(data.get("recommendations"))) if t],
            possible_conditions=[c for c in conditions if c is not None],
            follow_up_recommended=bool(data.get("followUpRecommended", True)),
            follow_up_timeframe=str(
                data.get("followUpTimeframe") or "As advised by your healthcare provider"
            ),
            ai_confidence_score=confidence if confidence is not None else 0.5,
            personalized_recommendations=dict(personalized) if isinstance(personalized, dict) else {},
            test_results=[TestParameter.from_dict(r) for r in _as_list(data.get("testResults")) if isinstance(r, dict)],
            image_analysis=data.get("imageAnalysis") if isinstance(data.get("imageAnalysis"), dict) else None,
            multi_modal_confidence_score=_optional_float(data.get("multiModalConfidenceScore")),
            source=str(data.get("source", "ai")),
            generated_at=str(data.get("generatedAt") or utc_now_iso()),
        )


class ReportStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass
class MedicalReport:
    """Persisted report. Created on upload, updated once analysis finishes."""
    id: str
    user_id: str
    type: ReportType
    title: str
    status: str = ReportStatus.PROCESSING
    file_name: str = ""
    file_type: Optional[FileType] = None
    patient_name: str = ""
    patient_dob: str = ""
    provider: str = ""
    report_date: str = ""
    notes: str = ""
    results: List[TestParameter] = field(default_factory=list)
    raw_text: str = ""
    analysis: Optional[ReportAnalysis] = None
    upload_date: str = field(default_factory=utc_now_iso)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def parameters(self) -> List[TestParameter]:
        return self.results

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def to_standardized(self) -> StandardizedReport:
        return StandardizedReport(
            results=list(self.results),
            text=self.raw_text,
            file_name=self.file_name,
            file_type=self.file_type,
            report_type=self.type,
            extracted_date=self.upload_date,
        )

    def to_dict(self) -> Dict[str, Any]:
        results = [r.to_dict() for r in self.results]
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "status": self.status,
            "fileName": self.file_name,
            "fileType": self.file_type.value if self.file_type else None,
            "patientName": self.patient_name,
            "patientDob": self.patient_dob,
            "provider": self.provider,
            "reportDate": self.report_date,
            "notes": self.notes,
            "results": results,
            "parameters": results,
            "rawText": self.raw_text,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "uploadDate": self.upload_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalReport":
        file_type = data.get("fileType")
        analysis = data.get("analysis")
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            type=ReportType.parse(data.get("type")) or ReportType.OTHER,
            title=data.get("title", ""),
            status=data.get("status", ReportStatus.PROCESSING),
            file_name=data.get("fileName", ""),
            file_type=FileType(file_type) if file_type else None,
            patient_name=data.get("patientName", ""),
            patient_dob=data.get("patientDob", ""),
            provider=data.get("provider", ""),
            report_date=data.get("reportDate", ""),
            notes=data.get("notes", ""),
            results=[TestParameter.from_dict(r) for r in data.get("results") or []],
            raw_text=data.get("rawText", ""),
            analysis=ReportAnalysis.from_dict(analysis) if analysis else None,
            upload_date=data.get("uploadDate") or utc_now_iso(),
            created_at=data.get("createdAt") or utc_now_iso(),
            updated_at=data.get("updatedAt") or utc_now_iso(),
        )
