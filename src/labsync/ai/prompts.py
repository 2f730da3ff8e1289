# ============================================================================
# src/labsync/ai/prompts.py
# ============================================================================
"""
Prompt builders for report analysis, image analysis, health plans and Q&A.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from ..config import ai_settings
from ..constants.report_types import ReportType
from ..core.models import MedicalReport, StandardizedReport, TestParameter

ANALYSIS_SCHEMA = (
    '{"summary": "...", "findings": ["...", "..."], "recommendations": ["...", "..."], '
    '"possibleConditions": [{"name": "...", "probability": X.X, "description": "..."}], '
    '"followUpRecommended": true/false, "followUpTimeframe": "...", "aiConfidenceScore": X.X}'
)

IMAGE_SCHEMA = '{"summary": "...", "findings": ["...", "..."], "recommendations": ["...", "..."], "aiConfidenceScore": X.X}'

IMAGE_INSTRUCTIONS = {
    'detailed': 'Provide a detailed analysis including all findings, potential diagnoses, and recommendations.',
    'quick': 'Provide a brief analysis focusing only on the most important findings.',
    'standard': 'Provide a standard analysis with key findings and recommendations.',
}

# Confidence reported for image analysis at each depth
IMAGE_CONFIDENCE = {'detailed': 0.85, 'quick': 0.6, 'standard': 0.7}


def report_type_label(report_type: ReportType) -> str:
    """"LIPID_PANEL" -> "lipid panel"."""
    return report_type.value.lower().replace('_', ' ')


def _results_json(results: Sequence[TestParameter]) -> str:
    return json.dumps([p.to_dict() for p in results], indent=2)


def build_analysis_prompt(report: StandardizedReport, text_chars: Optional[int] = None) -> str:
    text_chars = text_chars or ai_settings.AI_PROMPT_TEXT_CHARS
    abnormal = report.abnormal_results

    prompt = f"Analyze the following medical {report_type_label(report.report_type)} report:\n\n"
    prompt += f"Standardized Data: {json.dumps(report.to_dict(include_text=False), indent=2)}\n\n"
    if report.results:
        prompt += f"Test Results: {_results_json(report.results)}\n\n"
    if abnormal:
        prompt += "Out of range: " + ", ".join(f"{p.name} ({p.status.value})" for p in abnormal) + "\n\n"
    if report.text:
        prompt += f"Raw Report Text: {report.text[:text_chars]}\n\n"

    prompt += (
        "Provide a comprehensive analysis including:\n"
        "1. A summary of the report\n"
        "2. Key findings (both normal and abnormal)\n"
        "3. Recommendations based on the findings\n"
        "4. Any possible conditions suggested by the results\n"
        "5. Whether follow-up is recommended and in what timeframe\n\n"
        f"Format the response as JSON with the following structure: {ANALYSIS_SCHEMA}"
    )
    return prompt


def build_image_prompt(report_type: ReportType, extracted_text: str = "", analysis_type: str = "standard") -> str:
    instructions = IMAGE_INSTRUCTIONS.get(analysis_type, IMAGE_INSTRUCTIONS['standard'])

    prompt = f"Analyze this medical {report_type_label(report_type)} image. "
    if extracted_text and extracted_text.strip():
        excerpt = extracted_text[:1000] + ('...' if len(extracted_text) > 1000 else '')
        prompt += f'I\'ve extracted the following text from the image using OCR: "{excerpt}". '
    prompt += f"{instructions} Format the response as JSON with the following structure: {IMAGE_SCHEMA}"
    return prompt


def build_health_plan_prompt(report: MedicalReport, patient_data: Optional[Dict[str, Any]] = None) -> str:
    lines = [
        "Write a short summary paragraph for a personalized health plan based on the "
        "following medical report and patient data.",
        f"Report Type: {report.type.value}",
    ]
    if report.results:
        lines.append("Test Results:")
        for p in report.results:
            lines.append(f"- {p.name}: {p.value} {p.unit} (Status: {p.status.value})".replace("  ", " "))

    patient_data = patient_data or {}
    if patient_data:
        lines.append("\nPatient Data:")
        for key, label, suffix in (
            ('age', 'Age', ''), ('gender', 'Gender', ''),
            ('height', 'Height', ' cm'), ('weight', 'Weight', ' kg'),
        ):
            if patient_data.get(key):
                lines.append(f"{label}: {patient_data[key]}{suffix}")
        for key, label in (('conditions', 'Existing Conditions'), ('medications', 'Current Medications'),
                           ('allergies', 'Allergies')):
            items = patient_data.get(key)
            if isinstance(items, list) and items:
                lines.append(f"{label}:")
                lines.extend(f"- {item}" for item in items)
        lifestyle = patient_data.get('lifestyle')
        if isinstance(lifestyle, dict) and lifestyle:
            lines.append("\nLifestyle Factors:")
            for key in ('diet', 'exercise', 'smoking', 'alcohol', 'sleep', 'stress'):
                if lifestyle.get(key):
                    lines.append(f"{key.capitalize()}: {lifestyle[key]}")

    lines.append("\nRespond with the summary paragraph only.")
    return "\n".join(lines)


def build_question_prompt(
    question: str,
    report: Optional[MedicalReport] = None,
    history: Optional[List[Dict[str, str]]] = None,
    patient_context: Optional[Dict[str, Any]] = None,
    include_references: bool = True,
    detailed: bool = False,
    text_chars: Optional[int] = None,
) -> str:
    text_chars = text_chars or ai_settings.AI_PROMPT_TEXT_CHARS
    report_type = report.type if report else ReportType.OTHER

    prompt = "You are a medical AI assistant helping to interpret medical reports. "
    prompt += f"Answer the following question about a {report_type_label(report_type)} report:\n\n"
    prompt += f"Question: {question}\n\n"
    prompt += "Report Information:\n"

    if report and report.results:
        prompt += f"Test Parameters: {_results_json(report.results)}\n\n"
    elif report and report.raw_text:
        prompt += f"Raw Report Text: {report.raw_text[:text_chars]}\n\n"
    else:
        prompt += "No report data available.\n\n"

    if history:
        prompt += "Conversation History:\n"
        for index, exchange in enumerate(history, start=1):
            prompt += f"Q{index}: {exchange.get('question', '')}\n"
            prompt += f"A{index}: {exchange.get('answer', '')}\n"
        prompt += "\n"

    if patient_context:
        prompt += f"Patient Context: {json.dumps(patient_context, indent=2)}\n\n"

    prompt += "\nProvide a clear, accurate, and helpful answer to the question. "
    if detailed:
        prompt += "Include detailed explanations of medical terms and concepts. "
    else:
        prompt += "Explain medical terms in simple language that a patient can understand. "

    if include_references:
        prompt += (
            '\n\nAfter your answer, include a section titled "References:" that lists specific parts '
            'of the report that support your answer, one per line as "location: text".'
        )
    prompt += '\n\nFinally, under a heading "Follow-up Questions:", suggest 2-3 follow-up questions the patient might want to ask.'
    return prompt
