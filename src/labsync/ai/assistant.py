# ============================================================================
# src/labsync/ai/assistant.py
# ============================================================================
"""
Question answering over a stored report.

The model is asked to close its answer with two optional sections:

    References:
    WBC row: White Blood Cell Count 12.5 (High)
    Follow-up Questions:
    1. What can raise a white cell count?

Both sections are parsed out of the reply and removed from the answer text.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from ..config import ai_settings
from ..core.models import MedicalReport
from .client import LLMClient
from .prompts import build_question_prompt

ANSWER_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.5

FALLBACK_ANSWER = (
    "I'm unable to answer this question right now. Please review the report "
    "with your healthcare provider, who can explain these results in context."
)

REFERENCES_SECTION = re.compile(r'References:(.*?)(?=Follow-up Questions:|$)', re.DOTALL)
FOLLOW_UP_SECTION = re.compile(r'Follow-up Questions:(.*?)$', re.DOTALL)
LIST_MARKER = re.compile(r'^[\d\-\*\.\s]+')


def parse_references(text: str) -> List[Dict[str, str]]:
    """Lines of "location: text"; lines without a colon are dropped."""
    references = []
    for line in text.splitlines():
        if ':' not in line:
            continue
        location, _, body = line.partition(':')
        references.append({'text': body.strip(), 'location': location.strip()})
    return references


def parse_follow_ups(text: str) -> List[str]:
    questions = []
    for line in text.splitlines():
        cleaned = LIST_MARKER.sub('', line).strip()
        if cleaned:
            questions.append(cleaned)
    return questions


def parse_answer(response_text: str) -> Dict[str, Any]:
    """Split a model reply into answer, references and suggested follow-ups."""
    references: List[Dict[str, str]] = []
    follow_ups: List[str] = []

    match = REFERENCES_SECTION.search(response_text)
    if match and match.group(1).strip():
        references = parse_references(match.group(1).strip())
        response_text = REFERENCES_SECTION.sub('', response_text, count=1)

    match = FOLLOW_UP_SECTION.search(response_text)
    if match and match.group(1).strip():
        follow_ups = parse_follow_ups(match.group(1).strip())
        response_text = FOLLOW_UP_SECTION.sub('', response_text, count=1)

    return {
        'answer': response_text.strip(),
        'references': references,
        'suggestedFollowUps': follow_ups,
        'confidence': ANSWER_CONFIDENCE,
    }


def fallback_answer() -> Dict[str, Any]:
    return {
        'answer': FALLBACK_ANSWER,
        'references': [],
        'suggestedFollowUps': [],
        'confidence': FALLBACK_CONFIDENCE,
    }


class QuestionAssistant:
    """Answers patient questions about a report with the injected LLM client."""

    def __init__(self, client: Optional[LLMClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout or ai_settings.AI_REQUEST_TIMEOUT
        self.logger = logging.getLogger(__name__)

    async def answer_question(
        self,
        question: str,
        report: Optional[MedicalReport] = None,
        history: Optional[List[Dict[str, str]]] = None,
        patient_context: Optional[Dict[str, Any]] = None,
        detailed: bool = True,
    ) -> Dict[str, Any]:
        if self.client is None:
            self.logger.warning("No AI client configured, returning fallback answer")
            return fallback_answer()

        prompt = build_question_prompt(
            question,
            report=report,
            history=history,
            patient_context=patient_context,
            include_references=True,
            detailed=detailed,
        )
        try:
            response = await asyncio.wait_for(self.client.generate(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Question answering timed out after {self.timeout}s")
            return fallback_answer()
        except Exception as e:
            self.logger.warning(f"Question answering failed, using fallback: {e}")
            return fallback_answer()

        text = ((response or {}).get('text') or '').strip()
        if not text:
            return fallback_answer()

        result = parse_answer(text)
        if not result['answer']:
            result['answer'] = FALLBACK_ANSWER
        return result
