# ============================================================================
# FILE: tests/unit/test_assistant.py
# ============================================================================
"""
Unit tests for question answering and voice input
"""

import pytest

from labsync.ai.assistant import (
    ANSWER_CONFIDENCE,
    FALLBACK_ANSWER,
    FALLBACK_CONFIDENCE,
    QuestionAssistant,
    parse_answer,
)
from labsync.ai.voice import (
    MIN_AUDIO_BYTES,
    SIMULATED_TRANSCRIPTION,
    TOO_SHORT_MESSAGE,
    transcribe,
)

from conftest import FakeLLMClient

REPLY = """Your white blood cell count is slightly above the reference range.

References:
Results table: White Blood Cell Count 12.5 (high)
no colon on this line

Follow-up Questions:
1. What can cause a high white cell count?
- Should I repeat the test?
"""


def test_parse_answer_sections():
    result = parse_answer(REPLY)

    assert result["answer"] == "Your white blood cell count is slightly above the reference range."
    assert result["references"] == [
        {"text": "White Blood Cell Count 12.5 (high)", "location": "Results table"}
    ]
    assert result["suggestedFollowUps"] == [
        "What can cause a high white cell count?",
        "Should I repeat the test?",
    ]
    assert result["confidence"] == ANSWER_CONFIDENCE


def test_parse_answer_without_sections():
    result = parse_answer("Plain answer.")
    assert result["answer"] == "Plain answer."
    assert result["references"] == []
    assert result["suggestedFollowUps"] == []


@pytest.mark.asyncio
async def test_answer_question(make_report):
    client = FakeLLMClient([REPLY])
    assistant = QuestionAssistant(client=client)

    result = await assistant.answer_question(
        "Is my WBC normal?",
        report=make_report(),
        history=[{"question": "What is WBC?", "answer": "White blood cells."}],
    )

    assert result["answer"].startswith("Your white blood cell count")
    prompt = client.prompts[0]
    assert "Question: Is my WBC normal?" in prompt
    assert "Q1: What is WBC?" in prompt
    assert "White Blood Cell Count" in prompt


@pytest.mark.asyncio
async def test_answer_without_client():
    result = await QuestionAssistant(client=None).answer_question("Is this bad?")
    assert result["answer"] == FALLBACK_ANSWER
    assert result["confidence"] == FALLBACK_CONFIDENCE


@pytest.mark.asyncio
async def test_answer_when_client_fails(failing_client):
    result = await QuestionAssistant(client=failing_client).answer_question("Is this bad?")
    assert result["answer"] == FALLBACK_ANSWER


@pytest.mark.asyncio
async def test_empty_reply_uses_fallback():
    result = await QuestionAssistant(client=FakeLLMClient(["   "])).answer_question("Is this bad?")
    assert result["answer"] == FALLBACK_ANSWER


# ============================================================================
# VOICE
# ============================================================================

def test_short_audio_is_not_recognized():
    result = transcribe(b"\x00" * (MIN_AUDIO_BYTES - 1))
    assert not result.recognized
    assert result.to_dict() == {"text": TOO_SHORT_MESSAGE, "confidence": 0.0}


def test_long_audio_gets_transcription():
    result = transcribe(b"\x00" * MIN_AUDIO_BYTES)
    assert result.recognized
    assert result.text == SIMULATED_TRANSCRIPTION
    assert result.confidence == 0.92
