# ============================================================================
# src/labsync/ai/__init__.py
# ============================================================================
"""
AI services: LLM client, report/image analysis with deterministic fallbacks,
recommendations and health plans, trends, Q&A and voice input.
"""

from .client import LLMClient, ChatCompletionClient, create_client
from .analysis import AnalysisOrchestrator, AnalysisOutcome, is_valid_analysis
from .fallbacks import fallback_analysis, fallback_image_analysis, minimal_analysis
from .recommendations import (
    HealthPlanService,
    personalized_recommendations,
    fallback_recommendations,
    generate_dietary_recommendations,
    generate_exercise_recommendations,
    generate_lifestyle_modifications,
    generate_medication_notes,
    generate_follow_up_schedule,
    generate_health_goals,
)
from .trends import TrendPoint, TrendResult, compute_trend, collect_points
from .assistant import QuestionAssistant, parse_answer
from .voice import Transcription, transcribe

__all__ = [
    'LLMClient',
    'ChatCompletionClient',
    'create_client',
    'AnalysisOrchestrator',
    'AnalysisOutcome',
    'is_valid_analysis',
    'fallback_analysis',
    'fallback_image_analysis',
    'minimal_analysis',
    'HealthPlanService',
    'personalized_recommendations',
    'fallback_recommendations',
    'generate_dietary_recommendations',
    'generate_exercise_recommendations',
    'generate_lifestyle_modifications',
    'generate_medication_notes',
    'generate_follow_up_schedule',
    'generate_health_goals',
    'TrendPoint',
    'TrendResult',
    'compute_trend',
    'collect_points',
    'QuestionAssistant',
    'parse_answer',
    'Transcription',
    'transcribe',
]
