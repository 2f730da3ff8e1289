# ============================================================================
# src/labsync/config/ai_config.py
# ============================================================================
"""
AI Service Configuration
- Chat completion endpoint and credentials
- Generation parameters
- Request timeout
- Prompt sizing
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class AISettings(BaseSettings):
    GROQ_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the chat completion endpoint. Without it every AI call uses the canned fallback"
    )
    GROQ_API_ENDPOINT: str = Field(
        default="https://api.groq.com/v1",
        description="Base URL of an OpenAI-compatible chat completion API"
    )
    AI_MODEL: str = Field(
        default="mixtral-8x7b-32768",
        description="Model identifier sent with every completion request"
    )
    AI_TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0, le=2.0,
        description="Sampling temperature"
    )
    AI_MAX_TOKENS: int = Field(
        default=2048,
        gt=0,
        description="Maximum tokens generated per request"
    )
    AI_REQUEST_TIMEOUT: float = Field(
        default=30.0,
        gt=0.0,
        description="Hard timeout in seconds for one completion request"
    )
    AI_PROMPT_TEXT_CHARS: int = Field(
        default=1500,
        gt=0,
        description="Raw report text characters included in analysis prompts"
    )

    @property
    def configured(self) -> bool:
        return bool(self.GROQ_API_KEY)


ai_settings = AISettings()
