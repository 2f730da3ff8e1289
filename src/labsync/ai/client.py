# ============================================================================
# src/labsync/ai/client.py
# ============================================================================
"""
LLM Client

Defines the interface the analysis, recommendation and Q&A services talk to,
plus the chat-completion backend (Groq or any OpenAI-compatible endpoint).

Clients are passed in explicitly (constructor argument or FastAPI
dependency), never looked up from a module-level singleton.

Usage:
    from labsync.ai.client import create_client

    client = create_client()          # None when no API key is configured
    result = await client.generate("What are normal glucose levels?")
    data = client.extract_json(result["text"])
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp
from json_repair import repair_json

from ..config import ai_settings, AISettings
from ..utils.exceptions import AIServiceError, AITimeoutError, ConfigurationError


class LLMClient(ABC):
    """
    Abstract base class for text generation clients.

    All backends must implement:
    - generate(): Async text generation
    - health_check(): Verify backend is available
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._inference_count = 0
        self._failure_count = 0
        self._total_inference_time = 0.0

    @property
    @abstractmethod
    def model_name(self) -> str:
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate a completion.

        Returns:
            {
                "text": str,             # Generated text
                "model": str,            # Model identifier
                "inference_time": float  # Seconds
            }
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Returns:
            {"healthy": bool, "model": str, "details": str}
        """
        pass

    async def close(self):
        pass

    def extract_json(self, response_text: str) -> Optional[Dict]:
        """
        Extract a JSON object from generated text.

        Handles markdown fences, prose around the object and the usual
        malformations (single quotes, trailing commas, unquoted keys) via
        json_repair.
        """
        if not response_text or not response_text.strip():
            self.logger.warning("Empty response text, no JSON to extract")
            return None

        cleaned = response_text.strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.strip("`")
            if cleaned.lower().startswith("json"):
                cleaned = cleaned[4:]
            cleaned = cleaned.strip()

        try:
            parsed = json.loads(cleaned)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        start_idx = cleaned.find('{')
        if start_idx == -1:
            self.logger.warning("No JSON found in response")
            return None

        # Count braces to find the matching close
        depth = 0
        end_idx = len(cleaned) - 1
        for i, char in enumerate(cleaned[start_idx:], start=start_idx):
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    end_idx = i
                    break
        json_str = cleaned[start_idx:end_idx + 1]

        try:
            parsed = json.loads(json_str)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        try:
            repaired = repair_json(json_str, return_objects=True)
            if isinstance(repaired, dict) and repaired:
                self.logger.debug("json_repair fixed extracted JSON block")
                return repaired
        except Exception as e:
            self.logger.debug(f"json_repair failed on extracted block: {e}")

        self.logger.warning(f"Could not parse JSON from response: {response_text[:200]}...")
        return None

    def get_statistics(self) -> Dict[str, Any]:
        avg_time = (
            self._total_inference_time / self._inference_count
            if self._inference_count > 0
            else 0.0
        )
        return {
            "model": self.model_name,
            "inference_count": self._inference_count,
            "failure_count": self._failure_count,
            "total_inference_time": self._total_inference_time,
            "average_inference_time": avg_time,
        }


class ChatCompletionClient(LLMClient):
    """
    Client for an OpenAI-compatible /chat/completions endpoint (Groq by default).
    """

    def __init__(self, settings: Optional[AISettings] = None):
        super().__init__()
        self.settings = settings or ai_settings
        if not self.settings.GROQ_API_KEY:
            raise ConfigurationError("GROQ_API_KEY is not set")

        self.endpoint = self.settings.GROQ_API_ENDPOINT.rstrip('/')
        self.timeout = self.settings.AI_REQUEST_TIMEOUT
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized chat completion client: {self.endpoint} / {self.model_name}")

    @property
    def model_name(self) -> str:
        return self.settings.AI_MODEL

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.GROQ_API_KEY}",
            "Content-Type": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()
        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )
        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._headers,
            )
            self._session_loop = current_loop
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def health_check(self) -> Dict[str, Any]:
        try:
            session = await self._get_session()
            async with session.get(f"{self.endpoint}/models") as response:
                healthy = response.status == 200
                return {
                    "healthy": healthy,
                    "model": self.model_name,
                    "details": "ok" if healthy else f"HTTP {response.status}",
                }
        except Exception as e:
            return {"healthy": False, "model": self.model_name, "details": str(e)}

    @staticmethod
    def _messages(prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        start_time = datetime.now()
        payload = {
            "model": self.model_name,
            "messages": self._messages(prompt, system_prompt),
            "temperature": temperature if temperature is not None else self.settings.AI_TEMPERATURE,
            "max_tokens": max_tokens or self.settings.AI_MAX_TOKENS,
        }

        async def _do_request():
            session = await self._get_session()
            async with session.post(f"{self.endpoint}/chat/completions", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise AIServiceError(
                        f"AI service error ({response.status})",
                        details={"status": response.status, "body": error_text[:500]},
                    )
                return await response.json()

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._failure_count += 1
            self.logger.error(f"AI request timed out after {self.timeout}s (model={self.model_name})")
            raise AITimeoutError(f"AI request timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            self._failure_count += 1
            raise AIServiceError(f"Cannot reach AI service at {self.endpoint}: {e}") from e
        except AIServiceError:
            self._failure_count += 1
            raise

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            self._failure_count += 1
            raise AIServiceError("AI service returned no completion", details={"response": str(data)[:500]}) from e

        inference_time = (datetime.now() - start_time).total_seconds()
        self._inference_count += 1
        self._total_inference_time += inference_time
        self.logger.info(f"Completion received in {inference_time:.2f}s ({len(text)} chars)")

        return {
            "text": text.strip(),
            "model": data.get("model", self.model_name),
            "inference_time": inference_time,
            "usage": data.get("usage", {}),
        }


def create_client(settings: Optional[AISettings] = None) -> Optional[LLMClient]:
    """
    Build the configured client.

    Returns None when no API key is set; callers then use their canned
    fallbacks.
    """
    settings = settings or ai_settings
    if not settings.configured:
        logging.getLogger(__name__).warning("GROQ_API_KEY not set, AI features use fallbacks")
        return None
    return ChatCompletionClient(settings)


__all__ = ["LLMClient", "ChatCompletionClient", "create_client"]
