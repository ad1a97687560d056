"""
LLM Client Module
Provides unified interface for different LLM providers
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..errors import TransientExternalFailure
from ..observability import get_logger

logger = get_logger(__name__)


class BaseLLMClient(ABC):
    """Base class for LLM clients"""

    @abstractmethod
    async def generate(self,
                       system_prompt: str,
                       user_message: str,
                       response_format: Optional[Dict[str, Any]] = None,
                       temperature: float = 0.0) -> str:
        """Generate a response from the LLM"""
        pass


class OpenAIClient(BaseLLMClient):
    """OpenAI API client"""

    def __init__(self, api_key: str, model: str = "gpt-4o"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(self,
                       system_prompt: str,
                       user_message: str,
                       response_format: Optional[Dict[str, Any]] = None,
                       temperature: float = 0.0) -> str:
        """Generate a response using OpenAI"""
        import openai

        client = self._get_client()

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message}
        ]

        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature
        }

        if response_format and response_format.get("type") == "json_object":
            kwargs["response_format"] = {"type": "json_object"}

        create: Any = client.chat.completions.create
        try:
            response: Any = await create(**kwargs)
        except (openai.APIConnectionError, openai.APITimeoutError,
                openai.RateLimitError, openai.InternalServerError) as e:
            raise TransientExternalFailure(f"OpenAI unavailable: {type(e).__name__}", capability="llm") from e

        return response.choices[0].message.content or ""


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude API client"""

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022"):
        self.api_key = api_key
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(self,
                       system_prompt: str,
                       user_message: str,
                       response_format: Optional[Dict[str, Any]] = None,
                       temperature: float = 0.0) -> str:
        """Generate a response using Claude"""
        import anthropic

        client = self._get_client()

        # Add JSON instruction if needed
        if response_format and response_format.get("type") == "json_object":
            system_prompt += "\n\nIMPORTANT: Respond ONLY with valid JSON, no other text."

        create: Any = client.messages.create
        try:
            response: Any = await create(
                model=self.model,
                max_tokens=1024,
                system=system_prompt,
                messages=[
                    {"role": "user", "content": user_message}
                ],
                temperature=temperature
            )
        except (anthropic.APIConnectionError, anthropic.APITimeoutError,
                anthropic.RateLimitError, anthropic.InternalServerError) as e:
            raise TransientExternalFailure(f"Anthropic unavailable: {type(e).__name__}", capability="llm") from e

        for block in getattr(response, "content", []) or []:
            if getattr(block, "type", None) == "text" and hasattr(block, "text"):
                return block.text

        return ""


class MockLLMClient(BaseLLMClient):
    """
    Mock LLM client for testing without API calls
    Replays queued responses, then falls back to an 'unknown' intent
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.call_count = 0
        self.last_prompt = None

    async def generate(self,
                       system_prompt: str,
                       user_message: str,
                       response_format: Optional[Dict[str, Any]] = None,
                       temperature: float = 0.0) -> str:
        self.call_count += 1
        self.last_prompt = user_message

        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response if isinstance(response, str) else json.dumps(response, ensure_ascii=False)

        return json.dumps({"intent": "unknown", "confidence": 0.0, "entities": {}})


class LLMClientFactory:
    """Factory for creating LLM clients"""

    @staticmethod
    def create(provider: str = "mock", **kwargs) -> BaseLLMClient:
        """Create an LLM client based on provider"""
        providers = {
            "openai": OpenAIClient,
            "anthropic": AnthropicClient,
            "mock": MockLLMClient
        }

        if provider not in providers:
            raise ValueError(f"Unknown LLM provider: {provider}")

        return providers[provider](**kwargs)

    @staticmethod
    def create_from_settings(settings=None) -> BaseLLMClient:
        """Create LLM client from environment settings; prefers whichever key is configured"""
        if settings is None:
            from ..config import settings

        if settings.openai_api_key:
            logger.info("llm_client_selected", provider="openai", model=settings.llm_model)
            return OpenAIClient(api_key=settings.openai_api_key, model=settings.llm_model)
        if settings.anthropic_api_key:
            model = settings.llm_model if settings.llm_model.startswith("claude") else "claude-3-5-sonnet-20241022"
            logger.info("llm_client_selected", provider="anthropic", model=model)
            return AnthropicClient(api_key=settings.anthropic_api_key, model=model)

        logger.warning("llm_client_selected", provider="mock", reason="no API key configured")
        return MockLLMClient()
