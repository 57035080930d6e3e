"""
LLM Client Infrastructure
==========================

Wrapper for LLM providers (OpenAI, Z.AI) providing a clean interface for
chat completions used by the triage classifier.

The triage module depends on ``ILLMClient``, never on a vendor SDK.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI
from zai import ZaiClient

from supportdesk.config import Settings
from supportdesk.core import ConfigurationException, LLMException


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Only the chat completion the classifier needs is exposed.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Uses the SDK's native async client.
    """

    def __init__(self, api_key: Optional[str], model: str):
        if not api_key:
            raise ConfigurationException("OpenAI API key not configured")
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {e}")

        usage = response.usage
        return ChatCompletionResult(
            content=response.choices[0].message.content or "",
            model=response.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=int((time.perf_counter() - start_time) * 1000),
        )


class ZAIILLMClient(ILLMClient):
    """
    Z.AI SDK client implementation for GLM models.

    The SDK is synchronous, so calls run in a worker thread.
    """

    def __init__(self, api_key: Optional[str], model: str):
        if not api_key:
            raise ConfigurationException("Z.AI API key not configured")
        self._client = ZaiClient(api_key=api_key)
        self._model = model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await asyncio.to_thread(
                self._client.chat.completions.create,
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {e}")

        content = response.choices[0].message.content or ""
        # Z.AI doesn't always return token usage, so we estimate
        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=len(str(messages)),
            completion_tokens=len(content),
            latency_ms=int((time.perf_counter() - start_time) * 1000),
        )


def create_llm_client(settings: Settings) -> ILLMClient:
    """
    Build the client for ``settings.llm_provider``.

    Raises:
        ConfigurationException: provider has no API key, or is not an LLM
    """
    if settings.llm_provider == "openai":
        return OpenAILLMClient(settings.openai_api_key, settings.llm_model)
    if settings.llm_provider == "zai":
        return ZAIILLMClient(settings.zai_api_key, settings.llm_model)
    raise ConfigurationException(f"'{settings.llm_provider}' is not an LLM provider")
