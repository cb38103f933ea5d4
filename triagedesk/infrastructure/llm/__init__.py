"""
LLM Client Infrastructure
==========================

Wrapper for LLM providers (OpenAI, Z.AI) providing clean interface for LLM operations.

The ticket module only sees ILLMClient; the provider is picked from settings.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from openai import AsyncOpenAI
from zai import ZaiClient

from triagedesk.config import Settings, settings, DEFAULT_CATEGORY_LABELS
from triagedesk.core import LLMException, ConfigurationException
from triagedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


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
    Chat-completion port used by the triage assistant.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation for GPT models.

    Also serves any OpenAI-compatible gateway through ``base_url``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None
    ):
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=base_url or settings.openai_base_url
        )
        self._model = model or settings.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using OpenAI GPT.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation type for logging

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        content = response.choices[0].message.content or ""
        usage = response.usage

        logger.info(
            "LLM completion finished",
            extra={"operation": operation, "model": self._model, "latency_ms": latency_ms}
        )

        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )


class ZAIILLMClient(ILLMClient):
    """
    Z.AI SDK client implementation for GLM models.

    The SDK is blocking, so calls run in a worker thread.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key or settings.zai_api_key
        if not self._api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=self._api_key)
        self._model = model or settings.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await asyncio.to_thread(
                self._client.chat.completions.create,
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        content = response.choices[0].message.content or ""

        logger.info(
            "LLM completion finished",
            extra={"operation": operation, "model": self._model, "latency_ms": latency_ms}
        )

        # Z.AI doesn't return token usage, so we estimate
        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=len(str(messages)),
            completion_tokens=len(content),
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development and testing.

    Plays a triage conversation without calling external APIs: labels the
    first user message, asks three clarifying questions, then asks whether
    the issue is resolved.
    """

    KEYWORDS: Dict[str, str] = {
        "site": "Website",
        "page": "Website",
        "browser": "Website",
        "inbox": "Email",
        "mail": "Email",
        "facebook": "Social",
        "instagram": "Social",
        "twitter": "Social",
        "account": "Admin",
        "password": "Admin",
        "billing": "Admin",
    }

    QUESTIONS = [
        "When did you first notice the problem?",
        "Does it happen every time, or only sometimes?",
        "Have you changed anything recently, such as settings or passwords?",
    ]

    def __init__(self, labels: Optional[List[str]] = None):
        self._labels = labels or list(DEFAULT_CATEGORY_LABELS)

    def _classify(self, text: str) -> str:
        lowered = text.lower()
        for label in self._labels:
            if label.lower() in lowered:
                return label
        for keyword, label in self.KEYWORDS.items():
            if keyword in lowered and label in self._labels:
                return label
        return self._labels[0]

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return a scripted reply based on how many user turns were seen."""
        user_turns = [m for m in messages if m.get("role") == "user"]
        turn = len(user_turns)

        if turn <= 1:
            first = str(user_turns[0].get("content", "")) if user_turns else ""
            content = (
                f"[{self._classify(first)}] Thanks for reaching out. "
                f"{self.QUESTIONS[0]}"
            )
        elif turn <= len(self.QUESTIONS):
            content = self.QUESTIONS[turn - 1]
        else:
            content = (
                "Thanks, that gives me what I need. Try clearing your cache and "
                "signing in again. Is your issue resolved?"
            )

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=0
        )


def build_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """
    Create the LLM client selected by ``llm_provider``.

    Raises:
        ConfigurationException: If the selected provider has no API key
    """
    config = config or settings

    if config.llm_provider == "mock":
        return MockLLMClient()
    if config.llm_provider == "zai":
        return ZAIILLMClient(config.zai_api_key, model=config.llm_model)
    return OpenAILLMClient(
        config.openai_api_key,
        model=config.llm_model,
        base_url=config.openai_base_url
    )
