"""
LLM Provider Base
=================

Abstract base class and common models for LLM providers.

The pipeline only depends on the narrow `TextGenerationService` protocol
(`generate(prompt) -> str`); every `LLMProvider` satisfies it.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from shared.config import LLMProvider as LLMProviderEnum
from shared.logging import get_logger

logger = get_logger(__name__)


class MessageRole(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMMessage(BaseModel):
    """A message in the conversation."""

    role: MessageRole | Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for API calls."""
        role_str = self.role.value if isinstance(self.role, MessageRole) else self.role
        return {"role": role_str, "content": self.content}


class LLMUsage(BaseModel):
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Response from LLM provider."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model used for generation")
    provider: str = Field(..., description="Provider name")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str | None = None

    # Additional metadata
    latency_ms: float = 0.0
    raw_response: dict[str, Any] | None = None


@runtime_checkable
class TextGenerationService(Protocol):
    """Anything that turns a prompt into generated text."""

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt. May raise on timeout or provider error."""
        ...


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implements the Strategy pattern for swappable LLM backends.
    """

    system_prompt: str | None = (
        "You are a senior compliance analyst specialised in the EU AI Act "
        "(Regulation (EU) 2024/1689). Answer with a single JSON object."
    )

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
        stop_sequences: list[str] | None = None,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate
            stop_sequences: Stop generation at these sequences

        Returns:
            LLMResponse with generated content
        """
        ...

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """
        Simple text generation helper.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            **kwargs: Additional arguments for complete()

        Returns:
            Generated text content
        """
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(LLMMessage(role="user", content=prompt))

        response = await self.complete(messages, **kwargs)
        return response.content

    async def generate(self, prompt: str) -> str:
        """TextGenerationService entry point used by the pipeline stages."""
        return await self.generate_text(prompt, system_prompt=self.system_prompt)


def create_llm_provider(
    provider: LLMProviderEnum | str,
    api_key: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
) -> LLMProvider:
    """
    Build a provider instance.

    Args:
        provider: Provider identifier (claude, openai, ollama)
        api_key: API key override (default from settings)
        model: Model override (default from settings)
        temperature: Sampling temperature override

    Returns:
        LLMProvider instance

    Raises:
        ValueError: Unknown provider or missing API key
    """
    provider_type = LLMProviderEnum(provider)

    instance: LLMProvider
    if provider_type == LLMProviderEnum.CLAUDE:
        from shared.llm.claude import ClaudeProvider

        instance = ClaudeProvider(api_key=api_key, model=model, temperature=temperature)
    elif provider_type == LLMProviderEnum.OPENAI:
        from shared.llm.openai import OpenAIProvider

        instance = OpenAIProvider(api_key=api_key, model=model, temperature=temperature)
    elif provider_type == LLMProviderEnum.OLLAMA:
        from shared.llm.ollama import OllamaProvider

        instance = OllamaProvider(model=model, temperature=temperature)
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")

    logger.info(
        "llm_provider_initialized",
        provider=instance.name,
        model=instance.model,
    )
    return instance
