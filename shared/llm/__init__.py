"""
LLM Provider Module
===================

Abstraction layer for multiple LLM providers.

Supported providers:
- Anthropic Claude (primary)
- OpenAI GPT
- Ollama (local)

Usage:
    from shared.llm import create_llm_provider

    provider = create_llm_provider("claude", api_key="sk-...")
    text = await provider.generate("Summarise this notice as JSON: ...")
"""

from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMUsage,
    MessageRole,
    TextGenerationService,
    create_llm_provider,
)

__all__ = [
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMUsage",
    "MessageRole",
    "TextGenerationService",
    "create_llm_provider",
]
