"""
Regwatch Shared Library
=======================

Common utilities, configurations, and abstractions shared by Regwatch services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - llm: LLM provider abstraction (Claude, OpenAI, Ollama)

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "Regwatch Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
