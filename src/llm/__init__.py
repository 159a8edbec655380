"""LLM providers used to propose contact updates."""

from .base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError
from .factory import create_llm_provider, detect_provider

__all__ = [
    "LLMAuthError",
    "LLMError",
    "LLMProvider",
    "LLMRateLimitError",
    "create_llm_provider",
    "detect_provider",
]
