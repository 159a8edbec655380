"""Provider interface the suggestion generator talks to."""

from abc import ABC, abstractmethod


class LLMError(Exception):
    """A provider call failed or produced nothing usable."""


class LLMRateLimitError(LLMError):
    pass


class LLMAuthError(LLMError):
    pass


class LLMProvider(ABC):
    """Chat-completion provider returning plain text.

    Subclasses implement `_complete` against their SDK and name the SDK's
    exception types in `_sdk_errors`; `generate` turns those into LLMError
    subclasses so callers only ever handle one family.
    """

    provider_name: str = "base"
    default_model: str = ""

    def __init__(self, model: str | None = None, client=None):
        self.model = model or self.default_model
        self.client = client

    def generate(
        self, messages: list[dict], system: str | None = None, max_tokens: int = 2000
    ) -> str:
        """Send `messages` (role/content dicts) and return the answer text."""
        try:
            text = self._complete(messages, system, max_tokens)
        except LLMError:
            raise
        except Exception as e:
            raise self._translate(e) from e
        if not text:
            raise LLMError(f"{self.provider_name} returned an empty answer")
        return text

    @abstractmethod
    def _complete(self, messages: list[dict], system: str | None, max_tokens: int) -> str: ...

    def _sdk_errors(self) -> dict[str, type]:
        """SDK exception classes keyed by "auth", "rate_limit" and "api"."""
        return {}

    def _translate(self, e: Exception) -> LLMError:
        errors = self._sdk_errors()
        if "auth" in errors and isinstance(e, errors["auth"]):
            return LLMAuthError(f"{self.provider_name} auth failed: {e}")
        if "rate_limit" in errors and isinstance(e, errors["rate_limit"]):
            return LLMRateLimitError(f"{self.provider_name} rate limit: {e}")
        if "api" in errors and isinstance(e, errors["api"]):
            return LLMError(f"{self.provider_name} API error: {e}")
        return LLMError(f"{self.provider_name} error: {e}")
