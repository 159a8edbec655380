"""Anthropic Claude provider."""

from ..base import LLMError, LLMProvider


class ClaudeProvider(LLMProvider):
    provider_name = "claude"
    default_model = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client=None,
    ):
        super().__init__(model=model, client=client)
        if self.client is not None:
            return
        try:
            from anthropic import Anthropic
        except ImportError:
            raise LLMError("anthropic package not installed. Run: pip install 'cultivate[anthropic]'")

        kwargs = {"api_key": api_key}
        if timeout:
            kwargs["timeout"] = timeout
        self.client = Anthropic(**kwargs)

    def _sdk_errors(self) -> dict[str, type]:
        try:
            import anthropic
        except ImportError:
            return {}
        return {
            "auth": anthropic.AuthenticationError,
            "rate_limit": anthropic.RateLimitError,
            "api": anthropic.APIError,
        }

    def _complete(self, messages: list[dict], system: str | None, max_tokens: int) -> str:
        kwargs = {"model": self.model, "max_tokens": max_tokens, "messages": messages}
        if system:
            kwargs["system"] = system
        response = self.client.messages.create(**kwargs)
        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
