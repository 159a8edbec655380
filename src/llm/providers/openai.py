"""OpenAI chat-completions provider. Asks for a JSON object answer."""

from ..base import LLMError, LLMProvider


class OpenAIProvider(LLMProvider):
    provider_name = "openai"
    default_model = "gpt-4o"

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
            from openai import OpenAI
        except ImportError:
            raise LLMError("openai package not installed. Run: pip install 'cultivate[openai]'")

        kwargs = {"api_key": api_key}
        if timeout:
            kwargs["timeout"] = timeout
        self.client = OpenAI(**kwargs)

    def _sdk_errors(self) -> dict[str, type]:
        try:
            import openai
        except ImportError:
            return {}
        return {
            "auth": openai.AuthenticationError,
            "rate_limit": openai.RateLimitError,
            "api": openai.APIError,
        }

    def _complete(self, messages: list[dict], system: str | None, max_tokens: int) -> str:
        full_messages = [{"role": "system", "content": system}] if system else []
        full_messages.extend(messages)
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=full_messages,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""
