"""Build the configured LLM provider, detecting it from API keys when set to auto."""

import os

from .base import LLMError, LLMProvider

# name -> (env var holding its key, key prefix); checked in this order
PROVIDER_KEYS: dict[str, tuple[str, str]] = {
    "claude": ("ANTHROPIC_API_KEY", "sk-ant-"),
    "openai": ("OPENAI_API_KEY", "sk-"),
}


def detect_provider(api_key: str | None = None) -> str:
    """Provider for an explicit key's prefix, else the first one with a key in the env."""
    if api_key:
        for name, (_, prefix) in PROVIDER_KEYS.items():
            if api_key.startswith(prefix):
                return name
    for name, (env_var, _) in PROVIDER_KEYS.items():
        if os.getenv(env_var):
            return name
    raise LLMError(
        "No LLM API key found. Set one of: "
        + ", ".join(env for env, _ in PROVIDER_KEYS.values())
    )


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    client=None,
) -> LLMProvider:
    """Create a provider.

    Args:
        provider: "claude", "openai", "auto" or None (auto)
        api_key: Explicit key; falls back to the provider's env var
        model: Model name, None for the provider default
        timeout: Per-request SDK timeout in seconds
        client: Pre-built SDK client (tests)
    """
    name = provider or "auto"
    if name == "auto":
        name = detect_provider(api_key)
    if name not in PROVIDER_KEYS:
        raise LLMError(f"Unknown provider: {name}. Use: {', '.join(PROVIDER_KEYS)}")

    if not api_key and client is None:
        api_key = os.getenv(PROVIDER_KEYS[name][0])

    if name == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key, model=model, timeout=timeout, client=client)
    from .providers.openai import OpenAIProvider

    return OpenAIProvider(api_key=api_key, model=model, timeout=timeout, client=client)
