"""LLM-backed suggestion generator.

Reads an artifact and the current contact snapshot, asks the model for
`contact_updates`, and validates each proposal against the field registry.
Anything the model gets wrong about paths or value shapes is dropped and
logged; a provider failure or an unparseable answer is an UpstreamServiceError.
"""

import json

import structlog

from artifacts.models import Artifact
from contacts.fields import check_value, is_required, resolve
from contacts.models import Contact
from errors import UpstreamServiceError, ValidationError
from llm import LLMError
from shared_types import SuggestionAction

from .models import Suggestion
from .prompts import system_prompt, user_prompt

logger = structlog.get_logger()

VALID_ACTIONS = {a.value for a in SuggestionAction}


class LLMSuggestionGenerator:
    """Proposes contact edits from one artifact using an LLM."""

    def __init__(
        self,
        provider=None,
        max_suggestions: int = 25,
        min_confidence: float = 0.5,
        max_content_chars: int = 12000,
        max_tokens: int = 2000,
    ):
        self._provider = provider
        self.max_suggestions = max_suggestions
        self.min_confidence = min_confidence
        self.max_content_chars = max_content_chars
        self.max_tokens = max_tokens

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_llm_provider

        self._provider = create_llm_provider()
        return self._provider

    def generate(self, artifact: Artifact, contact: Contact) -> list[Suggestion]:
        """Return validated suggestions, possibly empty.

        Raises:
            UpstreamServiceError: the provider failed or answered with something
                that is not the expected JSON shape.
        """
        prompt = user_prompt(artifact, contact, self.max_content_chars)
        try:
            response = self._get_provider().generate(
                messages=[{"role": "user", "content": prompt}],
                system=system_prompt(self.max_suggestions),
                max_tokens=self.max_tokens,
            )
        except LLMError as e:
            raise UpstreamServiceError(f"Suggestion provider failed: {e}") from e

        return self._parse_response(response, artifact.id)

    def _parse_response(self, response: str, artifact_id: str) -> list[Suggestion]:
        text = (response or "").strip()
        # Strip markdown fences if present
        if text.startswith("```"):
            text = text.split("\n", 1)[-1]
        if text.endswith("```"):
            text = text.rsplit("```", 1)[0]
        text = text.strip()

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("suggestions.parse_failed", artifact_id=artifact_id, response=text[:200])
            raise UpstreamServiceError(f"Suggestion response is not valid JSON: {e}") from e

        if isinstance(parsed, dict):
            items = parsed.get("contact_updates")
        else:
            items = parsed
        if not isinstance(items, list):
            raise UpstreamServiceError("Suggestion response has no contact_updates list")

        suggestions = []
        for item in items:
            suggestion = self._to_suggestion(item, artifact_id)
            if suggestion is not None:
                suggestions.append(suggestion)
            if len(suggestions) >= self.max_suggestions:
                break
        return suggestions

    def _to_suggestion(self, item, artifact_id: str) -> Suggestion | None:
        if not isinstance(item, dict):
            return None
        field_path = item.get("field_path")
        action = str(item.get("action", "")).strip().lower()
        value = item.get("suggested_value")
        confidence = item.get("confidence")

        if action not in VALID_ACTIONS:
            logger.info("suggestions.dropped", artifact_id=artifact_id, field_path=field_path, reason="bad action")
            return None
        try:
            path, kind = resolve(field_path)
        except ValidationError as e:
            logger.info("suggestions.dropped", artifact_id=artifact_id, field_path=field_path, reason=str(e))
            return None
        problem = check_value(kind, action, value, required=is_required(path))
        if problem:
            logger.info("suggestions.dropped", artifact_id=artifact_id, field_path=field_path, reason=problem)
            return None
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            return None
        if confidence < self.min_confidence:
            return None

        return Suggestion(
            field_path=path.dotted,
            action=SuggestionAction(action),
            suggested_value=value,
            confidence=max(0.0, min(1.0, float(confidence))),
            reasoning=str(item.get("reasoning") or "").strip(),
        )
