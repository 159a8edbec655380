"""Per-type processing rules: which stages run and what they need."""

from dataclasses import dataclass

from shared_types import ArtifactType

from .models import Artifact


@dataclass(frozen=True)
class ProcessingRule:
    requires_extraction: bool = False
    ai_enabled: bool = True
    requires_content: bool = False
    required_metadata: tuple[str, ...] = ()


RULES: dict[ArtifactType, ProcessingRule] = {
    ArtifactType.VOICE_MEMO: ProcessingRule(requires_extraction=True),
    ArtifactType.EMAIL: ProcessingRule(requires_content=True),
    ArtifactType.MEETING: ProcessingRule(requires_content=True),
    ArtifactType.NOTE: ProcessingRule(requires_content=True),
    ArtifactType.LINKEDIN_PROFILE: ProcessingRule(),
    ArtifactType.LINKEDIN_POST: ProcessingRule(required_metadata=("content",)),
    ArtifactType.POG: ProcessingRule(ai_enabled=False),
    ArtifactType.ASK: ProcessingRule(ai_enabled=False),
}


def rule_for(artifact_type: ArtifactType) -> ProcessingRule:
    return RULES.get(ArtifactType(artifact_type), ProcessingRule(ai_enabled=False))


def requires_extraction(artifact_type: ArtifactType) -> bool:
    return rule_for(artifact_type).requires_extraction


def ai_input_problem(artifact: Artifact) -> str | None:
    """Return why the AI stage cannot run on this artifact's content, or None."""
    rule = rule_for(artifact.type)
    if rule.requires_extraction and not artifact.transcription:
        return "transcription is empty"
    if rule.requires_content and not (artifact.content or "").strip():
        return f"{artifact.type.value} has no content"
    missing = [k for k in rule.required_metadata if k not in (artifact.metadata or {})]
    if missing:
        return f"missing required metadata fields: {', '.join(missing)}"
    return None
