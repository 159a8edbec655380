"""Data models for captured evidence artifacts."""

from dataclasses import dataclass, field
from datetime import datetime

from shared_types import ArtifactType, Stage, StageStatus


@dataclass
class Artifact:
    id: str
    user_id: str
    type: ArtifactType
    contact_id: str | None = None
    content: str | None = None
    metadata: dict = field(default_factory=dict)
    transcription: str | None = None
    audio_file_path: str | None = None
    duration_seconds: int | None = None
    extraction_status: StageStatus = StageStatus.PENDING
    extraction_run_id: str | None = None
    extraction_started_at: datetime | None = None
    extraction_completed_at: datetime | None = None
    ai_status: StageStatus = StageStatus.PENDING
    ai_run_id: str | None = None
    ai_started_at: datetime | None = None
    ai_completed_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def status(self, stage: Stage) -> StageStatus:
        return self.extraction_status if stage == Stage.EXTRACTION else self.ai_status

    def run_id(self, stage: Stage) -> str | None:
        return self.extraction_run_id if stage == Stage.EXTRACTION else self.ai_run_id

    def stage_error(self, stage: Stage) -> str | None:
        return self.metadata.get(f"{stage.value}_error")

    @property
    def analysis_text(self) -> str:
        """Text the AI stage reads: transcription when there is one, else content."""
        return self.transcription or self.content or ""
