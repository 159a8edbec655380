"""Two-stage artifact pipeline: extraction, then AI suggestion generation.

Stages chain by spawning the next stage as an independent task when the
previous one completes. Run coroutines never raise: every worker error,
timeout or malformed answer ends in the stage's `failed` transition.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import structlog

from artifacts.models import Artifact
from artifacts.processing import ai_input_problem, requires_extraction, rule_for
from artifacts.state import ProcessingStateMachine
from artifacts.store import ArtifactStore
from cli.retry import stage_retrying
from contacts.store import ContactStore
from errors import (
    AuthorizationError,
    CultivateError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from observability import metrics
from shared_types import ArtifactType, Stage, StageStatus
from suggestions.generator import LLMSuggestionGenerator
from suggestions.models import SuggestionBatch
from suggestions.store import SuggestionStore
from transcription.base import Transcriber

from .scheduler import TaskScheduler

logger = structlog.get_logger()

T = TypeVar("T")


class ArtifactPipeline:
    def __init__(
        self,
        artifacts: ArtifactStore,
        contacts: ContactStore,
        suggestions: SuggestionStore,
        transcriber: Transcriber,
        generator: LLMSuggestionGenerator,
        scheduler: TaskScheduler | None = None,
        extraction_timeout: float = 300.0,
        ai_timeout: float = 120.0,
        max_attempts: int = 1,
        retry_min_wait: float = 2.0,
        retry_max_wait: float = 30.0,
    ):
        self.artifacts = artifacts
        self.contacts = contacts
        self.suggestions = suggestions
        self.state = ProcessingStateMachine(artifacts)
        self.transcriber = transcriber
        self.generator = generator
        self.scheduler = scheduler or TaskScheduler()
        self.extraction_timeout = extraction_timeout
        self.ai_timeout = ai_timeout
        self.max_attempts = max_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    # --- ingestion ---

    def ingest(
        self,
        user_id: str,
        artifact_type: str,
        contact_id: str | None = None,
        content: str | None = None,
        metadata: dict | None = None,
        audio_file_path: str | None = None,
    ) -> Artifact:
        """Persist a new artifact with both stages pending and start the pipeline."""
        if not user_id:
            raise ValidationError("user_id is required")
        try:
            kind = ArtifactType(artifact_type)
        except ValueError:
            raise ValidationError(f"Unsupported artifact type: {artifact_type}")
        if kind == ArtifactType.VOICE_MEMO and not audio_file_path:
            raise ValidationError("voice_memo artifacts need an audio file")
        if contact_id:
            contact = self.contacts.get(contact_id)
            if contact is None:
                raise NotFoundError(f"Contact not found: {contact_id}")
            if contact.user_id != user_id:
                raise AuthorizationError("Contact belongs to another user")

        artifact = self.artifacts.create(
            Artifact(
                id=uuid.uuid4().hex,
                user_id=user_id,
                type=kind,
                contact_id=contact_id,
                content=content,
                metadata=dict(metadata or {}),
                audio_file_path=audio_file_path,
            )
        )
        if not requires_extraction(kind):
            self.state.skip_extraction(artifact.id)
        metrics.counter("pipeline.ingested")
        self.on_artifact_created(artifact.id)
        return self.artifacts.get(artifact.id)

    def on_artifact_created(self, artifact_id: str) -> asyncio.Task | None:
        """React to the "artifact created" event. Needs a running event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("pipeline.no_event_loop", artifact_id=artifact_id)
            return None
        return self.scheduler.spawn(self.advance(artifact_id), name=f"advance:{artifact_id}")

    async def advance(self, artifact_id: str) -> None:
        """Run whichever stage is next for the artifact."""
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            return
        if requires_extraction(artifact.type) and artifact.extraction_status == StageStatus.PENDING:
            await self.run_extraction(artifact_id)
        elif artifact.ai_status == StageStatus.PENDING:
            await self.run_ai(artifact_id)

    # --- stages ---

    async def _call(self, stage: Stage, factory: Callable[[], Awaitable[T]], timeout: float) -> T:
        """One bounded worker call, retried only when max_attempts > 1."""
        if self.max_attempts <= 1:
            return await asyncio.wait_for(factory(), timeout=timeout)

        async for attempt in stage_retrying(
            max_attempts=self.max_attempts,
            min_wait=self.retry_min_wait,
            max_wait=self.retry_max_wait,
            exceptions=(UpstreamServiceError, TimeoutError),
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    metrics.counter(f"pipeline.{stage.value}.retried")
                return await asyncio.wait_for(factory(), timeout=timeout)

    @staticmethod
    def _reason(stage: Stage, error: BaseException, timeout: float) -> str:
        if isinstance(error, TimeoutError):
            return f"{stage.value} timed out after {timeout:g}s"
        if isinstance(error, CultivateError):
            return error.message
        return f"{type(error).__name__}: {error}"

    async def run_extraction(self, artifact_id: str) -> bool:
        """Transcribe the artifact's audio. Returns True when the stage completed."""
        run_id = self.state.begin(artifact_id, Stage.EXTRACTION)
        if run_id is None:
            return False
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            return False

        try:
            with metrics.timer("pipeline.extraction"):
                result = await self._call(
                    Stage.EXTRACTION,
                    lambda: self.transcriber.transcribe(artifact_id, artifact.audio_file_path),
                    self.extraction_timeout,
                )
        except Exception as e:
            reason = self._reason(Stage.EXTRACTION, e, self.extraction_timeout)
            logger.warning("pipeline.extraction_failed", artifact_id=artifact_id, error=reason)
            metrics.counter("pipeline.extraction.failed")
            self.state.fail(artifact_id, Stage.EXTRACTION, run_id, reason)
            return False

        completed = self.state.complete(
            artifact_id,
            Stage.EXTRACTION,
            run_id,
            fields={"transcription": result.text, "duration_seconds": result.duration},
        )
        if not completed:
            return False

        metrics.counter("pipeline.extraction.completed")
        logger.info(
            "pipeline.extraction_completed",
            artifact_id=artifact_id,
            chars=len(result.text),
            duration=result.duration,
        )
        self.scheduler.spawn(self.run_ai(artifact_id), name=f"ai:{artifact_id}")
        return True

    async def run_ai(self, artifact_id: str) -> SuggestionBatch | None:
        """Generate a suggestion batch. Returns the batch when the stage completed."""
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            return None
        if not rule_for(artifact.type).ai_enabled:
            logger.debug("pipeline.ai_disabled", artifact_id=artifact_id, type=artifact.type)
            return None

        run_id = self.state.begin(artifact_id, Stage.AI)
        if run_id is None:
            return None
        # re-read: the transcription may have landed since the first read
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            return None

        problem = ai_input_problem(artifact)
        contact = None
        if problem is None:
            if not artifact.contact_id:
                problem = "artifact is not linked to a contact"
            else:
                contact = self.contacts.get(artifact.contact_id)
                if contact is None:
                    problem = f"contact {artifact.contact_id} not found"
        if problem:
            logger.warning("pipeline.ai_failed", artifact_id=artifact_id, error=problem)
            metrics.counter("pipeline.ai.failed")
            self.state.fail(artifact_id, Stage.AI, run_id, problem)
            return None

        try:
            with metrics.timer("pipeline.ai"):
                suggestions = await self._call(
                    Stage.AI,
                    lambda: asyncio.to_thread(self.generator.generate, artifact, contact),
                    self.ai_timeout,
                )
        except Exception as e:
            reason = self._reason(Stage.AI, e, self.ai_timeout)
            logger.warning("pipeline.ai_failed", artifact_id=artifact_id, error=reason)
            metrics.counter("pipeline.ai.failed")
            self.state.fail(artifact_id, Stage.AI, run_id, reason)
            return None

        batch = SuggestionBatch(
            id=uuid.uuid4().hex,
            artifact_id=artifact_id,
            contact_id=contact.id,
            user_id=artifact.user_id,
            suggestions=tuple(suggestions),
            created_at=datetime.now(),
        )
        completed = self.state.complete(
            artifact_id,
            Stage.AI,
            run_id,
            within=lambda conn: self.suggestions.add(batch, conn=conn),
        )
        if not completed:
            return None

        metrics.counter("pipeline.ai.completed")
        logger.info(
            "pipeline.ai_completed",
            artifact_id=artifact_id,
            batch_id=batch.id,
            suggestions=len(batch.suggestions),
        )
        return batch

    # --- reprocessing ---

    def reprocess(self, artifact_id: str, user_id: str, stage: Stage | str | None = None) -> Artifact:
        """Reset a stage to pending and re-trigger the pipeline.

        Defaults to the first stage the artifact type has. Resetting extraction
        also resets AI. Prior suggestion batches are kept; the next AI run
        supersedes any that are still pending.
        """
        if not artifact_id:
            raise ValidationError("artifact_id is required")
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        if artifact.user_id != user_id:
            raise AuthorizationError("Artifact belongs to another user")

        rule = rule_for(artifact.type)
        if stage is None:
            target = Stage.EXTRACTION if rule.requires_extraction else Stage.AI
        else:
            try:
                target = Stage(stage)
            except ValueError:
                raise ValidationError(f"Unknown stage: {stage}")
        if target == Stage.EXTRACTION and not rule.requires_extraction:
            raise ValidationError(f"{artifact.type.value} artifacts have no extraction stage")
        if not rule.ai_enabled and target == Stage.AI:
            raise ValidationError(f"{artifact.type.value} artifacts are not processed by AI")

        refreshed = self.state.reset(artifact_id, target)
        metrics.counter("pipeline.reprocessed")
        logger.info("pipeline.reprocess", artifact_id=artifact_id, stage=target)
        self.on_artifact_created(artifact_id)
        return refreshed

    def recover_interrupted(self) -> int:
        """Fail stages left `processing` by a previous process so they can be reprocessed."""
        recovered = 0
        for stage in Stage:
            for artifact in self.artifacts.list_by_status(f"{stage.value}_status", StageStatus.PROCESSING):
                if self.state.fail(
                    artifact.id, stage, artifact.run_id(stage), "interrupted before completion"
                ):
                    recovered += 1
        if recovered:
            logger.warning("pipeline.recovered_interrupted", count=recovered)
        return recovered
