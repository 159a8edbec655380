"""Two-stage processing state machine for artifacts.

Each artifact carries two status fields, extraction then AI, and each moves
pending -> processing -> completed | failed. Only `reset` (reprocess) moves a
stage back to pending. Every transition runs inside a BEGIN IMMEDIATE
transaction and re-reads the artifact first, so checks and writes are atomic.

A stage start stamps a fresh run id. Completion and failure only land while the
stored run id still matches; a run superseded by a reset is silently dropped.
"""

import sqlite3
import uuid
from collections.abc import Callable
from datetime import datetime

import structlog

from db import immediate_transaction
from errors import NotFoundError
from shared_types import Stage, StageStatus

from .models import Artifact
from .processing import requires_extraction
from .store import ArtifactStore

logger = structlog.get_logger()

TRANSITIONS: dict[StageStatus, set[StageStatus]] = {
    StageStatus.PENDING: {StageStatus.PROCESSING},
    StageStatus.PROCESSING: {StageStatus.COMPLETED, StageStatus.FAILED, StageStatus.PENDING},
    StageStatus.COMPLETED: {StageStatus.PENDING},
    StageStatus.FAILED: {StageStatus.PENDING},
}


def can_transition(current: StageStatus, target: StageStatus) -> bool:
    return target in TRANSITIONS[StageStatus(current)]


def _columns(stage: Stage) -> dict[str, str]:
    prefix = stage.value
    return {
        "status": f"{prefix}_status",
        "run_id": f"{prefix}_run_id",
        "started_at": f"{prefix}_started_at",
        "completed_at": f"{prefix}_completed_at",
    }


class ProcessingStateMachine:
    """Owns every write to an artifact's stage status fields."""

    def __init__(self, store: ArtifactStore):
        self.store = store

    def _load(self, conn: sqlite3.Connection, artifact_id: str) -> Artifact:
        artifact = self.store.get(artifact_id, conn=conn)
        if artifact is None:
            raise NotFoundError(f"Artifact not found: {artifact_id}")
        return artifact

    def _load_for_run(self, conn: sqlite3.Connection, artifact_id: str, stage: Stage) -> Artifact | None:
        """Like _load, but a deleted artifact ends the run instead of raising."""
        artifact = self.store.get(artifact_id, conn=conn)
        if artifact is None:
            logger.info("state.artifact_gone", artifact_id=artifact_id, stage=stage)
        return artifact

    def begin(self, artifact_id: str, stage: Stage) -> str | None:
        """pending -> processing.

        Returns the new run id, or None if the stage is not startable or the
        artifact is gone.
        """
        cols = _columns(stage)
        with immediate_transaction(self.store.db_path) as conn:
            artifact = self._load_for_run(conn, artifact_id, stage)
            if artifact is None:
                return None

            if (
                stage == Stage.AI
                and requires_extraction(artifact.type)
                and artifact.extraction_status != StageStatus.COMPLETED
            ):
                logger.info(
                    "state.ai_blocked_on_extraction",
                    artifact_id=artifact_id,
                    extraction_status=artifact.extraction_status,
                )
                return None

            current = artifact.status(stage)
            if current != StageStatus.PENDING:
                logger.debug(
                    "state.begin_skipped", artifact_id=artifact_id, stage=stage, status=current
                )
                return None

            run_id = uuid.uuid4().hex[:16]
            self.store.update(
                artifact_id,
                {
                    cols["status"]: StageStatus.PROCESSING,
                    cols["run_id"]: run_id,
                    cols["started_at"]: datetime.now(),
                    cols["completed_at"]: None,
                },
                conn=conn,
            )
        logger.info("state.processing", artifact_id=artifact_id, stage=stage, run_id=run_id)
        return run_id

    def complete(
        self,
        artifact_id: str,
        stage: Stage,
        run_id: str,
        fields: dict | None = None,
        within: Callable[[sqlite3.Connection], None] | None = None,
    ) -> bool:
        """processing -> completed for the given run.

        `fields` are extra artifact columns written with the transition; `within`
        runs in the same transaction (used to insert the suggestion batch).
        Returns False when the run was superseded or the artifact deleted.
        """
        cols = _columns(stage)
        with immediate_transaction(self.store.db_path) as conn:
            artifact = self._load_for_run(conn, artifact_id, stage)
            if artifact is None or not self._is_current(artifact, stage, run_id):
                return False

            updates = dict(fields or {})
            updates[cols["status"]] = StageStatus.COMPLETED
            updates[cols["completed_at"]] = datetime.now()
            if stage == Stage.EXTRACTION:
                # arm the AI stage
                updates.update(
                    ai_status=StageStatus.PENDING, ai_run_id=None, ai_completed_at=None
                )
            if artifact.stage_error(stage):
                metadata = dict(artifact.metadata)
                metadata.pop(f"{stage.value}_error", None)
                updates["metadata"] = metadata

            if within is not None:
                within(conn)
            self.store.update(artifact_id, updates, conn=conn)

        logger.info("state.completed", artifact_id=artifact_id, stage=stage, run_id=run_id)
        return True

    def fail(self, artifact_id: str, stage: Stage, run_id: str | None, reason: str) -> bool:
        """processing -> failed, recording the reason in metadata."""
        cols = _columns(stage)
        with immediate_transaction(self.store.db_path) as conn:
            artifact = self._load_for_run(conn, artifact_id, stage)
            if artifact is None:
                return False
            if run_id is not None and not self._is_current(artifact, stage, run_id):
                return False
            if run_id is None and artifact.status(stage) not in (
                StageStatus.PENDING,
                StageStatus.PROCESSING,
            ):
                return False

            metadata = dict(artifact.metadata)
            metadata[f"{stage.value}_error"] = reason
            self.store.update(
                artifact_id,
                {
                    cols["status"]: StageStatus.FAILED,
                    cols["completed_at"]: datetime.now(),
                    "metadata": metadata,
                },
                conn=conn,
            )

        logger.warning("state.failed", artifact_id=artifact_id, stage=stage, reason=reason)
        return True

    def skip_extraction(self, artifact_id: str) -> bool:
        """Mark the extraction stage completed for types that have nothing to extract."""
        with immediate_transaction(self.store.db_path) as conn:
            artifact = self._load(conn, artifact_id)
            if artifact.extraction_status != StageStatus.PENDING:
                return False
            now = datetime.now()
            self.store.update(
                artifact_id,
                {
                    "extraction_status": StageStatus.COMPLETED,
                    "extraction_started_at": now,
                    "extraction_completed_at": now,
                },
                conn=conn,
            )
        return True

    def reset(self, artifact_id: str, stage: Stage) -> Artifact:
        """Re-arm a stage for reprocessing.

        A stage already pending is left untouched. Resetting extraction also
        resets the AI stage, since AI output depends on the transcription.
        Prior suggestion batches are kept.
        """
        stages = [Stage.EXTRACTION, Stage.AI] if stage == Stage.EXTRACTION else [Stage.AI]
        with immediate_transaction(self.store.db_path) as conn:
            artifact = self._load(conn, artifact_id)
            updates: dict = {}
            metadata = dict(artifact.metadata)
            for s in stages:
                if artifact.status(s) == StageStatus.PENDING:
                    continue
                cols = _columns(s)
                updates[cols["status"]] = StageStatus.PENDING
                updates[cols["run_id"]] = None
                updates[cols["completed_at"]] = None
                metadata.pop(f"{s.value}_error", None)
            if updates:
                updates["metadata"] = metadata
                self.store.update(artifact_id, updates, conn=conn)
            refreshed = self._load(conn, artifact_id)

        if updates:
            logger.info("state.reset", artifact_id=artifact_id, stages=[s.value for s in stages])
        return refreshed

    @staticmethod
    def _is_current(artifact: Artifact, stage: Stage, run_id: str) -> bool:
        if artifact.status(stage) != StageStatus.PROCESSING or artifact.run_id(stage) != run_id:
            logger.info(
                "state.stale_run_ignored",
                artifact_id=artifact.id,
                stage=stage,
                run_id=run_id,
                current_run_id=artifact.run_id(stage),
                status=artifact.status(stage),
            )
            return False
        return True
