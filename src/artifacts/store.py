"""SQLite persistence for artifacts and their processing status."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from db import connection
from shared_types import ArtifactType, StageStatus

from .models import Artifact

logger = structlog.get_logger()

_DATETIME_COLUMNS = (
    "extraction_started_at",
    "extraction_completed_at",
    "ai_started_at",
    "ai_completed_at",
    "created_at",
    "updated_at",
)

_UPDATABLE_COLUMNS = {
    "contact_id",
    "content",
    "metadata",
    "transcription",
    "duration_seconds",
    "extraction_status",
    "extraction_run_id",
    "extraction_started_at",
    "extraction_completed_at",
    "ai_status",
    "ai_run_id",
    "ai_started_at",
    "ai_completed_at",
}


class ArtifactStore:
    """SQLite persistence for raw evidence records."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with connection(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS artifacts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    contact_id TEXT,
                    type TEXT NOT NULL,
                    content TEXT,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    transcription TEXT,
                    audio_file_path TEXT,
                    duration_seconds INTEGER,
                    extraction_status TEXT NOT NULL DEFAULT 'pending'
                        CHECK(extraction_status IN ('pending','processing','completed','failed')),
                    extraction_run_id TEXT,
                    extraction_started_at TIMESTAMP,
                    extraction_completed_at TIMESTAMP,
                    ai_status TEXT NOT NULL DEFAULT 'pending'
                        CHECK(ai_status IN ('pending','processing','completed','failed')),
                    ai_run_id TEXT,
                    ai_started_at TIMESTAMP,
                    ai_completed_at TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_artifacts_user ON artifacts(user_id, created_at DESC)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_artifacts_contact ON artifacts(contact_id)"
            )

    def create(self, artifact: Artifact) -> Artifact:
        """Insert a new artifact. Both stages start wherever the caller set them (pending)."""
        if not artifact.id:
            artifact.id = uuid.uuid4().hex
        with connection(self.db_path) as conn:
            conn.execute(
                """INSERT INTO artifacts
                   (id, user_id, contact_id, type, content, metadata, transcription,
                    audio_file_path, duration_seconds, extraction_status, ai_status,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    artifact.id,
                    artifact.user_id,
                    artifact.contact_id,
                    ArtifactType(artifact.type).value,
                    artifact.content,
                    json.dumps(artifact.metadata or {}),
                    artifact.transcription,
                    artifact.audio_file_path,
                    artifact.duration_seconds,
                    StageStatus(artifact.extraction_status).value,
                    StageStatus(artifact.ai_status).value,
                    artifact.created_at.isoformat(),
                    artifact.updated_at.isoformat(),
                ),
            )
        logger.info("artifact.created", artifact_id=artifact.id, type=artifact.type)
        return artifact

    def get(self, artifact_id: str, conn: sqlite3.Connection | None = None) -> Artifact | None:
        with connection(self.db_path, conn) as c:
            row = c.execute("SELECT * FROM artifacts WHERE id = ?", (artifact_id,)).fetchone()
        return self._row_to_artifact(row) if row else None

    def update(
        self, artifact_id: str, fields: dict, conn: sqlite3.Connection | None = None
    ) -> None:
        """Write the given columns. Only processing-owned columns are accepted."""
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")

        values = {k: self._to_db(k, v) for k, v in fields.items()}
        values["updated_at"] = datetime.now().isoformat()
        assignments = ", ".join(f"{k} = ?" for k in values)
        with connection(self.db_path, conn) as c:
            c.execute(
                f"UPDATE artifacts SET {assignments} WHERE id = ?",
                (*values.values(), artifact_id),
            )

    def delete(self, artifact_id: str, conn: sqlite3.Connection | None = None) -> bool:
        with connection(self.db_path, conn) as c:
            cur = c.execute("DELETE FROM artifacts WHERE id = ?", (artifact_id,))
            return cur.rowcount > 0

    def list_for_user(
        self,
        user_id: str,
        contact_id: str | None = None,
        artifact_type: ArtifactType | None = None,
        limit: int = 50,
    ) -> list[Artifact]:
        sql = "SELECT * FROM artifacts WHERE user_id = ?"
        params: list = [user_id]
        if contact_id:
            sql += " AND contact_id = ?"
            params.append(contact_id)
        if artifact_type:
            sql += " AND type = ?"
            params.append(ArtifactType(artifact_type).value)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        with connection(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_artifact(r) for r in rows]

    def list_by_status(self, stage_column: str, status: StageStatus) -> list[Artifact]:
        """Artifacts whose `<stage>_status` column equals `status` (oldest first)."""
        if stage_column not in ("extraction_status", "ai_status"):
            raise ValueError(f"Unknown status column: {stage_column}")
        with connection(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT * FROM artifacts WHERE {stage_column} = ? ORDER BY created_at ASC",
                (StageStatus(status).value,),
            ).fetchall()
        return [self._row_to_artifact(r) for r in rows]

    @staticmethod
    def _to_db(column: str, value):
        if value is None:
            return None
        if column == "metadata":
            return json.dumps(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if column.endswith("_status"):
            return StageStatus(value).value
        return value

    @staticmethod
    def _row_to_artifact(row: sqlite3.Row) -> Artifact:
        d = dict(row)
        for col in _DATETIME_COLUMNS:
            d[col] = datetime.fromisoformat(d[col]) if d.get(col) else None
        return Artifact(
            id=d["id"],
            user_id=d["user_id"],
            type=ArtifactType(d["type"]),
            contact_id=d.get("contact_id"),
            content=d.get("content"),
            metadata=json.loads(d.get("metadata") or "{}"),
            transcription=d.get("transcription"),
            audio_file_path=d.get("audio_file_path"),
            duration_seconds=d.get("duration_seconds"),
            extraction_status=StageStatus(d["extraction_status"]),
            extraction_run_id=d.get("extraction_run_id"),
            extraction_started_at=d["extraction_started_at"],
            extraction_completed_at=d["extraction_completed_at"],
            ai_status=StageStatus(d["ai_status"]),
            ai_run_id=d.get("ai_run_id"),
            ai_started_at=d["ai_started_at"],
            ai_completed_at=d["ai_completed_at"],
            created_at=d["created_at"] or datetime.now(),
            updated_at=d["updated_at"] or datetime.now(),
        )
