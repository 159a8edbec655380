"""SQLite persistence for suggestion batches."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from db import connection
from shared_types import ReviewStatus

from .models import Suggestion, SuggestionBatch

logger = structlog.get_logger()

APPLIED_STATUSES = (ReviewStatus.APPROVED, ReviewStatus.PARTIAL)


class SuggestionStore:
    """Batches are inserted once; afterwards only review columns change."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with connection(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS suggestion_batches (
                    id TEXT PRIMARY KEY,
                    artifact_id TEXT NOT NULL,
                    contact_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    suggestions TEXT NOT NULL,
                    field_paths TEXT NOT NULL,
                    confidence_scores TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK(status IN ('pending','approved','partial','rejected')),
                    user_selections TEXT NOT NULL DEFAULT '{}',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    reviewed_at TIMESTAMP,
                    applied_at TIMESTAMP,
                    superseded_by TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_batches_artifact ON suggestion_batches(artifact_id, status)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_batches_contact ON suggestion_batches(contact_id, created_at DESC)"
            )

    def add(self, batch: SuggestionBatch, conn: sqlite3.Connection | None = None) -> SuggestionBatch:
        """Insert a batch and supersede older still-pending batches of the same artifact."""
        if not batch.id:
            batch.id = uuid.uuid4().hex
        with connection(self.db_path, conn) as c:
            c.execute(
                """UPDATE suggestion_batches SET superseded_by = ?
                   WHERE artifact_id = ? AND status = 'pending' AND superseded_by IS NULL""",
                (batch.id, batch.artifact_id),
            )
            c.execute(
                """INSERT INTO suggestion_batches
                   (id, artifact_id, contact_id, user_id, suggestions, field_paths,
                    confidence_scores, status, user_selections, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    batch.id,
                    batch.artifact_id,
                    batch.contact_id,
                    batch.user_id,
                    json.dumps([s.to_dict() for s in batch.suggestions]),
                    json.dumps(batch.field_paths),
                    json.dumps(batch.confidence_scores),
                    ReviewStatus(batch.status).value,
                    json.dumps(batch.user_selections),
                    batch.created_at.isoformat(),
                ),
            )
        return batch

    def get(self, batch_id: str, conn: sqlite3.Connection | None = None) -> SuggestionBatch | None:
        with connection(self.db_path, conn) as c:
            row = c.execute(
                "SELECT * FROM suggestion_batches WHERE id = ?", (batch_id,)
            ).fetchone()
        return self._row_to_batch(row) if row else None

    def record_review(
        self,
        batch_id: str,
        status: ReviewStatus,
        user_selections: dict[str, bool],
        reviewed_at: datetime,
        applied_at: datetime | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """pending -> terminal review state, exactly once. False if already reviewed."""
        with connection(self.db_path, conn) as c:
            cur = c.execute(
                """UPDATE suggestion_batches
                   SET status = ?, user_selections = ?, reviewed_at = ?, applied_at = ?
                   WHERE id = ? AND status = 'pending' AND superseded_by IS NULL""",
                (
                    ReviewStatus(status).value,
                    json.dumps(user_selections),
                    reviewed_at.isoformat(),
                    applied_at.isoformat() if applied_at else None,
                    batch_id,
                ),
            )
            return cur.rowcount > 0

    def list_for_artifact(self, artifact_id: str) -> list[SuggestionBatch]:
        with connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM suggestion_batches WHERE artifact_id = ? ORDER BY created_at DESC",
                (artifact_id,),
            ).fetchall()
        return [self._row_to_batch(r) for r in rows]

    def list_for_contact(
        self, contact_id: str, status: ReviewStatus | None = None, include_superseded: bool = False
    ) -> list[SuggestionBatch]:
        sql = "SELECT * FROM suggestion_batches WHERE contact_id = ?"
        params: list = [contact_id]
        if status:
            sql += " AND status = ?"
            params.append(ReviewStatus(status).value)
        if not include_superseded:
            sql += " AND superseded_by IS NULL"
        sql += " ORDER BY created_at DESC"
        with connection(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_batch(r) for r in rows]

    def applied_for_artifact(
        self, artifact_id: str, conn: sqlite3.Connection | None = None
    ) -> list[str]:
        """Ids of approved/partial batches that used this artifact as evidence."""
        with connection(self.db_path, conn) as c:
            rows = c.execute(
                """SELECT id FROM suggestion_batches
                   WHERE artifact_id = ? AND status IN (?, ?)""",
                (artifact_id, *(s.value for s in APPLIED_STATUSES)),
            ).fetchall()
        return [r["id"] for r in rows]

    @staticmethod
    def _row_to_batch(row: sqlite3.Row) -> SuggestionBatch:
        d = dict(row)

        def _dt(key):
            return datetime.fromisoformat(d[key]) if d.get(key) else None

        return SuggestionBatch(
            id=d["id"],
            artifact_id=d["artifact_id"],
            contact_id=d["contact_id"],
            user_id=d["user_id"],
            suggestions=tuple(Suggestion.from_dict(s) for s in json.loads(d["suggestions"])),
            status=ReviewStatus(d["status"]),
            user_selections=json.loads(d.get("user_selections") or "{}"),
            created_at=_dt("created_at") or datetime.now(),
            reviewed_at=_dt("reviewed_at"),
            applied_at=_dt("applied_at"),
            superseded_by=d.get("superseded_by"),
        )
