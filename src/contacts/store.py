"""SQLite persistence for contacts. Context objects and field_sources are JSON columns."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from db import connection
from errors import ReconciliationError

from .models import DIRECT_COLUMNS, Contact

logger = structlog.get_logger()


class ContactStore:
    """SQLite persistence for contact records."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with connection(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contacts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    email TEXT,
                    phone TEXT,
                    title TEXT,
                    company TEXT,
                    location TEXT,
                    linkedin_url TEXT,
                    notes TEXT,
                    professional_context TEXT NOT NULL DEFAULT '{}',
                    personal_context TEXT NOT NULL DEFAULT '{}',
                    field_sources TEXT NOT NULL DEFAULT '{}',
                    revision INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_contacts_user ON contacts(user_id)")

    def create(self, contact: Contact) -> Contact:
        if not contact.id:
            contact.id = uuid.uuid4().hex
        with connection(self.db_path) as conn:
            conn.execute(
                f"""INSERT INTO contacts
                   (id, user_id, {", ".join(DIRECT_COLUMNS)}, professional_context,
                    personal_context, field_sources, revision, created_at, updated_at)
                   VALUES ({", ".join("?" for _ in range(len(DIRECT_COLUMNS) + 8))})""",
                (
                    contact.id,
                    contact.user_id,
                    *(getattr(contact, c) for c in DIRECT_COLUMNS),
                    json.dumps(contact.professional_context or {}),
                    json.dumps(contact.personal_context or {}),
                    json.dumps(contact.field_sources or {}),
                    contact.revision,
                    contact.created_at.isoformat(),
                    contact.updated_at.isoformat(),
                ),
            )
        return contact

    def get(self, contact_id: str, conn: sqlite3.Connection | None = None) -> Contact | None:
        with connection(self.db_path, conn) as c:
            row = c.execute("SELECT * FROM contacts WHERE id = ?", (contact_id,)).fetchone()
        return self._row_to_contact(row) if row else None

    def save(self, contact: Contact, conn: sqlite3.Connection | None = None) -> Contact:
        """Write the full record if the stored revision still matches, then bump it."""
        now = datetime.now()
        with connection(self.db_path, conn) as c:
            cur = c.execute(
                f"""UPDATE contacts SET
                    {", ".join(f"{col} = ?" for col in DIRECT_COLUMNS)},
                    professional_context = ?, personal_context = ?, field_sources = ?,
                    revision = revision + 1, updated_at = ?
                    WHERE id = ? AND revision = ?""",
                (
                    *(getattr(contact, col) for col in DIRECT_COLUMNS),
                    json.dumps(contact.professional_context or {}),
                    json.dumps(contact.personal_context or {}),
                    json.dumps(contact.field_sources or {}),
                    now.isoformat(),
                    contact.id,
                    contact.revision,
                ),
            )
            if cur.rowcount == 0:
                raise ReconciliationError(
                    f"Contact {contact.id} changed concurrently (revision {contact.revision})"
                )
        contact.revision += 1
        contact.updated_at = now
        return contact

    def list_for_user(self, user_id: str, limit: int = 100) -> list[Contact]:
        with connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM contacts WHERE user_id = ? ORDER BY name ASC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [self._row_to_contact(r) for r in rows]

    def find_sourced_by(
        self, artifact_id: str, conn: sqlite3.Connection | None = None
    ) -> dict[str, list[str]]:
        """Contacts whose field_sources point at the artifact: {contact_id: [paths]}."""
        with connection(self.db_path, conn) as c:
            rows = c.execute(
                """SELECT contacts.id AS contact_id, fs.key AS path
                   FROM contacts, json_each(contacts.field_sources) AS fs
                   WHERE fs.value = ?
                   ORDER BY contacts.id, fs.key""",
                (artifact_id,),
            ).fetchall()
        found: dict[str, list[str]] = {}
        for r in rows:
            found.setdefault(r["contact_id"], []).append(r["path"])
        return found

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> Contact:
        d = dict(row)
        created = d.get("created_at")
        updated = d.get("updated_at")
        return Contact(
            id=d["id"],
            user_id=d["user_id"],
            **{col: d.get(col) for col in DIRECT_COLUMNS},
            professional_context=json.loads(d.get("professional_context") or "{}"),
            personal_context=json.loads(d.get("personal_context") or "{}"),
            field_sources=json.loads(d.get("field_sources") or "{}"),
            revision=d.get("revision") or 0,
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
            updated_at=datetime.fromisoformat(updated) if updated else datetime.now(),
        )
