"""Contact aggregate with structured context and per-field provenance."""

from dataclasses import dataclass, field
from datetime import datetime

DIRECT_COLUMNS = ("name", "email", "phone", "title", "company", "location", "linkedin_url", "notes")


@dataclass
class Contact:
    id: str
    user_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    title: str | None = None
    company: str | None = None
    location: str | None = None
    linkedin_url: str | None = None
    notes: str | None = None
    professional_context: dict = field(default_factory=dict)
    personal_context: dict = field(default_factory=dict)
    # dotted field path -> id of the artifact that last supplied or altered it
    field_sources: dict[str, str] = field(default_factory=dict)
    revision: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def snapshot(self) -> dict:
        """Plain-dict view handed to the suggestion generator."""
        data = {col: getattr(self, col) for col in DIRECT_COLUMNS}
        data["professional_context"] = self.professional_context
        data["personal_context"] = self.personal_context
        return data

    def sourced_paths(self, artifact_id: str) -> list[str]:
        return sorted(p for p, src in self.field_sources.items() if src == artifact_id)
