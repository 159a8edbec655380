"""Shared enums and types for cultivate."""

from enum import StrEnum


class ArtifactType(StrEnum):
    VOICE_MEMO = "voice_memo"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"
    LINKEDIN_PROFILE = "linkedin_profile"
    LINKEDIN_POST = "linkedin_post"
    POG = "pog"
    ASK = "ask"


class Stage(StrEnum):
    EXTRACTION = "extraction"
    AI = "ai"


class StageStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SuggestionAction(StrEnum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class ReviewStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    PARTIAL = "partial"
    REJECTED = "rejected"
