"""Pydantic request/response schemas for the web API."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

# --- Artifacts ---


class ArtifactCreate(BaseModel):
    type: str
    contact_id: Optional[str] = None
    content: Optional[str] = Field(None, max_length=200_000)
    metadata: dict = Field(default_factory=dict)
    audio_base64: Optional[str] = None
    audio_filename: Optional[str] = None


class ArtifactOut(BaseModel):
    id: str
    type: str
    contact_id: Optional[str] = None
    content: Optional[str] = None
    metadata: dict = {}
    transcription: Optional[str] = None
    duration_seconds: Optional[int] = None
    extraction_status: str
    ai_status: str
    extraction_error: Optional[str] = None
    ai_error: Optional[str] = None
    extraction_started_at: Optional[datetime] = None
    extraction_completed_at: Optional[datetime] = None
    ai_started_at: Optional[datetime] = None
    ai_completed_at: Optional[datetime] = None
    created_at: datetime


# --- Contacts ---


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None
    professional_context: dict = Field(default_factory=dict)
    personal_context: dict = Field(default_factory=dict)


class ContactOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None
    professional_context: dict = {}
    personal_context: dict = {}
    field_sources: dict[str, str] = {}
    updated_at: datetime


# --- Suggestions ---


class SuggestionOut(BaseModel):
    field_path: str
    action: str
    suggested_value: Any = None
    confidence: float
    reasoning: str = ""


class BatchOut(BaseModel):
    id: str
    artifact_id: str
    contact_id: str
    status: str
    suggestions: list[SuggestionOut]
    field_paths: list[str]
    confidence_scores: dict[str, float]
    preselected_paths: list[str]
    user_selections: dict[str, bool] = {}
    superseded_by: Optional[str] = None
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None


class ApplyRequest(BaseModel):
    batch_id: str = Field(..., min_length=1)
    selected_paths: list[str] = Field(default_factory=list)


class ApplyResponse(BaseModel):
    contact: ContactOut
    batch: BatchOut
    applied_paths: list[str]
