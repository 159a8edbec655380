"""Data models for suggestion batches and their review outcome."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shared_types import ReviewStatus, SuggestionAction

DEFAULT_PRESELECT_THRESHOLD = 0.7


@dataclass(frozen=True)
class Suggestion:
    """One proposed edit. Frozen: confidence is computed once at generation."""

    field_path: str
    action: SuggestionAction
    suggested_value: Any
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict:
        return {
            "field_path": self.field_path,
            "action": self.action.value,
            "suggested_value": self.suggested_value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Suggestion":
        return cls(
            field_path=d["field_path"],
            action=SuggestionAction(d["action"]),
            suggested_value=d.get("suggested_value"),
            confidence=float(d.get("confidence", 0.0)),
            reasoning=d.get("reasoning", ""),
        )


@dataclass
class SuggestionBatch:
    id: str
    artifact_id: str
    contact_id: str
    user_id: str
    suggestions: tuple[Suggestion, ...] = ()
    status: ReviewStatus = ReviewStatus.PENDING
    user_selections: dict[str, bool] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    reviewed_at: datetime | None = None
    applied_at: datetime | None = None
    superseded_by: str | None = None

    @property
    def field_paths(self) -> list[str]:
        """Distinct suggested paths in suggestion order."""
        return list(dict.fromkeys(s.field_path for s in self.suggestions))

    @property
    def confidence_scores(self) -> dict[str, float]:
        """Path -> highest confidence among the suggestions for that path."""
        scores: dict[str, float] = {}
        for s in self.suggestions:
            scores[s.field_path] = max(s.confidence, scores.get(s.field_path, 0.0))
        return scores

    @property
    def is_reviewable(self) -> bool:
        return self.status == ReviewStatus.PENDING and self.superseded_by is None


def preselected_paths(
    batch: SuggestionBatch, threshold: float = DEFAULT_PRESELECT_THRESHOLD
) -> list[str]:
    """Default reviewer selection: every path with a suggestion at or above threshold."""
    return list(
        dict.fromkeys(s.field_path for s in batch.suggestions if s.confidence >= threshold)
    )


def review_status_for(selected: set[str], all_paths: set[str]) -> ReviewStatus:
    if not selected:
        return ReviewStatus.REJECTED
    if selected == all_paths:
        return ReviewStatus.APPROVED
    return ReviewStatus.PARTIAL
