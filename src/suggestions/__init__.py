"""Suggestion batches: generation, persistence, and reconciliation into contacts."""

from .models import Suggestion, SuggestionBatch, preselected_paths
from .store import SuggestionStore

__all__ = ["Suggestion", "SuggestionBatch", "SuggestionStore", "preselected_paths"]
