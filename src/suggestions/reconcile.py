"""Reconciliation: merge a reviewer-selected subset of a batch into its contact.

The contact write and the batch review write commit together in one
BEGIN IMMEDIATE transaction. Both rows are re-read inside it, so two
reconciliations against the same contact cannot interleave.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from artifacts.store import ArtifactStore
from contacts.fields import check_value, is_required, resolve
from contacts.merge import apply_change
from contacts.models import Contact
from contacts.store import ContactStore
from db import immediate_transaction
from errors import AuthorizationError, NotFoundError, ReconciliationError, ValidationError
from observability import metrics
from shared_types import ReviewStatus

from .models import SuggestionBatch, review_status_for
from .store import SuggestionStore

logger = structlog.get_logger()


@dataclass
class ReconciliationResult:
    contact: Contact
    batch: SuggestionBatch
    applied_paths: list[str]


class ReconciliationEngine:
    def __init__(
        self,
        suggestion_store: SuggestionStore,
        contact_store: ContactStore,
        artifact_store: ArtifactStore,
    ):
        self.suggestions = suggestion_store
        self.contacts = contact_store
        self.artifacts = artifact_store

    def apply(
        self,
        batch_id: str,
        selected_paths: Iterable[str],
        user_id: str | None = None,
    ) -> ReconciliationResult:
        """Apply the selected field paths of a pending batch.

        Args:
            batch_id: Batch to review.
            selected_paths: Subset of the batch's field paths. Empty rejects the batch.
            user_id: When given, must own the batch.

        Raises:
            ValidationError: missing batch id, a selected path the batch never
                suggested, or a change that would blank a required field.
            NotFoundError: batch or contact is gone.
            AuthorizationError: batch belongs to another user.
            ReconciliationError: batch already reviewed or superseded, or its
                source artifact no longer exists.
        """
        if not batch_id:
            raise ValidationError("batch_id is required")
        selected = set(selected_paths or ())

        with immediate_transaction(self.suggestions.db_path) as conn:
            batch = self.suggestions.get(batch_id, conn=conn)
            if batch is None:
                raise NotFoundError(f"Suggestion batch not found: {batch_id}")
            if user_id is not None and batch.user_id != user_id:
                raise AuthorizationError("Suggestion batch belongs to another user")
            if batch.superseded_by:
                raise ReconciliationError(
                    f"Batch {batch_id} was superseded by {batch.superseded_by}",
                    superseded_by=batch.superseded_by,
                )
            if batch.status != ReviewStatus.PENDING:
                raise ReconciliationError(f"Batch {batch_id} was already reviewed ({batch.status})")

            all_paths = set(batch.field_paths)
            unknown = selected - all_paths
            if unknown:
                raise ValidationError(
                    f"Selected paths not in batch: {', '.join(sorted(unknown))}"
                )

            contact = self.contacts.get(batch.contact_id, conn=conn)
            if contact is None:
                raise NotFoundError(f"Contact not found: {batch.contact_id}")

            now = datetime.now()
            if not selected:
                self.suggestions.record_review(
                    batch_id, ReviewStatus.REJECTED, {}, reviewed_at=now, conn=conn
                )
                refreshed = self.suggestions.get(batch_id, conn=conn)
                logger.info("reconcile.rejected", batch_id=batch_id, contact_id=contact.id)
                metrics.counter("reconcile.rejected")
                return ReconciliationResult(contact=contact, batch=refreshed, applied_paths=[])

            if self.artifacts.get(batch.artifact_id, conn=conn) is None:
                raise ReconciliationError(
                    f"Source artifact {batch.artifact_id} no longer exists"
                )

            changes = []
            for suggestion in batch.suggestions:
                if suggestion.field_path not in selected:
                    continue
                path, kind = resolve(suggestion.field_path)
                problem = check_value(
                    kind, suggestion.action, suggestion.suggested_value, required=is_required(path)
                )
                if problem:
                    raise ValidationError(f"Cannot apply {path.dotted}: {problem}")
                changes.append((suggestion, path, kind))

            applied: list[str] = []
            for suggestion, path, kind in changes:
                apply_change(contact, path, kind, suggestion.action, suggestion.suggested_value)
                contact.field_sources[path.dotted] = batch.artifact_id
                if path.dotted not in applied:
                    applied.append(path.dotted)

            self.contacts.save(contact, conn=conn)

            status = review_status_for(selected, all_paths)
            selections = {p: p in selected for p in batch.field_paths}
            if not self.suggestions.record_review(
                batch_id, status, selections, reviewed_at=now, applied_at=now, conn=conn
            ):
                raise ReconciliationError(f"Batch {batch_id} changed during review")
            refreshed = self.suggestions.get(batch_id, conn=conn)

        logger.info(
            "reconcile.applied",
            batch_id=batch_id,
            contact_id=contact.id,
            status=status,
            paths=applied,
        )
        metrics.counter(f"reconcile.{status.value}")
        return ReconciliationResult(contact=contact, batch=refreshed, applied_paths=applied)
