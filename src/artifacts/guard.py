"""Guarded artifact deletion.

An artifact is evidence. It may not be removed while any contact field still
names it as source, or while an approved/partial batch cites it.
"""

import structlog

from contacts.store import ContactStore
from db import immediate_transaction
from errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from suggestions.store import SuggestionStore

from .blobs import BlobStore
from .models import Artifact
from .store import ArtifactStore

logger = structlog.get_logger()


class DeletionGuard:
    def __init__(
        self,
        artifact_store: ArtifactStore,
        contact_store: ContactStore,
        suggestion_store: SuggestionStore,
        blob_store: BlobStore | None = None,
    ):
        self.artifacts = artifact_store
        self.contacts = contact_store
        self.suggestions = suggestion_store
        self.blobs = blob_store

    def blocking_reasons(self, artifact: Artifact, conn=None) -> list[str]:
        """Human-readable reasons the artifact is still referenced. Empty means deletable."""
        reasons = []
        sourced = self.contacts.find_sourced_by(artifact.id, conn=conn)
        # the linked contact is reported first
        for contact_id in sorted(sourced, key=lambda cid: cid != artifact.contact_id):
            paths = sourced[contact_id]
            reasons.append(
                f"contact {contact_id} uses this artifact as source for: {', '.join(paths)}"
            )
        for batch_id in self.suggestions.applied_for_artifact(artifact.id, conn=conn):
            reasons.append(f"suggestion batch {batch_id} built from this artifact was applied")
        return reasons

    def delete(self, artifact_id: str, user_id: str) -> Artifact:
        """Delete an artifact the user owns. Returns the deleted record.

        Raises:
            ValidationError: missing artifact id.
            NotFoundError: no such artifact.
            AuthorizationError: artifact belongs to someone else.
            ConflictError: ARTIFACT_IS_SOURCE, with the blocking reasons.
        """
        if not artifact_id:
            raise ValidationError("artifact_id is required")

        with immediate_transaction(self.artifacts.db_path) as conn:
            artifact = self.artifacts.get(artifact_id, conn=conn)
            if artifact is None:
                raise NotFoundError(f"Artifact not found: {artifact_id}")
            if artifact.user_id != user_id:
                raise AuthorizationError("Artifact belongs to another user")

            reasons = self.blocking_reasons(artifact, conn=conn)
            if reasons:
                logger.info("artifact.delete_blocked", artifact_id=artifact_id, reasons=reasons)
                raise ConflictError(
                    "Artifact is still the source of contact data and cannot be deleted",
                    reasons=reasons,
                )
            self.artifacts.delete(artifact_id, conn=conn)

        logger.info("artifact.deleted", artifact_id=artifact_id, user_id=user_id)
        self._delete_blob(artifact)
        return artifact

    def _delete_blob(self, artifact: Artifact) -> None:
        if not artifact.audio_file_path or self.blobs is None:
            return
        try:
            self.blobs.delete(artifact.audio_file_path)
        except (OSError, ValueError) as e:
            logger.warning(
                "artifact.blob_delete_failed",
                artifact_id=artifact.id,
                blob=artifact.audio_file_path,
                error=str(e),
            )
