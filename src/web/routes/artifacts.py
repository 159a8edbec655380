"""Artifact routes: ingest, inspect, reprocess, guarded delete."""

import base64
import binascii
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from artifacts.models import Artifact
from errors import AuthorizationError, CultivateError, NotFoundError, ValidationError
from shared_types import ArtifactType, Stage
from web.auth import get_current_user
from web.deps import get_components
from web.models import ArtifactCreate, ArtifactOut, BatchOut
from web.routes.suggestions import batch_out

router = APIRouter(prefix="/api/artifacts", tags=["artifacts"])


def artifact_out(a: Artifact) -> ArtifactOut:
    return ArtifactOut(
        id=a.id,
        type=a.type.value,
        contact_id=a.contact_id,
        content=a.content,
        metadata=a.metadata,
        transcription=a.transcription,
        duration_seconds=a.duration_seconds,
        extraction_status=a.extraction_status.value,
        ai_status=a.ai_status.value,
        extraction_error=a.stage_error(Stage.EXTRACTION),
        ai_error=a.stage_error(Stage.AI),
        extraction_started_at=a.extraction_started_at,
        extraction_completed_at=a.extraction_completed_at,
        ai_started_at=a.ai_started_at,
        ai_completed_at=a.ai_completed_at,
        created_at=a.created_at,
    )


def _owned(c: dict, artifact_id: str, user_id: str) -> Artifact:
    artifact = c["artifacts"].get(artifact_id)
    if artifact is None:
        raise NotFoundError(f"Artifact not found: {artifact_id}")
    if artifact.user_id != user_id:
        raise AuthorizationError("Artifact belongs to another user")
    return artifact


@router.post("", response_model=ArtifactOut, status_code=201)
async def create_artifact(
    body: ArtifactCreate,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    audio_ref = None
    if body.audio_base64:
        try:
            audio = base64.b64decode(body.audio_base64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("audio_base64 is not valid base64")
        suffix = PurePosixPath(body.audio_filename or "").suffix
        audio_ref = c["blobs"].put(audio, prefix=user["id"], suffix=suffix)

    try:
        artifact = c["pipeline"].ingest(
            user_id=user["id"],
            artifact_type=body.type,
            contact_id=body.contact_id,
            content=body.content,
            metadata=body.metadata,
            audio_file_path=audio_ref,
        )
    except CultivateError:
        if audio_ref:
            c["blobs"].delete(audio_ref)
        raise
    return artifact_out(artifact)


@router.get("", response_model=list[ArtifactOut])
async def list_artifacts(
    contact_id: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    artifact_type = None
    if type:
        try:
            artifact_type = ArtifactType(type)
        except ValueError:
            raise ValidationError(f"Unsupported artifact type: {type}")
    items = c["artifacts"].list_for_user(
        user["id"], contact_id=contact_id, artifact_type=artifact_type, limit=limit
    )
    return [artifact_out(a) for a in items]


@router.get("/{artifact_id}", response_model=ArtifactOut)
async def get_artifact(
    artifact_id: str,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    return artifact_out(_owned(c, artifact_id, user["id"]))


@router.get("/{artifact_id}/suggestions", response_model=list[BatchOut])
async def artifact_suggestion_history(
    artifact_id: str,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    _owned(c, artifact_id, user["id"])
    threshold = c["config_model"].suggestions.preselect_threshold
    return [batch_out(b, threshold) for b in c["suggestions"].list_for_artifact(artifact_id)]


@router.post("/{artifact_id}/reprocess", response_model=ArtifactOut)
async def reprocess_artifact(
    artifact_id: str,
    stage: Optional[str] = None,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    artifact = c["pipeline"].reprocess(artifact_id, user["id"], stage)
    return artifact_out(artifact)


@router.delete("/{artifact_id}", status_code=204)
async def delete_artifact(
    artifact_id: str,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    c["guard"].delete(artifact_id, user["id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
