"""Suggestion review routes."""

from fastapi import APIRouter, Depends

from errors import AuthorizationError, NotFoundError
from suggestions.models import SuggestionBatch, preselected_paths
from web.auth import get_current_user
from web.deps import get_components
from web.models import ApplyRequest, ApplyResponse, BatchOut, SuggestionOut
from web.routes.contacts import contact_out

router = APIRouter(prefix="/api/suggestions", tags=["suggestions"])


def batch_out(b: SuggestionBatch, threshold: float) -> BatchOut:
    return BatchOut(
        id=b.id,
        artifact_id=b.artifact_id,
        contact_id=b.contact_id,
        status=b.status.value,
        suggestions=[SuggestionOut(**s.to_dict()) for s in b.suggestions],
        field_paths=b.field_paths,
        confidence_scores=b.confidence_scores,
        preselected_paths=preselected_paths(b, threshold),
        user_selections=b.user_selections,
        superseded_by=b.superseded_by,
        created_at=b.created_at,
        reviewed_at=b.reviewed_at,
        applied_at=b.applied_at,
    )


@router.get("/{batch_id}", response_model=BatchOut)
async def get_batch(
    batch_id: str,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    batch = c["suggestions"].get(batch_id)
    if batch is None:
        raise NotFoundError(f"Suggestion batch not found: {batch_id}")
    if batch.user_id != user["id"]:
        raise AuthorizationError("Suggestion batch belongs to another user")
    return batch_out(batch, c["config_model"].suggestions.preselect_threshold)


@router.post("/apply", response_model=ApplyResponse)
async def apply_suggestions(
    body: ApplyRequest,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    result = c["reconciler"].apply(body.batch_id, body.selected_paths, user_id=user["id"])
    return ApplyResponse(
        contact=contact_out(result.contact),
        batch=batch_out(result.batch, c["config_model"].suggestions.preselect_threshold),
        applied_paths=result.applied_paths,
    )
