"""Contact routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from contacts.models import Contact
from errors import AuthorizationError, NotFoundError
from shared_types import ReviewStatus
from web.auth import get_current_user
from web.deps import get_components
from web.models import BatchOut, ContactCreate, ContactOut

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def contact_out(contact: Contact) -> ContactOut:
    return ContactOut(
        id=contact.id,
        name=contact.name,
        email=contact.email,
        phone=contact.phone,
        title=contact.title,
        company=contact.company,
        location=contact.location,
        linkedin_url=contact.linkedin_url,
        notes=contact.notes,
        professional_context=contact.professional_context,
        personal_context=contact.personal_context,
        field_sources=contact.field_sources,
        updated_at=contact.updated_at,
    )


def _owned(c: dict, contact_id: str, user_id: str) -> Contact:
    contact = c["contacts"].get(contact_id)
    if contact is None:
        raise NotFoundError(f"Contact not found: {contact_id}")
    if contact.user_id != user_id:
        raise AuthorizationError("Contact belongs to another user")
    return contact


@router.post("", response_model=ContactOut, status_code=201)
async def create_contact(
    body: ContactCreate,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    contact = c["contacts"].create(
        Contact(id=uuid.uuid4().hex, user_id=user["id"], **body.model_dump())
    )
    return contact_out(contact)


@router.get("", response_model=list[ContactOut])
async def list_contacts(
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    return [contact_out(x) for x in c["contacts"].list_for_user(user["id"])]


@router.get("/{contact_id}", response_model=ContactOut)
async def get_contact(
    contact_id: str,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    return contact_out(_owned(c, contact_id, user["id"]))


@router.get("/{contact_id}/suggestions", response_model=list[BatchOut])
async def list_contact_suggestions(
    contact_id: str,
    status: Optional[ReviewStatus] = None,
    include_superseded: bool = False,
    user: dict = Depends(get_current_user),
    c: dict = Depends(get_components),
):
    from web.routes.suggestions import batch_out

    _owned(c, contact_id, user["id"])
    threshold = c["config_model"].suggestions.preselect_threshold
    batches = c["suggestions"].list_for_contact(
        contact_id, status=status, include_superseded=include_superseded
    )
    return [batch_out(b, threshold) for b in batches]
