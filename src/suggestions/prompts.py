"""Prompt text for the suggestion model, plus per-type analysis text."""

import json

from artifacts.models import Artifact
from contacts.fields import catalogue_for_prompt
from contacts.models import Contact
from shared_types import ArtifactType

SUGGESTION_SYSTEM = """You are a relationship intelligence assistant. You read a piece of
evidence about a contact (a voice memo transcription, an email, a meeting note, a LinkedIn
profile or post) and propose precise updates to that contact's record.

VALID FIELD PATHS - only use these exact paths:
{catalogue}

IMPORTANT RULES:
- Only use field paths from this exact list; never invent new ones
- For array fields, use action "add" with the individual item(s) to add, not the whole array
- For object fields like "personal_context.family.partner", use action "update" with the complete object
- Use "remove" only when the evidence says something is no longer true
- Assign a confidence score:
  0.9-1.0: stated explicitly
  0.7-0.89: strong inference
  0.5-0.69: weak signal
  Below 0.5: do not suggest
- Suggest at most {max_suggestions} updates. Do not hallucinate: if it is not in the evidence, leave it out.

RESPONSE FORMAT: a single JSON object, no preamble, no markdown fences:
{{
  "contact_updates": [
    {{"field_path": "title", "action": "update", "suggested_value": "Senior Director of Marketing",
      "confidence": 0.9, "reasoning": "Contact said their new title is Senior Director of Marketing."}},
    {{"field_path": "personal_context.hobbies", "action": "add", "suggested_value": "Marathon running",
      "confidence": 0.75, "reasoning": "Contact is training for a marathon."}}
  ]
}}

If there is nothing to update, output: {{"contact_updates": []}}"""

_USER_PROMPT = """CONTACT: {name}

CURRENT CONTACT RECORD:
{snapshot}

EVIDENCE ({artifact_type}):
{evidence}"""


def system_prompt(max_suggestions: int) -> str:
    return SUGGESTION_SYSTEM.format(catalogue=catalogue_for_prompt(), max_suggestions=max_suggestions)


def _email_text(artifact: Artifact, contact: Contact) -> str:
    meta = artifact.metadata
    subject = meta.get("subject", "")
    sender = (meta.get("from") or {}).get("email", "")
    recipients = ", ".join(t.get("email", "") for t in meta.get("to") or [] if isinstance(t, dict))

    needle = (contact.email or contact.name or "").lower()
    if needle and needle in sender.lower():
        direction = (
            f"This email was SENT BY the contact ({contact.name}). "
            'First person ("I", "my", "we") refers to the contact.'
        )
    elif needle and needle in recipients.lower():
        direction = (
            f"This email was SENT TO the contact ({contact.name}) by someone else. "
            'First person refers to the SENDER, not the contact. Only extract what is '
            "explicitly about the contact."
        )
    else:
        direction = (
            "Unclear email direction. Only extract information that is explicitly about the contact."
        )

    return (
        f"Subject: {subject}\n\nFrom: {sender}\nTo: {recipients}\n"
        f"EMAIL DIRECTION: {direction}\n\nContent:\n{artifact.content or ''}"
    )


def _linkedin_post_text(artifact: Artifact, contact: Contact) -> str:
    meta = artifact.metadata
    author = meta.get("author", "unknown")
    if meta.get("is_author"):
        authorship = (
            f"This post was AUTHORED BY the contact ({contact.name}); it reveals their "
            "opinions, activities and achievements."
        )
    else:
        authorship = (
            f"This post was authored by {author}, not the contact. Only extract what is "
            "explicitly about the contact or where they are mentioned."
        )
    engagement = meta.get("engagement") or {}
    return (
        f"LinkedIn {meta.get('post_type', 'post')} by {author}\n"
        f"Posted on: {meta.get('posted_at', 'unknown')}\n"
        f"POST AUTHORSHIP: {authorship}\n\n"
        f"Post Content:\n{meta.get('content', '')}\n\n"
        f"Hashtags: {', '.join(meta.get('hashtags') or [])}\n"
        f"Mentions: {', '.join(meta.get('mentions') or [])}\n\n"
        f"Engagement: {engagement.get('likes', 0)} likes, "
        f"{engagement.get('comments', 0)} comments, {engagement.get('shares', 0)} shares"
    )


def _linkedin_profile_text(artifact: Artifact, contact: Contact) -> str:
    meta = artifact.metadata
    experience = "\n".join(
        f"- {e.get('title', '')} at {e.get('company', '')} ({e.get('duration') or 'Present'})"
        for e in meta.get("experience") or []
    )
    education = "\n".join(
        f"- {e.get('degree', '')} from {e.get('school', '')} ({e.get('year') or 'N/A'})"
        for e in meta.get("education") or []
    )
    certifications = ", ".join(c.get("name", "") for c in meta.get("certifications") or [])
    return (
        f"LinkedIn Profile for {contact.name}\n\n"
        f"Headline: {meta.get('headline', '')}\n\n"
        f"About Section:\n{meta.get('about', '')}\n\n"
        f"Experience:\n{experience}\n\n"
        f"Education:\n{education}\n\n"
        f"Skills: {', '.join(meta.get('skills') or [])}\n\n"
        f"Certifications: {certifications}"
    )


def analysis_text(artifact: Artifact, contact: Contact) -> str:
    """Evidence text handed to the model, shaped by artifact type."""
    if artifact.type == ArtifactType.EMAIL:
        return _email_text(artifact, contact)
    if artifact.type == ArtifactType.LINKEDIN_POST:
        return _linkedin_post_text(artifact, contact)
    if artifact.type == ArtifactType.LINKEDIN_PROFILE:
        return _linkedin_profile_text(artifact, contact)
    return artifact.analysis_text


def user_prompt(artifact: Artifact, contact: Contact, max_chars: int) -> str:
    evidence = analysis_text(artifact, contact)[:max_chars]
    return _USER_PROMPT.format(
        name=contact.name,
        snapshot=json.dumps(contact.snapshot(), indent=2, default=str),
        artifact_type=artifact.type,
        evidence=evidence,
    )
