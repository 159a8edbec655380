"""Closed registry of contact field paths and their merge kinds.

Field paths travel as dotted strings (`professional_context.goals`). Internally
they are parsed into `FieldPath` (context root + key path) and looked up here,
so merge behaviour is decided by declaration, not by string patterns.
"""

from dataclasses import dataclass
from enum import StrEnum

from errors import ValidationError


class ContextRoot(StrEnum):
    PROFESSIONAL = "professional_context"
    PERSONAL = "personal_context"


class FieldKind(StrEnum):
    SCALAR = "scalar"
    SET = "set"
    OBJECT = "object"


@dataclass(frozen=True)
class FieldPath:
    """Structured field address. `root` is None for top-level contact columns."""

    root: ContextRoot | None
    keys: tuple[str, ...]

    @classmethod
    def parse(cls, dotted: str) -> "FieldPath":
        if not isinstance(dotted, str) or not dotted.strip():
            raise ValidationError("Field path must be a non-empty string")
        parts = tuple(dotted.strip().split("."))
        if any(not p for p in parts):
            raise ValidationError(f"Malformed field path: {dotted}")
        try:
            root = ContextRoot(parts[0])
        except ValueError:
            return cls(root=None, keys=parts)
        if len(parts) == 1:
            raise ValidationError(f"Field path must address a key inside {parts[0]}")
        return cls(root=root, keys=parts[1:])

    @property
    def dotted(self) -> str:
        if self.root is None:
            return ".".join(self.keys)
        return ".".join((self.root.value, *self.keys))

    @property
    def is_top_level(self) -> bool:
        return self.root is None

    def __str__(self) -> str:
        return self.dotted


DIRECT_FIELDS: dict[str, FieldKind] = {
    "name": FieldKind.SCALAR,
    "email": FieldKind.SCALAR,
    "phone": FieldKind.SCALAR,
    "title": FieldKind.SCALAR,
    "company": FieldKind.SCALAR,
    "location": FieldKind.SCALAR,
    "linkedin_url": FieldKind.SCALAR,
    "notes": FieldKind.SCALAR,
}

# Top-level columns that must always hold a value.
REQUIRED_FIELDS = frozenset({"name"})

PERSONAL_FIELDS: dict[str, FieldKind] = {
    "family.partner": FieldKind.OBJECT,
    "family.partner.name": FieldKind.SCALAR,
    "family.partner.relationship": FieldKind.SCALAR,
    "family.partner.details": FieldKind.SCALAR,
    "family.children": FieldKind.SET,
    "family.parents": FieldKind.SCALAR,
    "family.siblings": FieldKind.SCALAR,
    "interests": FieldKind.SET,
    "values": FieldKind.SET,
    "milestones": FieldKind.SET,
    "anecdotes": FieldKind.SET,
    "communication_style": FieldKind.SCALAR,
    "relationship_goal": FieldKind.SCALAR,
    "conversation_starters.personal": FieldKind.SET,
    "conversation_starters.professional": FieldKind.SET,
    "key_life_events": FieldKind.SET,
    "current_challenges": FieldKind.SET,
    "upcoming_changes": FieldKind.SET,
    "living_situation": FieldKind.SCALAR,
    "hobbies": FieldKind.SET,
    "travel_plans": FieldKind.SET,
    "motivations": FieldKind.SET,
    "education": FieldKind.SET,
}

PROFESSIONAL_FIELDS: dict[str, FieldKind] = {
    "current_role": FieldKind.SCALAR,
    "current_company": FieldKind.SCALAR,
    "goals": FieldKind.SET,
    "background.focus_areas": FieldKind.SCALAR,
    "background.previous_companies": FieldKind.SET,
    "background.expertise_areas": FieldKind.SET,
    "background.education": FieldKind.SET,
    "current_ventures": FieldKind.SCALAR,
    "speaking_topics": FieldKind.SET,
    "achievements": FieldKind.SET,
    "current_role_description": FieldKind.SCALAR,
    "key_responsibilities": FieldKind.SET,
    "team_details": FieldKind.SCALAR,
    "work_challenges": FieldKind.SET,
    "networking_objectives": FieldKind.SET,
    "skill_development": FieldKind.SET,
    "career_transitions": FieldKind.SET,
    "projects_involved": FieldKind.SET,
    "collaborations": FieldKind.SET,
    "upcoming_projects": FieldKind.SET,
    "skills": FieldKind.SET,
    "industry_knowledge": FieldKind.SET,
    "mentions.colleagues": FieldKind.SET,
    "mentions.clients": FieldKind.SET,
    "mentions.competitors": FieldKind.SET,
    "mentions.collaborators": FieldKind.SET,
    "mentions.mentors": FieldKind.SET,
    "mentions.industry_contacts": FieldKind.SET,
    "opportunities_to_help": FieldKind.SET,
    "introduction_needs": FieldKind.SET,
    "resource_needs": FieldKind.SET,
    "pending_requests": FieldKind.SET,
    "collaboration_opportunities": FieldKind.SET,
}

_CONTEXT_FIELDS = {
    ContextRoot.PERSONAL: PERSONAL_FIELDS,
    ContextRoot.PROFESSIONAL: PROFESSIONAL_FIELDS,
}


def kind_of(path: FieldPath) -> FieldKind | None:
    """Declared kind for a path, or None if it is not in the registry."""
    if path.root is None:
        return DIRECT_FIELDS.get(".".join(path.keys))
    return _CONTEXT_FIELDS[path.root].get(".".join(path.keys))


def resolve(dotted: str) -> tuple[FieldPath, FieldKind]:
    """Parse and look up a dotted path; unknown paths are a ValidationError."""
    path = FieldPath.parse(dotted)
    kind = kind_of(path)
    if kind is None:
        raise ValidationError(f"Unknown field path: {dotted}")
    return path, kind


def is_valid_path(dotted: str) -> bool:
    try:
        resolve(dotted)
    except ValidationError:
        return False
    return True


def all_paths() -> list[str]:
    paths = list(DIRECT_FIELDS)
    for root, fields in _CONTEXT_FIELDS.items():
        paths.extend(f"{root.value}.{key}" for key in fields)
    return paths


def is_required(path: FieldPath) -> bool:
    return path.is_top_level and path.dotted in REQUIRED_FIELDS


def check_value(kind: FieldKind, action: str, value, required: bool = False) -> str | None:
    """Return a reason the value does not fit the field kind, or None.

    Set fields accept one item or a list of items; remove may omit the value.
    Required fields can be updated but never removed or blanked.
    """
    if required and (action == "remove" or value is None or (isinstance(value, str) and not value.strip())):
        return "required field cannot be removed or blanked"
    if action == "remove":
        return None
    if kind == FieldKind.SET:
        if value is None or value == []:
            return "set field needs at least one value"
        return None
    if kind == FieldKind.OBJECT:
        return None if isinstance(value, dict) else f"expects an object, got {type(value).__name__}"
    if isinstance(value, (dict, list)):
        return f"expects a scalar, got {type(value).__name__}"
    return None


def catalogue_for_prompt() -> str:
    """Render the registry as the path list handed to the suggestion model."""
    lines = ["DIRECT CONTACT FIELDS:"]
    lines += [f'- "{p}" (string)' for p in DIRECT_FIELDS]
    for title, root in (("PERSONAL CONTEXT:", ContextRoot.PERSONAL), ("PROFESSIONAL CONTEXT:", ContextRoot.PROFESSIONAL)):
        lines.append("")
        lines.append(title)
        for key, kind in _CONTEXT_FIELDS[root].items():
            if kind == FieldKind.SET:
                hint = 'array of strings - use action "add" for individual items'
            elif kind == FieldKind.OBJECT:
                hint = 'object - use action "update" with the complete object'
            else:
                hint = "string"
            lines.append(f'- "{root.value}.{key}" ({hint})')
    return "\n".join(lines)
