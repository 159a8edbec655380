"""Contacts: the record being enriched, its field registry and merge rules."""

from .fields import ContextRoot, FieldKind, FieldPath
from .models import Contact
from .store import ContactStore

__all__ = [
    "Contact",
    "ContactStore",
    "ContextRoot",
    "FieldKind",
    "FieldPath",
]
