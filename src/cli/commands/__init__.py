"""CLI command modules."""

from .artifacts import artifacts
from .contacts import contacts
from .suggestions import suggestions

__all__ = ["artifacts", "contacts", "suggestions"]
