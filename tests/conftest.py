"""Shared test fixtures for cultivate."""

import sys
import uuid
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from artifacts.blobs import BlobStore
from artifacts.models import Artifact
from artifacts.state import ProcessingStateMachine
from artifacts.store import ArtifactStore
from contacts.models import Contact
from contacts.store import ContactStore
from shared_types import ArtifactType, ReviewStatus, SuggestionAction
from suggestions.models import Suggestion, SuggestionBatch
from suggestions.store import SuggestionStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cultivate.db"


@pytest.fixture
def artifact_store(db_path):
    return ArtifactStore(db_path)


@pytest.fixture
def contact_store(db_path):
    return ContactStore(db_path)


@pytest.fixture
def suggestion_store(db_path):
    return SuggestionStore(db_path)


@pytest.fixture
def blob_store(tmp_path):
    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def state(artifact_store):
    return ProcessingStateMachine(artifact_store)


@pytest.fixture
def contact(contact_store):
    """Contact owned by user-1 with some existing professional context."""
    return contact_store.create(
        Contact(
            id="contact-1",
            user_id="user-1",
            name="Dana Reyes",
            email="dana@example.com",
            title="Director of Engineering",
            company="Acme",
            professional_context={"goals": ["hiring"]},
        )
    )


@pytest.fixture
def make_artifact(artifact_store):
    """Factory persisting an artifact with both stages pending."""

    def _make(
        type=ArtifactType.NOTE,
        user_id="user-1",
        contact_id="contact-1",
        content="Met Dana for coffee, she wants to mentor more.",
        **kwargs,
    ) -> Artifact:
        return artifact_store.create(
            Artifact(
                id=kwargs.pop("id", uuid.uuid4().hex),
                user_id=user_id,
                type=ArtifactType(type),
                contact_id=contact_id,
                content=content,
                **kwargs,
            )
        )

    return _make


@pytest.fixture
def make_suggestion():
    def _make(field_path, action="add", value=None, confidence=0.9, reasoning="stated"):
        return Suggestion(
            field_path=field_path,
            action=SuggestionAction(action),
            suggested_value=value,
            confidence=confidence,
            reasoning=reasoning,
        )

    return _make


@pytest.fixture
def make_batch(suggestion_store):
    """Factory persisting a pending batch for an artifact."""

    def _make(artifact_id, suggestions, contact_id="contact-1", user_id="user-1", id=None):
        return suggestion_store.add(
            SuggestionBatch(
                id=id or uuid.uuid4().hex,
                artifact_id=artifact_id,
                contact_id=contact_id,
                user_id=user_id,
                suggestions=tuple(suggestions),
                status=ReviewStatus.PENDING,
            )
        )

    return _make


@pytest.fixture
def mock_provider():
    """LLM provider double returning a canned JSON answer."""
    provider = MagicMock()
    provider.generate.return_value = '{"contact_updates": []}'
    return provider
