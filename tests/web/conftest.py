"""Shared fixtures for web API tests."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from cli.config_models import CultivateConfig
from cli.utils import get_components as build_components
from suggestions.generator import LLMSuggestionGenerator


@pytest.fixture
def jwt_secret():
    return "test-jwt-secret"


def _make_auth_token(jwt_secret, user_id, email="u@test.com", name="U"):
    return jwt.encode(
        {"sub": user_id, "email": email, "name": name},
        jwt_secret,
        algorithm="HS256",
    )


@pytest.fixture
def auth_headers(jwt_secret):
    return {"Authorization": f"Bearer {_make_auth_token(jwt_secret, 'user-1')}"}


@pytest.fixture
def auth_headers_b(jwt_secret):
    """Second user for isolation tests."""
    return {"Authorization": f"Bearer {_make_auth_token(jwt_secret, 'user-2', 'b@test.com', 'UserB')}"}


@pytest.fixture
def components(db_path, tmp_path, mock_provider, monkeypatch):
    """Real stores on the per-test database; the LLM is a canned mock."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    config = CultivateConfig(paths={"db": db_path, "blobs_dir": tmp_path / "blobs"})
    c = build_components(config)
    c["pipeline"].generator = LLMSuggestionGenerator(provider=mock_provider)
    return c


@pytest.fixture
def client(jwt_secret, components):
    from web.app import app
    from web.deps import get_components

    with patch.dict(os.environ, {"CULTIVATE_JWT_SECRET": jwt_secret}):
        app.dependency_overrides[get_components] = lambda: components
        yield TestClient(app)
        app.dependency_overrides.clear()
