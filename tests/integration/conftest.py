"""Fixtures for tests that drive the application over HTTP and WebSocket."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.interface.auth import issue_session_token
from src.main import app
from tests.conftest import ProjectFixture, seed_project


@pytest.fixture
def client(db_path: str) -> Iterator[TestClient]:
    """Test client with the application lifespan running against a fresh database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seeded(client: TestClient) -> ProjectFixture:
    """Seed a project on the application's own event loop."""
    return client.portal.call(seed_project)


def auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_session_token(user_id)}"}
