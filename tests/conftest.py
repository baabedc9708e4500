"""Shared fixtures for the CMS test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cms.auth import AuthStore
from cms.config import Settings
from cms.main import create_app
from cms.repository import FileRepository

# Lowest cost bcrypt accepts; keeps hashing fast in tests.
TEST_ROUNDS = 4

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "secret-password"


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    """Storage root nested inside tmp_path so '..' escapes stay inside tmp_path."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture()
def repository(data_dir: Path) -> FileRepository:
    return FileRepository(data_dir)


@pytest.fixture()
def settings(tmp_path: Path, data_dir: Path) -> Settings:
    return Settings(
        data_dir=data_dir,
        auth_file=tmp_path / "auth" / "users.yaml",
        secret_key="test-secret",
        bcrypt_rounds=TEST_ROUNDS,
    )


@pytest.fixture()
def auth_store(settings: Settings) -> AuthStore:
    return AuthStore(settings.auth_file, rounds=TEST_ROUNDS)


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    """FastAPI test client backed by temp directories."""
    return TestClient(create_app(settings))


@pytest.fixture()
def signed_in_client(client: TestClient, auth_store: AuthStore) -> TestClient:
    """Test client whose session already holds the admin user."""
    assert auth_store.register(ADMIN_USERNAME, ADMIN_PASSWORD) == []
    resp = client.post(
        "/users/signin",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200
    return client
