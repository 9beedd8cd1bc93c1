from __future__ import annotations

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Settings are read at import time, so the environment goes first
os.environ.setdefault("ENV", "local")
os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("DATA_BACKEND", "sql")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOCAL_STORE_ROOT", tempfile.mkdtemp(prefix="refugio-tests-"))
os.environ.setdefault("JWT_SECRET", "test_jwt_secret_32_chars_minimum")
os.environ.setdefault("SECURITY_HEADERS_ENABLED", "true")

from refugio.api.deps import get_registry  # noqa: E402
from refugio.collections import EVENTS, MINISTRIES  # noqa: E402
from refugio.data.sql import SqlDataClient  # noqa: E402
from refugio.main import app  # noqa: E402
from refugio.repositories import RepositoryRegistry  # noqa: E402
from refugio.storage.file import FileKeyValueStore  # noqa: E402


@pytest.fixture
def sql_client():
    client = SqlDataClient.from_url("sqlite://", create_schema=True)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def kv_store(tmp_path) -> FileKeyValueStore:
    return FileKeyValueStore(tmp_path / "store")


@pytest.fixture
def sql_registry(sql_client) -> RepositoryRegistry:
    return RepositoryRegistry(backend="sql", client=sql_client)


@pytest.fixture
def local_registry(kv_store) -> RepositoryRegistry:
    # Empty documents keep the seed rows out of the way
    for collection in (EVENTS, MINISTRIES):
        kv_store.set(collection.storage_key, "[]")
    return RepositoryRegistry(backend="local", store=kv_store)


@pytest.fixture(params=["sql", "local"])
def registry(request) -> RepositoryRegistry:
    return request.getfixturevalue(f"{request.param}_registry")


@pytest.fixture
def client(sql_registry) -> TestClient:
    app.dependency_overrides[get_registry] = lambda: sql_registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(sql_registry):
    """Create a profile and return dev-mode auth headers for it."""

    def _make(email: str, role: str = "user") -> dict[str, str]:
        sql_registry.get("profiles").create({"email": email, "role": role})
        return {"Authorization": f"Bearer dev_{email}"}

    return _make


@pytest.fixture
def staff_headers(make_user) -> dict[str, str]:
    return make_user("pastor@example.com", role="pastor")
