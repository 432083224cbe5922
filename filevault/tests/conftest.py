"""
@file: conftest.py
@description:
This module provides pytest fixtures for the FileVault test suite.

Fixtures include:
- Settings pointing every store at a per-test temporary directory
- A catalog, blob store, allocator and file service wired together
- A TestClient running the full application lifespan
- API keys for users at each permission level

@notes:
- Settings are built directly (no .env file) so the developer's environment
  never leaks into tests
- The background reconciliation loop is disabled; tests call sweep() directly
"""

import pytest
from fastapi.testclient import TestClient

from filevault.core.config import Settings
from filevault.db.catalog import Catalog
from filevault.main import create_app
from filevault.schemas.files import Identity, Role
from filevault.services.allocator import IdAllocator
from filevault.services.file_service import FileService
from filevault.storage.blob_store import LocalBlobStore
from filevault.tests.utils import MASTER_KEY, TEST_USERS


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary directory."""
    return Settings(
        _env_file=None,
        MASTER_KEY=MASTER_KEY,
        DATA_DIR=str(tmp_path / "data"),
        RECONCILE_INTERVAL_SECONDS=0,
        RECONCILE_GRACE_SECONDS=60,
        MAX_UPLOAD_BYTES=1024 * 1024,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def catalog(tmp_path):
    catalog = Catalog.from_url(f"sqlite:///{tmp_path / 'catalog.db'}")
    yield catalog
    catalog.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def allocator(catalog):
    return IdAllocator(catalog, max_attempts=5)


@pytest.fixture
def file_service(catalog, blob_store, allocator):
    return FileService(catalog, blob_store, allocator, max_upload_bytes=1024)


@pytest.fixture
def alice():
    return Identity(username="alice", role=Role.READ_WRITE_SELF)


@pytest.fixture
def bob():
    return Identity(username="bob", role=Role.READ_WRITE_SELF)


@pytest.fixture
def carol():
    return Identity(username="carol", role=Role.READ_WRITE_ALL)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def test_client(app):
    """
    TestClient for the application, with the test users seeded after startup.
    """
    with TestClient(app) as client:
        for token, (username, role) in TEST_USERS.items():
            app.state.catalog.upsert_identity(token, username, role)
        yield client
