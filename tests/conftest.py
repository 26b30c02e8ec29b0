"""Test configuration and fixtures for the run vault.

This module provides isolated test environments:
- Temporary database (SQLite)
- Temporary local object storage
- Users with admin and member roles
"""
import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

# Ensure runvault is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment BEFORE importing runvault modules
os.environ["RUNVAULT_BASE_URL"] = ""
os.environ["STORAGE_BACKEND"] = "local"


@pytest.fixture
def run_async():
    """Helper to run async functions in sync context."""
    def _run(coro):
        return asyncio.run(coro)
    return _run


@pytest.fixture(scope="function")
def fresh_database(tmp_path: Path):
    """Point the app at a fresh database file and create the schema."""
    import runvault.config as config
    from runvault.database import close_db, get_db, init_db

    original = config.DATABASE_PATH
    config.DATABASE_PATH = tmp_path / "test.db"
    close_db()

    init_db()

    yield get_db()

    close_db()
    config.DATABASE_PATH = original


@pytest.fixture
def db(fresh_database):
    """Connection to the fresh test database."""
    return fresh_database


@pytest.fixture
def storage(tmp_path: Path):
    """LocalStorage rooted in a temp dir, installed as the app's storage."""
    from runvault.infrastructure.storage import LocalStorage, StorageConfig, set_storage, reset_storage

    local = LocalStorage(StorageConfig(backend="local", base_path=tmp_path / "objects"))
    set_storage(local)
    yield local
    reset_storage()


@pytest.fixture
def users(db) -> Dict[str, str]:
    """IDs of an admin and two members."""
    from runvault.infrastructure.repositories import UserRepository

    repo = UserRepository(db)
    return {
        "admin": repo.create("admin", "Admin", role="admin"),
        "member": repo.create("runner", "Runner"),
        "other": repo.create("walker", "Walker"),
    }


@pytest.fixture
def repos(db) -> Dict:
    from runvault.infrastructure.repositories import (
        EventRepository, FolderRepository, PhotoRepository, UserRepository
    )
    return {
        "folders": FolderRepository(db),
        "photos": PhotoRepository(db),
        "events": EventRepository(db),
        "users": UserRepository(db),
    }


@pytest.fixture
def services(db, storage, repos) -> Dict:
    """Fully wired services over the test database and storage."""
    from runvault.application.services import (
        BreadcrumbService, ContentService, EventService, FolderService,
        LifecycleService, MediaService
    )
    from runvault.infrastructure.repositories import select_tree_strategy

    tree = select_tree_strategy(db, 1000)
    folder_service = FolderService(repos["folders"])
    media = MediaService(repos["photos"], repos["folders"], repos["events"], storage, repos["users"])
    lifecycle = LifecycleService(
        folder_service=folder_service,
        media_service=media,
        folder_repository=repos["folders"],
        photo_repository=repos["photos"],
        event_repository=repos["events"],
        user_repository=repos["users"],
        tree_strategy=tree,
        storage=storage,
    )
    return {
        "folders": folder_service,
        "breadcrumbs": BreadcrumbService(tree),
        "content": ContentService(repos["folders"], repos["photos"], storage),
        "media": media,
        "lifecycle": lifecycle,
        "events": EventService(repos["events"], repos["photos"], repos["users"], media, lifecycle),
    }


@pytest.fixture
def add_photo(repos, storage):
    """Create a pending photo whose object exists in storage.

    Writes the object file directly so it also works inside async tests.
    """
    counter = {"n": 0}

    def _add(uploaded_by: str, folder_id: str = None, content: bytes = b"jpeg") -> str:
        counter["n"] += 1
        path = f"events/pending/photo-{counter['n']}.jpg"
        object_path = storage.get_path(path)
        object_path.parent.mkdir(parents=True, exist_ok=True)
        object_path.write_bytes(content)
        photo_id = repos["photos"].create_pending(path, f"photo-{counter['n']}.jpg", len(content),
                                                  "image/jpeg", uploaded_by)
        if folder_id:
            repos["photos"].set_folder([photo_id], folder_id)
        return photo_id
    return _add


@pytest.fixture(scope="function")
def client(fresh_database, storage) -> Generator[TestClient, None, None]:
    """Create test client with fresh isolated environment.

    Requests are anonymous unless they carry the user header; see as_user.
    """
    from runvault.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def as_user(users):
    """Headers that authenticate a request as one of the users fixture's roles."""
    from runvault.config import USER_HEADER

    def _headers(role: str = "member") -> Dict[str, str]:
        return {USER_HEADER: users[role]}
    return _headers
