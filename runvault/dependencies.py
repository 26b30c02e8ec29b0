"""Shared FastAPI dependencies and service factories."""
from fastapi import Request, HTTPException

from .config import TREE_MAX_DEPTH
from .database import get_db
from .infrastructure.repositories import (
    EventRepository, FolderRepository, PhotoRepository, UserRepository,
    select_tree_strategy
)
from .infrastructure.storage import get_storage
from .application.services import (
    BreadcrumbService, ContentService, EventService, FolderService,
    LifecycleService, MediaService
)


def get_current_user(request: Request) -> dict | None:
    """Get current user from request state."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> dict:
    """Require authenticated user, raise 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


# Service factory functions

def get_folder_service() -> FolderService:
    """Create FolderService with repositories."""
    return FolderService(folder_repository=FolderRepository(get_db()))


def get_breadcrumb_service() -> BreadcrumbService:
    return BreadcrumbService(select_tree_strategy(get_db(), TREE_MAX_DEPTH))


def get_content_service() -> ContentService:
    """Create ContentService with repositories and storage."""
    db = get_db()
    return ContentService(
        folder_repository=FolderRepository(db),
        photo_repository=PhotoRepository(db),
        storage=get_storage()
    )


def get_media_service() -> MediaService:
    """Create MediaService with repositories and storage."""
    db = get_db()
    return MediaService(
        photo_repository=PhotoRepository(db),
        folder_repository=FolderRepository(db),
        event_repository=EventRepository(db),
        storage=get_storage(),
        user_repository=UserRepository(db)
    )


def get_lifecycle_service() -> LifecycleService:
    """Create LifecycleService with everything the cascades touch."""
    db = get_db()
    folder_repo = FolderRepository(db)
    return LifecycleService(
        folder_service=FolderService(folder_repository=folder_repo),
        media_service=get_media_service(),
        folder_repository=folder_repo,
        photo_repository=PhotoRepository(db),
        event_repository=EventRepository(db),
        user_repository=UserRepository(db),
        tree_strategy=select_tree_strategy(db, TREE_MAX_DEPTH),
        storage=get_storage()
    )


def get_event_service() -> EventService:
    """Create EventService with its lifecycle collaborators."""
    db = get_db()
    lifecycle = get_lifecycle_service()
    return EventService(
        event_repository=EventRepository(db),
        photo_repository=PhotoRepository(db),
        user_repository=UserRepository(db),
        media_service=lifecycle.media_service,
        lifecycle_service=lifecycle
    )
