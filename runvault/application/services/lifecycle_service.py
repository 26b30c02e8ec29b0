"""Lifecycle service - cross-entity effects of event and folder changes.

Event creation
    Creating the event folder (and placing the event's initial photos in it)
    is best-effort: the event row is already committed and is never rolled
    back because its folder could not be made. Failures are logged and the
    event simply has no folder until ``reconcile_event_folders`` runs.

Cascading delete
    Deleting a folder removes its whole subtree in this order:
    1. stored objects of every photo in the subtree (bounded parallel;
       individual failures are logged and reported, not raised)
    2. photo rows
    3. folder rows
    A stored object may outlive its row (a leak); a row never outlives its
    object once the call returns. A call that fails midway leaves rows in
    place and can be retried, since deleting a missing object is a no-op.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, List, Optional

from ...config import FOLDER_CUSTOM, STORAGE_CONCURRENCY
from ...errors import Forbidden, InvalidOperation, NotFound
from ...infrastructure.repositories import (
    EventRepository, FolderRepository, PhotoRepository, UserRepository, TreeStrategy
)
from ...infrastructure.storage import StorageInterface
from .folder_service import FolderService
from .media_service import MediaService

logger = logging.getLogger(__name__)


@dataclass
class SideEffect:
    """Outcome of a best-effort step."""
    ok: bool
    value: Any = None
    error: Optional[Exception] = None


@dataclass
class DeleteReport:
    """What a cascading delete removed."""
    folder_ids: List[str] = field(default_factory=list)
    photos_deleted: int = 0
    storage_failures: List[dict] = field(default_factory=list)

    def merge(self, other: "DeleteReport") -> "DeleteReport":
        return DeleteReport(
            folder_ids=self.folder_ids + other.folder_ids,
            photos_deleted=self.photos_deleted + other.photos_deleted,
            storage_failures=self.storage_failures + other.storage_failures,
        )

    def to_dict(self) -> dict:
        return {
            "deleted_folders": len(self.folder_ids),
            "deleted_photos": self.photos_deleted,
            "warnings": [
                f"Could not delete stored object {f['storage_path']}: {f['error']}"
                for f in self.storage_failures
            ],
        }


def best_effort(label: str, func: Callable, *args, **kwargs) -> SideEffect:
    """Run func, turning any exception into a failed SideEffect.

    This is the only place where errors are deliberately discarded: they are
    logged with traceback and never reach the caller.
    """
    try:
        return SideEffect(ok=True, value=func(*args, **kwargs))
    except Exception as e:
        logger.exception("%s failed", label)
        return SideEffect(ok=False, error=e)


class LifecycleService:
    """Service coordinating events, folders, photos and stored objects.

    Responsibilities:
    - Event folder creation on event creation (best-effort)
    - Event folder and photo cleanup on event deletion
    - Custom folder deletion (authorization + cascading delete)
    - Reconciliation of events that lack a folder
    """

    def __init__(
        self,
        folder_service: FolderService,
        media_service: MediaService,
        folder_repository: FolderRepository,
        photo_repository: PhotoRepository,
        event_repository: EventRepository,
        user_repository: UserRepository,
        tree_strategy: TreeStrategy,
        storage: StorageInterface,
        concurrency: int = STORAGE_CONCURRENCY
    ):
        self.folder_service = folder_service
        self.media_service = media_service
        self.folder_repo = folder_repository
        self.photo_repo = photo_repository
        self.event_repo = event_repository
        self.user_repo = user_repository
        self.tree = tree_strategy
        self.storage = storage
        self.concurrency = concurrency

    # === Events ===

    def on_event_created(self, event: dict, photo_ids: List[str] = ()) -> SideEffect:
        """Give a newly created event its folder.

        Never raises; the returned SideEffect holds the folder ID or the error.
        """
        return best_effort(
            f"Creating folder for event {event['id']}",
            self._create_event_folder, event, list(photo_ids)
        )

    def _create_event_folder(self, event: dict, photo_ids: List[str]) -> str:
        root = self.folder_service.get_or_create_root(event["created_by"])
        folder_id = self.folder_service.create_event_folder(
            root["id"],
            event["id"],
            event["title"],
            date.fromisoformat(event["event_date"]),
            event["created_by"]
        )
        if photo_ids:
            self.media_service.attach_to_folder(folder_id, photo_ids)
        return folder_id

    async def on_event_deleted(self, event_id: str) -> DeleteReport:
        """Remove an event's folder subtree, then its remaining photos.

        Must run before the event row is deleted; errors propagate so the
        event deletion can be retried.
        """
        report = await self.delete_event_folder(event_id)
        return report.merge(await self._purge_event_photos(event_id))

    async def delete_event_folder(self, event_id: str) -> DeleteReport:
        """Delete the event's folder and anything below it; no-op if it has none."""
        folder = self.folder_repo.get_by_event(event_id)
        if folder is None:
            logger.info("Event %s has no folder to delete", event_id)
            return DeleteReport()
        return await self._purge_subtree(folder["id"])

    async def _purge_event_photos(self, event_id: str) -> DeleteReport:
        photos = self.photo_repo.list_by_event(event_id)
        failures = await self._delete_objects([p["storage_path"] for p in photos])
        deleted = self.photo_repo.delete_by_event(event_id)
        return DeleteReport(photos_deleted=deleted, storage_failures=failures)

    # === Folders ===

    async def delete_folder(self, folder_id: str, requester_id: str) -> DeleteReport:
        """Delete a custom folder with all subfolders, photos and stored objects.

        Raises:
            NotFound: If the folder doesn't exist
            InvalidOperation: If it is the root or an event folder
            Forbidden: If requester is neither its creator nor an admin
        """
        folder = self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder not found: {folder_id}")

        if folder["kind"] != FOLDER_CUSTOM:
            raise InvalidOperation("Only custom folders can be deleted")

        if folder["created_by"] != requester_id and not self.user_repo.is_admin(requester_id):
            raise Forbidden("You don't own this folder")

        report = await self._purge_subtree(folder_id)
        logger.info(
            "Deleted folder %s: %d folders, %d photos, %d storage warnings",
            folder_id, len(report.folder_ids), report.photos_deleted, len(report.storage_failures)
        )
        return report

    async def _purge_subtree(self, folder_id: str) -> DeleteReport:
        folder_ids = self.tree.descendant_ids(folder_id)
        if not folder_ids:
            return DeleteReport()

        photos = self.photo_repo.list_by_folders(folder_ids)
        failures = await self._delete_objects([p["storage_path"] for p in photos])

        deleted = self.photo_repo.delete_by_folders(folder_ids)
        self.folder_repo.delete_by_ids(folder_ids)

        return DeleteReport(folder_ids=folder_ids, photos_deleted=deleted, storage_failures=failures)

    async def _delete_objects(self, storage_paths: List[str]) -> List[dict]:
        if not storage_paths:
            return []
        failures = await self.storage.delete_batch(storage_paths, concurrency=self.concurrency)
        for path, error in failures:
            logger.warning("Could not delete stored object %s: %s", path, error)
        return [{"storage_path": path, "error": str(error)} for path, error in failures]

    # === Reconciliation ===

    def reconcile_event_folders(self, requester_id: str) -> dict:
        """Create missing event folders and place unplaced event photos.

        Events without a folder get one (oldest date first, so same-day
        suffixes follow event order) and all their photos are placed in it.
        Events that already have a folder only get their unplaced photos moved in.

        Returns:
            {"migrated": n, "skipped": m, "relinked": k}

        Raises:
            Forbidden: If requester is not an admin
        """
        if not self.user_repo.is_admin(requester_id):
            raise Forbidden("Only administrators can reconcile event folders")

        root = self.folder_service.get_or_create_root(requester_id)
        migrated = skipped = relinked = 0

        for event in self.event_repo.list_all():
            folder = self.folder_repo.get_by_event(event["id"])
            if folder:
                skipped += 1
                relinked += self.photo_repo.link_unplaced_event_photos(event["id"], folder["id"])
                continue

            folder_id = self.folder_service.create_event_folder(
                root["id"],
                event["id"],
                event["title"],
                date.fromisoformat(event["event_date"]),
                event["created_by"]
            )
            relinked += self.photo_repo.link_event_photos_to_folder(event["id"], folder_id)
            migrated += 1

        logger.info("Reconciled event folders: %d created, %d already present", migrated, skipped)
        return {"migrated": migrated, "skipped": skipped, "relinked": relinked}
