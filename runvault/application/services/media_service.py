"""Media service - binds photos to events and folders.

This service encapsulates the photo lifecycle: pending registration when an
upload URL is issued, attachment to an event (which also places the photo in
the event's folder when there is one), free placement in a folder, and
deletion of a single photo together with its stored object.
"""
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from ...config import PENDING_PREFIX
from ...errors import Forbidden, InvalidOperation, NotFound, UpstreamFailure
from ...infrastructure.repositories import (
    EventRepository, FolderRepository, PhotoRepository, UserRepository
)
from ...infrastructure.storage import StorageInterface, StorageError

logger = logging.getLogger(__name__)


def _unique(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _require_ids(photo_ids: List[str]) -> List[str]:
    photo_ids = _unique(photo_ids)
    if not photo_ids:
        raise InvalidOperation("photo_ids must not be empty")
    return photo_ids


class MediaService:
    """Service for photo linking operations.

    Responsibilities:
    - Pending photo rows and upload targets
    - Event attachment with sequential display order
    - Folder placement
    - Single photo deletion (object first, then row)
    """

    def __init__(
        self,
        photo_repository: PhotoRepository,
        folder_repository: FolderRepository,
        event_repository: EventRepository,
        storage: StorageInterface,
        user_repository: Optional[UserRepository] = None
    ):
        self.photo_repo = photo_repository
        self.folder_repo = folder_repository
        self.event_repo = event_repository
        self.storage = storage
        self.user_repo = user_repository

    def register_pending(self, files: List[dict], uploaded_by: str) -> List[dict]:
        """Create pending photo rows and issue upload targets.

        Every upload URL is issued before any row is written, so a storage
        failure leaves no pending rows behind.

        Args:
            files: Descriptors with ``name``, ``type`` (MIME) and ``size``
            uploaded_by: Uploading user ID

        Returns:
            List of {photo_id, upload_url, storage_path}, one per descriptor

        Raises:
            UpstreamFailure: If storage cannot issue an upload URL
        """
        targets = []
        for file in files:
            ext = Path(file["name"]).suffix.lower().lstrip(".")
            storage_path = f"{PENDING_PREFIX}/{uuid.uuid4()}" + (f".{ext}" if ext else "")
            try:
                upload_url = self.storage.put_url(storage_path, file.get("type") or "application/octet-stream")
            except StorageError as e:
                raise UpstreamFailure(f"Could not issue upload URL for {file['name']}: {e}")
            targets.append((file, storage_path, upload_url))

        results = []
        for file, storage_path, upload_url in targets:
            photo_id = self.photo_repo.create_pending(
                storage_path=storage_path,
                file_name=file["name"],
                file_size=file.get("size"),
                mime_type=file.get("type"),
                uploaded_by=uploaded_by
            )
            results.append({
                "photo_id": photo_id,
                "upload_url": upload_url,
                "storage_path": storage_path,
            })
        return results

    def attach_to_event(self, event_id: str, photo_ids: List[str]) -> dict:
        """Link photos to an event, appending them after its current photos.

        Each photo gets the next display_order after the event's current
        maximum. If the event already has a folder, the photos are placed in
        it by the same update; otherwise folder_id stays empty.

        Returns:
            {"event_id", "folder_id", "display_orders": {photo_id: order}}

        Raises:
            NotFound: If the event or any photo doesn't exist
            InvalidOperation: If photo_ids is empty
        """
        photo_ids = _require_ids(photo_ids)
        if not self.event_repo.get_by_id(event_id):
            raise NotFound(f"Event not found: {event_id}")
        self._require_photos(photo_ids)

        folder = self.folder_repo.get_by_event(event_id)
        folder_id = folder["id"] if folder else None

        max_order = self.photo_repo.max_display_order(event_id)
        assignments = [(photo_id, max_order + i + 1) for i, photo_id in enumerate(photo_ids)]
        self.photo_repo.attach_to_event(assignments, event_id, folder_id)

        if folder_id is None:
            logger.info("Event %s has no folder yet; %d photos left unplaced", event_id, len(photo_ids))

        return {
            "event_id": event_id,
            "folder_id": folder_id,
            "display_orders": dict(assignments),
        }

    def attach_to_folder(self, folder_id: str, photo_ids: List[str]) -> int:
        """Place photos in a folder; their event link is untouched.

        Returns:
            Number of photos updated

        Raises:
            NotFound: If the folder or any photo doesn't exist
            InvalidOperation: If photo_ids is empty
        """
        photo_ids = _require_ids(photo_ids)
        if not self.folder_repo.exists(folder_id):
            raise NotFound(f"Folder not found: {folder_id}")
        self._require_photos(photo_ids)
        return self.photo_repo.set_folder(photo_ids, folder_id)

    async def delete_photo(self, photo_id: str, requester_id: str) -> None:
        """Delete one photo and its stored object.

        Allowed for the uploader, the creator of the photo's event and admins.
        The object is deleted first so no row ever outlives its object.

        Raises:
            NotFound: If the photo doesn't exist
            Forbidden: If the requester may not delete it
            UpstreamFailure: If the object delete fails (the row is kept)
        """
        photo = self.photo_repo.get_by_id(photo_id)
        if not photo:
            raise NotFound(f"Photo not found: {photo_id}")

        allowed = photo["uploaded_by"] == requester_id
        if not allowed and photo["event_id"]:
            event = self.event_repo.get_by_id(photo["event_id"])
            allowed = bool(event) and event["created_by"] == requester_id
        if not allowed and self.user_repo is not None:
            allowed = self.user_repo.is_admin(requester_id)
        if not allowed:
            raise Forbidden("You do not have permission to delete this photo")

        try:
            await self.storage.delete(photo["storage_path"])
        except StorageError as e:
            raise UpstreamFailure(f"Failed to delete stored object for {photo_id}: {e}")

        self.photo_repo.delete(photo_id)

    def _require_photos(self, photo_ids: List[str]) -> None:
        missing = self.photo_repo.find_missing(photo_ids)
        if missing:
            raise NotFound(f"Photo not found: {', '.join(missing)}")
