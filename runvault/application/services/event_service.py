"""Event service - the minimal event surface that drives folder lifecycle.

Events are created with a date, an optional title and optional photos. The
event row is committed first; its folder follows as a best-effort step.
Deletion removes the folder subtree and remaining photos before the row.
"""
import logging
from datetime import date
from typing import List, Optional

from ...errors import Forbidden, NotFound
from ...infrastructure.repositories import EventRepository, PhotoRepository, UserRepository
from .lifecycle_service import LifecycleService
from .media_service import MediaService

logger = logging.getLogger(__name__)


class EventService:
    """Service for event creation and deletion.

    Responsibilities:
    - Event rows
    - Photo attachment on creation
    - Triggering folder lifecycle on create and delete
    """

    def __init__(
        self,
        event_repository: EventRepository,
        photo_repository: PhotoRepository,
        user_repository: UserRepository,
        media_service: MediaService,
        lifecycle_service: LifecycleService
    ):
        self.event_repo = event_repository
        self.photo_repo = photo_repository
        self.user_repo = user_repository
        self.media_service = media_service
        self.lifecycle = lifecycle_service

    def get_event(self, event_id: str) -> dict:
        event = self.event_repo.get_by_id(event_id)
        if not event:
            raise NotFound(f"Event not found: {event_id}")
        return event

    def create_event(
        self,
        event_date: date,
        created_by: str,
        title: Optional[str] = None,
        photo_ids: List[str] = ()
    ) -> dict:
        """Create an event, attach photos and give it a folder.

        Args:
            event_date: Calendar date of the event
            created_by: Creating user ID
            title: Optional title, shown in the folder name
            photo_ids: Pending photos to attach (in display order)

        Returns:
            Event dict with ``folder_id`` (None when folder creation failed)

        Raises:
            NotFound: If any photo doesn't exist (nothing is written)
        """
        photo_ids = list(dict.fromkeys(photo_ids))
        missing = self.photo_repo.find_missing(photo_ids)
        if missing:
            raise NotFound(f"Photo not found: {', '.join(missing)}")

        title = (title or "").strip() or None
        event_id = self.event_repo.create(event_date, created_by, title)
        if photo_ids:
            self.media_service.attach_to_event(event_id, photo_ids)

        event = self.event_repo.get_by_id(event_id)
        outcome = self.lifecycle.on_event_created(event, photo_ids)
        if not outcome.ok:
            logger.warning("Event %s created without a folder: %s", event_id, outcome.error)

        return {**event, "folder_id": outcome.value if outcome.ok else None}

    def attach_photos(self, event_id: str, photo_ids: List[str], requester_id: str) -> dict:
        """Attach photos to an existing event (creator or admin)."""
        event = self.get_event(event_id)
        self._require_owner(event, requester_id)
        return self.media_service.attach_to_event(event_id, photo_ids)

    async def delete_event(self, event_id: str, requester_id: str) -> dict:
        """Delete an event with its folder subtree, photos and stored objects.

        The event row is deleted last; if the folder cleanup fails the error
        propagates and the event stays, so the call can be repeated.

        Raises:
            NotFound: If the event doesn't exist
            Forbidden: If requester is neither its creator nor an admin
        """
        event = self.get_event(event_id)
        self._require_owner(event, requester_id)

        report = await self.lifecycle.on_event_deleted(event_id)
        self.event_repo.delete(event_id)

        logger.info("Deleted event %s", event_id)
        return report.to_dict()

    def _require_owner(self, event: dict, requester_id: str) -> None:
        if event["created_by"] != requester_id and not self.user_repo.is_admin(requester_id):
            raise Forbidden("You don't own this event")
