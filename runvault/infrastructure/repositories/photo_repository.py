"""Photo repository - handles all photo-related database operations.

A photo row points at one object in storage (storage_path) and moves
through three states:
- pending: neither event_id nor folder_id set (upload URL issued)
- attached to an event: event_id set, folder_id set to the event folder when it exists
- placed in a folder: folder_id set
"""
import uuid

from .base import Repository, utc_now


class PhotoRepository(Repository):
    """Repository for photo entity operations.

    Examples:
        >>> repo = PhotoRepository(db)
        >>> photo_id = repo.create_pending("events/pending/ab.jpg", "ab.jpg", 1024,
        ...                                "image/jpeg", user_id)
        >>> repo.set_folder([photo_id], folder_id)
        >>> repo.list_by_folder(folder_id)
    """

    def create_pending(
        self,
        storage_path: str,
        file_name: str,
        file_size: int,
        mime_type: str,
        uploaded_by: str,
        photo_id: str = None,
    ) -> str:
        """Create a photo row with no event and no folder.

        Args:
            storage_path: Object key in storage (unique)
            file_name: Original file name
            file_size: Size in bytes as declared by the client
            mime_type: Declared content type
            uploaded_by: Uploading user ID
            photo_id: Optional photo UUID (generated if not provided)

        Returns:
            New photo UUID
        """
        if photo_id is None:
            photo_id = str(uuid.uuid4())

        self._execute(
            """INSERT INTO photos
               (id, event_id, folder_id, storage_path, file_name, file_size,
                mime_type, display_order, uploaded_by, created_at)
               VALUES (?, NULL, NULL, ?, ?, ?, ?, 0, ?, ?)""",
            (photo_id, storage_path, file_name, file_size, mime_type, uploaded_by, utc_now())
        )
        self._commit()
        return photo_id

    def get_by_id(self, photo_id: str) -> dict | None:
        """Get photo by ID.

        Args:
            photo_id: Photo UUID

        Returns:
            Photo dict or None
        """
        cursor = self._execute(
            "SELECT * FROM photos WHERE id = ?",
            (photo_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def get_by_storage_path(self, storage_path: str) -> dict | None:
        """Get photo by its object key."""
        cursor = self._execute(
            "SELECT * FROM photos WHERE storage_path = ?",
            (storage_path,)
        )
        return self._row_to_dict(cursor.fetchone())

    def find_missing(self, photo_ids: list[str]) -> list[str]:
        """Return the ids from photo_ids that have no row."""
        if not photo_ids:
            return []
        cursor = self._execute(
            f"SELECT id FROM photos WHERE id IN ({self._placeholders(photo_ids)})",
            tuple(photo_ids)
        )
        found = {row["id"] for row in cursor.fetchall()}
        return [pid for pid in photo_ids if pid not in found]

    def list_by_folder(self, folder_id: str) -> list[dict]:
        """Photos placed directly in a folder, by display order."""
        return self._fetchall(
            """SELECT * FROM photos WHERE folder_id = ?
               ORDER BY display_order, created_at, id""",
            (folder_id,)
        )

    def count_by_folder(self, folder_id: str) -> int:
        """Number of photos placed directly in a folder."""
        cursor = self._execute(
            "SELECT COUNT(*) AS count FROM photos WHERE folder_id = ?",
            (folder_id,)
        )
        return cursor.fetchone()["count"]

    def first_in_folder(self, folder_id: str) -> dict | None:
        """First photo of a folder by display order."""
        cursor = self._execute(
            """SELECT * FROM photos WHERE folder_id = ?
               ORDER BY display_order, created_at, id LIMIT 1""",
            (folder_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def latest_in_folder(self, folder_id: str) -> dict | None:
        """Most recently created photo of a folder."""
        cursor = self._execute(
            """SELECT * FROM photos WHERE folder_id = ?
               ORDER BY created_at DESC, rowid DESC LIMIT 1""",
            (folder_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def list_by_folders(self, folder_ids: list[str]) -> list[dict]:
        """All photos whose folder is in folder_ids."""
        if not folder_ids:
            return []
        return self._fetchall(
            f"SELECT * FROM photos WHERE folder_id IN ({self._placeholders(folder_ids)})",
            tuple(folder_ids)
        )

    def delete_by_folders(self, folder_ids: list[str]) -> int:
        """Delete every photo row placed in folder_ids."""
        if not folder_ids:
            return 0
        cursor = self._execute(
            f"DELETE FROM photos WHERE folder_id IN ({self._placeholders(folder_ids)})",
            tuple(folder_ids)
        )
        self._commit()
        return cursor.rowcount

    def list_by_event(self, event_id: str) -> list[dict]:
        """Photos attached to an event, by display order."""
        return self._fetchall(
            "SELECT * FROM photos WHERE event_id = ? ORDER BY display_order, id",
            (event_id,)
        )

    def delete_by_event(self, event_id: str) -> int:
        """Delete every photo row attached to an event."""
        cursor = self._execute(
            "DELETE FROM photos WHERE event_id = ?",
            (event_id,)
        )
        self._commit()
        return cursor.rowcount

    def max_display_order(self, event_id: str) -> int:
        """Highest display_order among an event's photos (0 when it has none)."""
        cursor = self._execute(
            "SELECT MAX(display_order) AS max_order FROM photos WHERE event_id = ?",
            (event_id,)
        )
        row = cursor.fetchone()
        return row["max_order"] if row and row["max_order"] is not None else 0

    def attach_to_event(self, assignments: list[tuple[str, int]], event_id: str, folder_id: str | None) -> int:
        """Link photos to an event with the given display orders.

        Args:
            assignments: (photo_id, display_order) pairs
            event_id: Event to attach to
            folder_id: Event folder, or None while the event has no folder

        Returns:
            Number of updated rows
        """
        cursor = self._execute_many(
            "UPDATE photos SET event_id = ?, display_order = ?, folder_id = ? WHERE id = ?",
            [(event_id, order, folder_id, photo_id) for photo_id, order in assignments]
        )
        self._commit()
        return cursor.rowcount

    def set_folder(self, photo_ids: list[str], folder_id: str) -> int:
        """Place photos in a folder without touching their event."""
        if not photo_ids:
            return 0
        cursor = self._execute(
            f"UPDATE photos SET folder_id = ? WHERE id IN ({self._placeholders(photo_ids)})",
            (folder_id, *photo_ids)
        )
        self._commit()
        return cursor.rowcount

    def link_event_photos_to_folder(self, event_id: str, folder_id: str) -> int:
        """Set folder_id on every photo of an event."""
        cursor = self._execute(
            "UPDATE photos SET folder_id = ? WHERE event_id = ?",
            (folder_id, event_id)
        )
        self._commit()
        return cursor.rowcount

    def link_unplaced_event_photos(self, event_id: str, folder_id: str) -> int:
        """Set folder_id on an event's photos that have no folder yet."""
        cursor = self._execute(
            "UPDATE photos SET folder_id = ? WHERE event_id = ? AND folder_id IS NULL",
            (folder_id, event_id)
        )
        self._commit()
        return cursor.rowcount

    def delete(self, photo_id: str) -> bool:
        """Delete photo record.

        Args:
            photo_id: Photo ID

        Returns:
            True if deleted
        """
        cursor = self._execute(
            "DELETE FROM photos WHERE id = ?",
            (photo_id,)
        )
        self._commit()
        return cursor.rowcount > 0
