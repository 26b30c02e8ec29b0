"""Folder repository - handles all folder-related database operations.

Folders form a single tree rooted at the vault root. Every node except the
root references its parent by id; siblings are kept unique by slug.
"""
import sqlite3
import uuid

from ...config import FOLDER_ROOT, FOLDER_EVENT
from .base import Repository, utc_now


class FolderRepository(Repository):
    """Repository for folder entity operations.

    Each folder has:
    - One parent (None only for the root)
    - A kind: 'root', 'event' (one per event) or 'custom' (user-made)
    - A slug unique among its siblings

    Examples:
        >>> repo = FolderRepository(db)
        >>> root_id = repo.create("Vault", "vault", "root", user_id)
        >>> child = repo.create("Trails", "trails", "custom", user_id, parent_id=root_id)
        >>> repo.get_children(root_id)
    """

    def create(
        self,
        name: str,
        slug: str,
        kind: str,
        created_by: str,
        parent_id: str = None,
        event_id: str = None,
    ) -> str:
        """Create a new folder.

        Args:
            name: Display name
            slug: Normalized identifier, unique under parent_id
            kind: 'root', 'event' or 'custom'
            created_by: Owner user ID
            parent_id: Parent folder ID (None for root)
            event_id: Originating event (event folders only)

        Returns:
            New folder UUID

        Raises:
            sqlite3.IntegrityError: If (parent_id, slug) is taken or a root already exists
        """
        folder_id = str(uuid.uuid4())
        now = utc_now()
        try:
            self._execute(
                """INSERT INTO folders
                   (id, parent_id, name, slug, kind, event_id, created_by, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (folder_id, parent_id, name.strip(), slug, kind, event_id, created_by, now, now)
            )
        except sqlite3.IntegrityError:
            self._rollback()
            raise
        self._commit()
        return folder_id

    def get_by_id(self, folder_id: str) -> dict | None:
        """Get folder by ID.

        Args:
            folder_id: Folder UUID

        Returns:
            Folder dict or None
        """
        cursor = self._execute(
            "SELECT * FROM folders WHERE id = ?",
            (folder_id,)
        )
        return self._row_to_dict(cursor.fetchone())

    def get_root(self) -> dict | None:
        """Get the vault root, if it has been created."""
        cursor = self._execute(
            "SELECT * FROM folders WHERE kind = ? LIMIT 1",
            (FOLDER_ROOT,)
        )
        return self._row_to_dict(cursor.fetchone())

    def get_by_event(self, event_id: str) -> dict | None:
        """Get the event-kind folder created for an event."""
        cursor = self._execute(
            "SELECT * FROM folders WHERE event_id = ? AND kind = ? LIMIT 1",
            (event_id, FOLDER_EVENT)
        )
        return self._row_to_dict(cursor.fetchone())

    def get_children(self, folder_id: str, limit: int = None) -> list[dict]:
        """Get direct child folders, ordered by name.

        Args:
            folder_id: Parent folder ID
            limit: Optional maximum number of children

        Returns:
            List of child folder dicts
        """
        sql = "SELECT * FROM folders WHERE parent_id = ? ORDER BY name, id"
        params: tuple = (folder_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)
        return self._fetchall(sql, params)

    def count_children(self, folder_id: str) -> int:
        """Number of direct child folders."""
        cursor = self._execute(
            "SELECT COUNT(*) AS count FROM folders WHERE parent_id = ?",
            (folder_id,)
        )
        return cursor.fetchone()["count"]

    def list_slugs_with_prefix(self, parent_id: str, prefix: str, kind: str) -> set[str]:
        """Slugs of same-kind siblings under parent_id that start with prefix."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        cursor = self._execute(
            """SELECT slug FROM folders
               WHERE parent_id = ? AND kind = ? AND slug LIKE ? ESCAPE '\\'""",
            (parent_id, kind, escaped + "%")
        )
        return {row["slug"] for row in cursor.fetchall()}

    def slug_exists(self, parent_id: str, slug: str) -> bool:
        """Check whether a sibling already uses slug."""
        cursor = self._execute(
            "SELECT 1 FROM folders WHERE parent_id = ? AND slug = ?",
            (parent_id, slug)
        )
        return cursor.fetchone() is not None

    def exists(self, folder_id: str) -> bool:
        """Check if folder exists.

        Args:
            folder_id: Folder ID

        Returns:
            True if exists
        """
        cursor = self._execute(
            "SELECT 1 FROM folders WHERE id = ?",
            (folder_id,)
        )
        return cursor.fetchone() is not None

    def delete_by_ids(self, folder_ids: list[str]) -> int:
        """Delete folders by IDs.

        Returns:
            Number of deleted rows
        """
        if not folder_ids:
            return 0

        cursor = self._execute(
            f"DELETE FROM folders WHERE id IN ({self._placeholders(folder_ids)})",
            tuple(folder_ids)
        )
        self._commit()
        return cursor.rowcount
