"""Folder service - handles folder tree operations.

This service encapsulates the rules for the vault root, system-managed event
folders and user-managed custom folders.
"""
import logging
import sqlite3
from datetime import date, datetime
from typing import List

from ...config import (
    FOLDER_CUSTOM, FOLDER_EVENT, FOLDER_ROOT,
    ROOT_FOLDER_NAME, ROOT_FOLDER_SLUG, EVENT_FOLDER_ATTEMPTS,
)
from ...errors import Conflict, InvalidOperation, NotFound
from ...infrastructure.repositories import FolderRepository
from ... import slugs

logger = logging.getLogger(__name__)


def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
    """True for UNIQUE index hits; foreign key and CHECK failures are not races."""
    return "UNIQUE constraint failed" in str(error)


class FolderService:
    """Service for folder management operations.

    Responsibilities:
    - Singleton root bootstrap (get-or-create)
    - Event folder naming and slug suffixing
    - Custom folder creation with sibling slug checks
    - Child listing
    """

    def __init__(self, folder_repository: FolderRepository, max_attempts: int = EVENT_FOLDER_ATTEMPTS):
        self.folder_repo = folder_repository
        self.max_attempts = max_attempts

    def get_folder(self, folder_id: str) -> dict:
        """Get folder by ID.

        Raises:
            NotFound: If the folder doesn't exist
        """
        folder = self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder not found: {folder_id}")
        return folder

    def get_root(self) -> dict:
        """Get the vault root.

        Raises:
            NotFound: If the root was never created
        """
        root = self.folder_repo.get_root()
        if not root:
            raise NotFound("Root folder not found")
        return root

    def create_root(self, owner: str) -> dict:
        """Create the vault root, or return it if it already exists.

        A concurrent bootstrap that inserts first wins; the loser reads its row.
        """
        existing = self.folder_repo.get_root()
        if existing:
            return existing

        try:
            root_id = self.folder_repo.create(ROOT_FOLDER_NAME, ROOT_FOLDER_SLUG, FOLDER_ROOT, owner)
        except sqlite3.IntegrityError as e:
            root = self.folder_repo.get_root() if _is_unique_violation(e) else None
            if root is None:
                raise
            return root

        logger.info("Created vault root %s", root_id)
        return self.folder_repo.get_by_id(root_id)

    def get_or_create_root(self, owner: str) -> dict:
        """Root for request handlers: created with owner on first access."""
        try:
            return self.get_root()
        except NotFound:
            return self.create_root(owner)

    def create_event_folder(
        self,
        root_id: str,
        event_id: str,
        title: str | None,
        event_date: date | datetime,
        owner: str
    ) -> str:
        """Create the folder for an event under the root.

        The slug is ``event_YYYY-MM-DD``; when an event folder with that slug
        exists the first free ``_1``, ``_2``... suffix is used. Only event
        folders under the same parent count as taken. A lost insert race
        retries with the next suffix.

        Returns:
            New folder ID

        Raises:
            NotFound: If root_id doesn't exist
            Conflict: If no free slug was found within max_attempts inserts
        """
        if not self.folder_repo.exists(root_id):
            raise NotFound(f"Folder not found: {root_id}")

        base = slugs.date_slug(event_date)
        name = slugs.event_folder_name(event_date, title)
        blocked: set[str] = set()

        for _ in range(self.max_attempts):
            taken = self.folder_repo.list_slugs_with_prefix(root_id, base, FOLDER_EVENT) | blocked
            n = 0
            while slugs.suffixed(base, n) in taken:
                n += 1
            slug = slugs.suffixed(base, n)

            try:
                folder_id = self.folder_repo.create(
                    name, slug, FOLDER_EVENT, owner, parent_id=root_id, event_id=event_id
                )
            except sqlite3.IntegrityError as e:
                if not _is_unique_violation(e):
                    raise
                logger.info("Slug %s taken under %s, trying next suffix", slug, root_id)
                blocked.add(slug)
                continue

            logger.info("Created event folder %s (%s) for event %s", folder_id, slug, event_id)
            return folder_id

        raise Conflict(f"Could not find a free slug for {base} after {self.max_attempts} attempts")

    def create_custom_folder(self, parent_id: str, name: str, owner: str) -> dict:
        """Create a user folder.

        Args:
            parent_id: Parent folder ID (root or a custom folder)
            name: Display name
            owner: Creating user ID

        Returns:
            Created folder dict

        Raises:
            InvalidOperation: Empty name, or parent is an event folder
            NotFound: Parent doesn't exist
            Conflict: A sibling already has the same slug
        """
        name = (name or "").strip()
        if not name:
            raise InvalidOperation("Folder name is required")

        slug = slugs.normalize(name)
        if not slug:
            raise InvalidOperation("Folder name must contain letters or digits")

        parent = self.get_folder(parent_id)
        if parent["kind"] == FOLDER_EVENT:
            raise InvalidOperation("Folders cannot be created inside event folders")

        if self.folder_repo.slug_exists(parent_id, slug):
            raise Conflict(f"A folder named '{name}' already exists here")

        try:
            folder_id = self.folder_repo.create(name, slug, FOLDER_CUSTOM, owner, parent_id=parent_id)
        except sqlite3.IntegrityError as e:
            if not _is_unique_violation(e):
                raise
            raise Conflict(f"A folder named '{name}' already exists here")

        logger.info("Created folder %s (%s) under %s", folder_id, slug, parent_id)
        return self.folder_repo.get_by_id(folder_id)

    def get_children(self, folder_id: str) -> List[dict]:
        """Direct child folders of an existing folder."""
        self.get_folder(folder_id)
        return self.folder_repo.get_children(folder_id)
