"""Content service - what a folder shows: subfolders with counts and previews, and photos.

Subfolder ordering:
- under the root, event folders come first, newest date first (their slugs
  sort by date), then custom folders by name
- anywhere else, every child is ordered by name
"""
from typing import List, Optional

from ...config import FOLDER_CUSTOM, FOLDER_EVENT, FOLDER_ROOT, PREVIEW_PROBE_LIMIT
from ...errors import NotFound, UpstreamFailure
from ...infrastructure.repositories import FolderRepository, PhotoRepository
from ...infrastructure.storage import StorageInterface, StorageError


def _name_key(folder: dict) -> tuple[str, str]:
    return folder["name"].casefold(), folder["name"]


def sort_subfolders(folders: List[dict], parent_is_root: bool) -> List[dict]:
    """Order children of a folder for display."""
    if not parent_is_root:
        return sorted(folders, key=_name_key)

    events = sorted(
        (f for f in folders if f["kind"] == FOLDER_EVENT),
        key=lambda f: f["slug"],
        reverse=True
    )
    others = sorted((f for f in folders if f["kind"] != FOLDER_EVENT), key=_name_key)
    return events + others


class ContentService:
    """Service composing folder and photo queries into folder listings.

    Responsibilities:
    - Folder contents (folder, enriched subfolders, photos with read URLs)
    - Item counts and preview images per subfolder
    """

    def __init__(
        self,
        folder_repository: FolderRepository,
        photo_repository: PhotoRepository,
        storage: StorageInterface,
        probe_limit: int = PREVIEW_PROBE_LIMIT
    ):
        self.folder_repo = folder_repository
        self.photo_repo = photo_repository
        self.storage = storage
        self.probe_limit = probe_limit

    def get_folder_contents(self, folder_id: str) -> dict:
        """Get contents of a folder.

        Returns:
            {"folder": folder, "subfolders": [folder + item_count + preview_url],
             "photos": [photo + url]} with photos ordered by display_order

        Raises:
            NotFound: If the folder doesn't exist
            UpstreamFailure: If storage cannot produce read URLs
        """
        folder = self._get_folder(folder_id)
        photos = self.photo_repo.list_by_folder(folder_id)

        return {
            "folder": folder,
            "subfolders": self._list_subfolders(folder),
            "photos": [{**photo, "url": self._url(photo["storage_path"])} for photo in photos],
        }

    def list_subfolders(self, folder_id: str) -> List[dict]:
        """Sorted, enriched children of a folder."""
        return self._list_subfolders(self._get_folder(folder_id))

    def _get_folder(self, folder_id: str) -> dict:
        folder = self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder not found: {folder_id}")
        return folder

    def _list_subfolders(self, folder: dict) -> List[dict]:
        children = self.folder_repo.get_children(folder["id"])
        ordered = sort_subfolders(children, parent_is_root=folder["kind"] == FOLDER_ROOT)
        return [self._with_meta(child) for child in ordered]

    def _with_meta(self, folder: dict) -> dict:
        item_count = (
            self.folder_repo.count_children(folder["id"])
            + self.photo_repo.count_by_folder(folder["id"])
        )
        return {**folder, "item_count": item_count, "preview_url": self._preview_url(folder)}

    def _preview_url(self, folder: dict) -> Optional[str]:
        """Read URL of the folder's first photo.

        Custom folders without photos of their own borrow the newest photo of
        the first of their (at most probe_limit) subfolders that has one. The
        probe goes one level down only.
        """
        photo = self.photo_repo.first_in_folder(folder["id"])
        if photo:
            return self._url(photo["storage_path"])

        if folder["kind"] == FOLDER_CUSTOM:
            for child in self.folder_repo.get_children(folder["id"], limit=self.probe_limit):
                photo = self.photo_repo.latest_in_folder(child["id"])
                if photo:
                    return self._url(photo["storage_path"])

        return None

    def _url(self, storage_path: str) -> str:
        try:
            return self.storage.get_url(storage_path)
        except StorageError as e:
            raise UpstreamFailure(f"Could not get URL for {storage_path}: {e}")
