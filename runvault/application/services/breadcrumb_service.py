"""Breadcrumb service - ancestor chain of a folder."""
from typing import List

from ...errors import NotFound
from ...infrastructure.repositories import TreeStrategy


class BreadcrumbService:
    """Resolves the root-first chain of {id, name, slug, kind} for a folder."""

    def __init__(self, tree_strategy: TreeStrategy):
        self.tree = tree_strategy

    def get_breadcrumbs(self, folder_id: str) -> List[dict]:
        """Get breadcrumb path from root to folder.

        Args:
            folder_id: Target folder ID

        Returns:
            List of {id, name, slug, kind} dicts, root first, ending with folder_id

        Raises:
            NotFound: If the folder doesn't exist
            CorruptTree: If the chain exceeds the depth cap
        """
        crumbs = self.tree.ancestors(folder_id)
        if not crumbs:
            raise NotFound(f"Folder not found: {folder_id}")
        return crumbs
