# Repository Pattern Implementation
"""
Repositories abstract database operations.
Each entity has its own repository; tree_strategies holds the ancestor and
descendant queries shared by the breadcrumb and delete paths.
"""
from .base import Repository, ConnectionProtocol
from .user_repository import UserRepository
from .event_repository import EventRepository
from .folder_repository import FolderRepository
from .photo_repository import PhotoRepository
from .tree_strategies import (
    TreeStrategy,
    RecursiveQueryStrategy,
    IterativeWalkStrategy,
    FallbackTreeStrategy,
    select_tree_strategy,
)

__all__ = [
    "Repository",
    "ConnectionProtocol",
    "UserRepository",
    "EventRepository",
    "FolderRepository",
    "PhotoRepository",
    "TreeStrategy",
    "RecursiveQueryStrategy",
    "IterativeWalkStrategy",
    "FallbackTreeStrategy",
    "select_tree_strategy",
]
