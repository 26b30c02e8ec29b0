"""Application services - business logic layer."""

from .folder_service import FolderService
from .breadcrumb_service import BreadcrumbService
from .content_service import ContentService, sort_subfolders
from .media_service import MediaService
from .lifecycle_service import LifecycleService, DeleteReport, SideEffect, best_effort
from .event_service import EventService

__all__ = [
    "FolderService",
    "BreadcrumbService",
    "ContentService",
    "sort_subfolders",
    "MediaService",
    "LifecycleService",
    "DeleteReport",
    "SideEffect",
    "best_effort",
    "EventService",
]
