"""Application layer - business logic services.

This layer contains application services that orchestrate domain operations.
Services are independent of HTTP/FastAPI and can be tested in isolation.
"""

from .services.folder_service import FolderService
from .services.content_service import ContentService
from .services.lifecycle_service import LifecycleService
from .services.event_service import EventService

__all__ = [
    "FolderService",
    "ContentService",
    "LifecycleService",
    "EventService",
]
