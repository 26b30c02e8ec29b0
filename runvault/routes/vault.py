"""Vault folder routes."""
from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..dependencies import (
    require_user, get_breadcrumb_service, get_content_service,
    get_folder_service, get_lifecycle_service, get_media_service
)

router = APIRouter(prefix="/api/vault", tags=["vault"])


# Pydantic models for request validation
class FolderCreate(BaseModel):
    parent_id: str
    name: str


class PhotoPlacement(BaseModel):
    photo_ids: list[str]


# === Browsing ===

@router.get("/folders")
def get_root_contents(request: Request):
    """Contents of the vault root, creating the root on first access."""
    user = require_user(request)
    root = get_folder_service().get_or_create_root(user["id"])
    return get_content_service().get_folder_contents(root["id"])


@router.get("/folders/{folder_id}")
def get_folder_contents(request: Request, folder_id: str):
    """Folder with its subfolders (counts, previews) and photos."""
    require_user(request)
    return get_content_service().get_folder_contents(folder_id)


@router.get("/folders/{folder_id}/breadcrumbs")
def get_breadcrumbs(request: Request, folder_id: str):
    """Root-first path to a folder."""
    require_user(request)
    return {"breadcrumbs": get_breadcrumb_service().get_breadcrumbs(folder_id)}


@router.get("/folders/{folder_id}/children")
def get_children(request: Request, folder_id: str):
    require_user(request)
    return {"subfolders": get_content_service().list_subfolders(folder_id)}


# === Changes ===

@router.post("/folders", status_code=201)
def create_folder(request: Request, data: FolderCreate):
    """Create a custom folder."""
    user = require_user(request)
    folder = get_folder_service().create_custom_folder(data.parent_id, data.name, user["id"])
    return {"status": "ok", "folder": folder}


@router.post("/folders/{folder_id}/photos")
def place_photos(request: Request, folder_id: str, data: PhotoPlacement):
    """Place existing photos in a folder."""
    require_user(request)
    updated = get_media_service().attach_to_folder(folder_id, data.photo_ids)
    return {"status": "ok", "updated": updated}


@router.delete("/folders/{folder_id}")
async def delete_folder(request: Request, folder_id: str):
    """Delete a custom folder with everything below it."""
    user = require_user(request)
    report = await get_lifecycle_service().delete_folder(folder_id, user["id"])
    return {"status": "ok", **report.to_dict()}


@router.post("/reconcile")
def reconcile_event_folders(request: Request):
    """Create folders for events that have none (admin only)."""
    user = require_user(request)
    return {"status": "ok", **get_lifecycle_service().reconcile_event_folders(user["id"])}
