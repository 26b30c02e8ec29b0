"""Object routes for the local storage backend.

LocalStorage hands out ``/storage/<key>`` as both upload and read URL;
these routes stand in for the presigned URLs of S3-compatible backends.
Uploads are accepted only for keys of pending photos (no event, no folder);
once a photo is linked its object can no longer be replaced.
"""
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

from ..database import get_db
from ..infrastructure.repositories import PhotoRepository
from ..infrastructure.storage import get_storage, LocalStorage, StorageError

router = APIRouter(prefix="/storage", tags=["storage"])


def _local_storage() -> LocalStorage:
    storage = get_storage()
    if not isinstance(storage, LocalStorage):
        raise HTTPException(status_code=404, detail="Not found")
    return storage


@router.put("/{key:path}")
async def put_object(request: Request, key: str):
    """Write the request body as the object at key."""
    storage = _local_storage()
    photo = PhotoRepository(get_db()).get_by_storage_path(key)
    if not photo:
        raise HTTPException(status_code=403, detail="No upload was issued for this key")
    if photo["event_id"] is not None or photo["folder_id"] is not None:
        raise HTTPException(status_code=403, detail="Photo is already linked")

    try:
        await storage.upload(key, await request.body(), request.headers.get("content-type"))
    except StorageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "ok", "key": key}


@router.get("/{key:path}")
def get_object(key: str):
    storage = _local_storage()
    try:
        path = storage.get_path(key)
    except StorageError:
        raise HTTPException(status_code=404, detail="Not found")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")

    photo = PhotoRepository(get_db()).get_by_storage_path(key)
    media_type = photo["mime_type"] if photo and photo["mime_type"] else None
    return FileResponse(path, media_type=media_type)
