"""Photo routes: upload targets and deletion."""
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ..dependencies import require_user, get_media_service

router = APIRouter(prefix="/api/photos", tags=["photos"])


class FileDescriptor(BaseModel):
    name: str = Field(min_length=1)
    type: str = "application/octet-stream"
    size: int = Field(default=0, ge=0)


class UploadRequest(BaseModel):
    files: list[FileDescriptor] = Field(min_length=1)


@router.post("/upload-urls")
def create_upload_urls(request: Request, data: UploadRequest):
    """Register pending photos and return one upload URL per file."""
    user = require_user(request)
    uploads = get_media_service().register_pending(
        [f.model_dump() for f in data.files], user["id"]
    )
    return {"uploads": uploads}


@router.delete("/{photo_id}")
async def delete_photo(request: Request, photo_id: str):
    user = require_user(request)
    await get_media_service().delete_photo(photo_id, user["id"])
    return {"status": "ok"}
